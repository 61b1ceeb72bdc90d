"""Pydantic models for inbound snapshots and evaluation data."""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt


class CorpusStats(BaseModel):
    """Aggregate statistics over one search scope, supplied by the indexer."""

    model_config = ConfigDict(frozen=True)

    total_docs: int = Field(default=0, ge=0)
    vocabulary: frozenset[str] = frozenset()
    document_types: dict[str, NonNegativeInt] = Field(default_factory=dict)
    # term -> relative frequency in [0, 1]
    domain_terms: dict[str, Annotated[float, Field(ge=0.0, le=1.0)]] = Field(default_factory=dict)
    avg_doc_length: int = Field(default=0, ge=0)


class ScoredId(BaseModel):
    id: str
    score: float


class EvalQuery(BaseModel):
    query: str
    relevant_ids: set[str] = Field(default_factory=set)
    # Graded relevance (doc id -> 0..1). Takes precedence over relevant_ids when set.
    graded_relevance: dict[str, float] = Field(default_factory=dict)
    vector_results: list[ScoredId] = Field(default_factory=list)
    text_results: list[ScoredId] = Field(default_factory=list)
