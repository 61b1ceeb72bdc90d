"""Core domain objects used throughout the system."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import NamedTuple, Union


class Provenance(str, Enum):
    VECTOR = "vector"
    TEXT_SEARCH = "text_search"
    BOTH = "both"


class DecompositionStrategy(str, Enum):
    SINGLE = "single"
    CONJUNCTION = "conjunction"
    MULTI_QUESTION = "multi_question"
    ENUMERATED = "enumerated"
    COMPARATIVE = "comparative"


@dataclass
class DecomposedQuery:
    original: str
    sub_queries: list[str]
    strategy: DecompositionStrategy


@dataclass(frozen=True)
class CandidateResult:
    """A passage as produced by a vector or full-text backend."""

    id: str
    score: float
    text: str
    title: str = ""
    source: str = ""
    metadata: dict[str, str] = field(default_factory=dict)


class HybridResult(NamedTuple):
    id: str
    score: float
    provenance: Provenance


@dataclass
class RankedCandidate:
    candidate: CandidateResult
    score: float
    provenance: Provenance | None = None

    @property
    def id(self) -> str:
        return self.candidate.id

    @property
    def text(self) -> str:
        return self.candidate.text


@dataclass
class CompressedHistory:
    summary: str | None
    recent_messages: list[tuple[str, str]]  # (role, content)


# ---------------------------------------------------------------------------
# Query analysis
# ---------------------------------------------------------------------------


class QueryIntent(str, Enum):
    # No retrieval needed
    GREETING = "greeting"
    SIMPLE_ACKNOWLEDGMENT = "simple_acknowledgment"
    META_QUESTION = "meta_question"
    CLARIFICATION = "clarification"
    FOLLOW_UP_REQUEST = "follow_up_request"
    CREATIVE_GENERATION = "creative_generation"
    EXAMPLE_CREATION = "example_creation"
    CALCULATION = "calculation"

    # Simple retrieval
    FACTUAL_LOOKUP = "factual_lookup"
    DOCUMENT_SEARCH = "document_search"
    DEFINITION_QUERY = "definition_query"
    GENERAL_KNOWLEDGE = "general_knowledge"

    # Complex retrieval
    COMPARATIVE_ANALYSIS = "comparative_analysis"
    AGGREGATION_QUERY = "aggregation_query"
    FILTERED_SEARCH = "filtered_search"
    MULTI_HOP_REASONING = "multi_hop_reasoning"
    TEMPORAL_QUERY = "temporal_query"

    # Web search needed
    CURRENT_EVENTS = "current_events"
    REAL_TIME_INFO = "real_time_info"


@dataclass
class RelevanceScore:
    corpus_coverage: float
    domain_match: float
    term_frequency: float
    overall_confidence: float


class ComparisonOp(str, Enum):
    GREATER_THAN = ">"
    LESS_THAN = "<"
    GREATER_THAN_OR_EQUAL = ">="
    LESS_THAN_OR_EQUAL = "<="
    EQUAL = "="


@dataclass(frozen=True)
class DateRange:
    start: str
    end: str
    field: str = "date"


@dataclass(frozen=True)
class NumericCondition:
    field: str
    operator: ComparisonOp
    value: float


@dataclass
class QueryRequirements:
    needs_filtering: bool = False
    date_range: DateRange | None = None
    numeric_conditions: list[NumericCondition] = field(default_factory=list)
    entity_references: list[str] = field(default_factory=list)
    document_type_hints: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SearchStage:
    stage_name: str
    search_query: str
    max_results: int


@dataclass(frozen=True)
class TopK:
    k: int


@dataclass(frozen=True)
class FilteredSearch:
    initial_k: int
    filters: tuple[str, ...] = ()


@dataclass(frozen=True)
class MultiStage:
    stages: tuple[SearchStage, ...]


@dataclass(frozen=True)
class WebSearch:
    query: str
    max_results: int


@dataclass(frozen=True)
class HybridSearch:
    local_k: int
    web_results: int


@dataclass(frozen=True)
class NoRetrieval:
    reason: str
    llm_can_answer: bool


RetrievalStrategy = Union[TopK, FilteredSearch, MultiStage, WebSearch, HybridSearch, NoRetrieval]


@dataclass
class RetrievalDecision:
    should_retrieve: bool
    strategy: RetrievalStrategy
    estimated_docs_needed: int
    confidence: float
    reasoning: str
    fallback_plan: str | None = None


@dataclass
class QueryAnalysis:
    intent: QueryIntent
    relevance: RelevanceScore
    requirements: QueryRequirements
    decision: RetrievalDecision


# ---------------------------------------------------------------------------
# Context tiering and outbound context
# ---------------------------------------------------------------------------


class ContextQueryIntent(str, Enum):
    GREETING = "greeting"
    SIMPLE_QUESTION = "simple_question"
    DOCUMENT_QUERY = "document_query"
    CODE_ANALYSIS = "code_analysis"
    SYSTEM_QUERY = "system_query"


class ContextTier(str, Enum):
    MINIMAL = "minimal"
    STANDARD = "standard"
    RAG = "rag"
    SYSTEM_AWARE = "system_aware"


@dataclass(frozen=True)
class Citation:
    index: int  # 1-based marker used in the context text
    id: str
    title: str
    source: str


@dataclass
class BuiltContext:
    text: str
    citations: list[Citation]
    passages: list[RankedCandidate]
    intent: ContextQueryIntent
    tier: ContextTier
    decomposition: DecomposedQuery | None = None
    analysis: QueryAnalysis | None = None
    trace: PipelineTrace | None = None


@dataclass
class PipelineTrace:
    trace_id: str
    query: str
    timestamp: datetime
    latency_ms: float
    spans: list[dict]
