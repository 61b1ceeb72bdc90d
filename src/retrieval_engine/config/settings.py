"""Central configuration via Pydantic Settings. All values driven by env vars."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # API Keys
    google_api_key: str = ""

    # LLM / Gemini (listwise reranking)
    gemini_model: str = "gemini-2.0-flash"
    gemini_temperature: float = 0.0

    # Fusion
    fusion_method: Literal["rrf", "score_aware_rrf", "weighted"] = "score_aware_rrf"
    rrf_k: int = Field(default=60, gt=0)
    score_weight: float = Field(default=0.3, ge=0.0)  # 0 = pure RRF
    hybrid_alpha: float = Field(default=0.7, ge=0.0, le=1.0)

    # Retrieval
    default_k: int = Field(default=10, gt=0)
    candidate_multiplier: int = Field(default=3, gt=0)
    min_score_threshold: float = Field(default=0.1, ge=0.0, le=1.0)
    dedup_similarity_threshold: float = Field(default=0.75, ge=0.0, le=1.0)
    mmr_lambda: float = Field(default=0.7, gt=0.0, le=1.0)

    # Cross-encoder
    enable_cross_encoder: bool = True
    cross_encoder_model: str = "cross-encoder/ms-marco-MiniLM-L-6-v2"
    cross_encoder_max_length: int = 512
    cross_encoder_batch_size: int = 16

    # LLM listwise reranking
    enable_llm_rerank: bool = True
    llm_rerank_max_candidates: int = 15
    llm_rerank_snippet_chars: int = 300
    llm_rerank_timeout_s: float = 20.0
    llm_rerank_output_tokens: int = 256

    # Compression
    max_sentences_per_chunk: int = Field(default=8, gt=0)
    max_total_chars: int = Field(default=8000, gt=0)
    history_max_recent: int = Field(default=5, ge=0)

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    model_config = {"env_file": ".env", "env_prefix": "RETRIEVAL_"}
