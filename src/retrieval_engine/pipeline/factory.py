"""Wiring of a QueryPipeline from Settings and the caller's candidate sources."""

from __future__ import annotations

from retrieval_engine.config.settings import Settings
from retrieval_engine.generation.gemini_provider import GeminiProvider
from retrieval_engine.observability.logger import configure_logging, get_logger
from retrieval_engine.pipeline.query_pipeline import QueryPipeline
from retrieval_engine.protocols.llm import LLMProvider
from retrieval_engine.protocols.reranker import Reranker
from retrieval_engine.protocols.retriever import CandidateSource
from retrieval_engine.retrieval.hybrid_retriever import HybridRetriever
from retrieval_engine.retrieval.reranker_cross_encoder import CrossEncoderReranker

logger = get_logger("factory")


def create_pipeline(
    vector_source: CandidateSource,
    text_source: CandidateSource,
    settings: Settings | None = None,
    llm: LLMProvider | None = None,
    cross_encoder: Reranker | None = None,
) -> QueryPipeline:
    """Build a pipeline, loading the cross-encoder and Gemini client as configured.

    Explicit ``llm`` / ``cross_encoder`` arguments take precedence over the
    ones built from settings. A missing cross-encoder model raises
    ``ModelLoadError``.
    """
    settings = settings or Settings()
    configure_logging(settings.log_level, settings.log_json)

    # Retrieval
    hybrid_retriever = HybridRetriever(
        vector_source=vector_source,
        text_source=text_source,
        fusion_method=settings.fusion_method,
        rrf_k=settings.rrf_k,
        score_weight=settings.score_weight,
        alpha=settings.hybrid_alpha,
        candidate_multiplier=settings.candidate_multiplier,
        min_score_threshold=settings.min_score_threshold,
        dedup_threshold=settings.dedup_similarity_threshold,
    )

    # Reranker
    if cross_encoder is None and settings.enable_cross_encoder:
        cross_encoder = CrossEncoderReranker(
            model_name=settings.cross_encoder_model,
            max_length=settings.cross_encoder_max_length,
            batch_size=settings.cross_encoder_batch_size,
        )

    # LLM
    if llm is None and settings.enable_llm_rerank and settings.google_api_key:
        llm = GeminiProvider(
            api_key=settings.google_api_key,
            model=settings.gemini_model,
            temperature=settings.gemini_temperature,
        )

    logger.info(
        "pipeline_ready",
        fusion_method=settings.fusion_method,
        cross_encoder=cross_encoder is not None,
        llm_rerank=llm is not None,
    )
    return QueryPipeline(
        hybrid_retriever=hybrid_retriever,
        settings=settings,
        cross_encoder=cross_encoder,
        llm=llm,
    )
