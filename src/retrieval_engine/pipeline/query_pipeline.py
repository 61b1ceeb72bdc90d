"""Query pipeline orchestrator: from raw question to a budgeted, cited context."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence

from retrieval_engine.compression.context_compressor import compress_context
from retrieval_engine.compression.history import compress_history
from retrieval_engine.config.settings import Settings
from retrieval_engine.exceptions import RetrievalError
from retrieval_engine.generation.context_builder import assemble_context
from retrieval_engine.models.domain import BuiltContext, QueryAnalysis, RankedCandidate
from retrieval_engine.models.schemas import CorpusStats
from retrieval_engine.observability.logger import get_logger
from retrieval_engine.observability.metrics import (
    log_fusion_metrics,
    log_latency,
    log_rerank_metrics,
)
from retrieval_engine.observability.tracing import TraceContext
from retrieval_engine.protocols.llm import LLMProvider
from retrieval_engine.protocols.reranker import Reranker
from retrieval_engine.query.analyzer import QueryAnalyzer
from retrieval_engine.query.context_tier import build_context_for_query
from retrieval_engine.query.decomposition import decompose_query
from retrieval_engine.retrieval.hybrid_retriever import HybridRetriever
from retrieval_engine.retrieval.merge import merge_results
from retrieval_engine.retrieval.postprocess import apply_document_diversity
from retrieval_engine.retrieval.reranker_llm import llm_rerank

logger = get_logger("query_pipeline")

Message = tuple[str, str]


class QueryPipeline:
    def __init__(
        self,
        hybrid_retriever: HybridRetriever,
        settings: Settings,
        cross_encoder: Reranker | None = None,
        llm: LLMProvider | None = None,
        analyzer: QueryAnalyzer | None = None,
    ) -> None:
        self._retriever = hybrid_retriever
        self._settings = settings
        self._cross_encoder = cross_encoder if settings.enable_cross_encoder else None
        self._llm = llm if settings.enable_llm_rerank else None
        self._analyzer = analyzer or QueryAnalyzer()

    async def build_context(
        self,
        query: str,
        history: Sequence[Message] | None = None,
        corpus_stats: CorpusStats | Mapping | None = None,
        k: int | None = None,
    ) -> BuiltContext:
        """Run the full retrieval path and return the generation context.

        Soft failures (a failing source, reranker errors, LLM timeouts) only
        degrade ranking. A blank query skips retrieval. Malformed
        ``corpus_stats`` raises ``CorpusStatsError``.
        """
        trace = TraceContext()
        k = k or self._settings.default_k

        # STEP 1: Intent tier + corpus-aware retrieval decision
        with trace.span("analysis"):
            preamble, intent, tier = build_context_for_query(query)
            analysis: QueryAnalysis | None = None
            if corpus_stats is not None:
                analysis = self._analyzer.analyze(query, corpus_stats)

        if not query.strip():
            should_retrieve, skip_reason = False, "empty query"
        elif analysis is not None and not analysis.decision.should_retrieve:
            should_retrieve, skip_reason = False, analysis.decision.reasoning
        else:
            should_retrieve, skip_reason = True, None
        decomposed = None
        passages: list[RankedCandidate] = []

        if should_retrieve:
            # STEP 2: Decomposition
            with trace.span("decomposition"):
                decomposed = decompose_query(query)

            # STEP 3: Per-sub-query retrieval, fusion and cross-encoder rerank
            with trace.span("retrieval", sub_queries=len(decomposed.sub_queries)):
                per_query = await asyncio.gather(
                    *(self._retrieve_sub_query(sq, k, trace.trace_id) for sq in decomposed.sub_queries)
                )

            # STEP 4: Merge across sub-queries
            with trace.span("fusion"):
                passages = merge_results(per_query, k)
            log_fusion_metrics(trace.trace_id, len(decomposed.sub_queries), passages)

            # STEP 5: Listwise LLM rerank of merged multi-part results
            if self._llm is not None and len(decomposed.sub_queries) > 1 and len(passages) > 1:
                with trace.span("llm_rerank") as span:
                    before = passages
                    passages = await llm_rerank(
                        self._llm,
                        query,
                        passages,
                        max_candidates=self._settings.llm_rerank_max_candidates,
                        snippet_chars=self._settings.llm_rerank_snippet_chars,
                        timeout_s=self._settings.llm_rerank_timeout_s,
                        output_tokens=self._settings.llm_rerank_output_tokens,
                    )
                log_rerank_metrics(trace.trace_id, "llm", before, passages)
                log_latency(trace.trace_id, "llm_rerank", span.duration_ms)
        else:
            logger.info(
                "retrieval_skipped",
                trace_id=trace.trace_id,
                intent=analysis.intent.value if analysis else None,
                reason=skip_reason,
            )

        # STEP 6: Compression of passages and history
        with trace.span("compression"):
            compressed = compress_context(
                passages,
                query,
                max_sentences_per_chunk=self._settings.max_sentences_per_chunk,
                max_total_chars=self._settings.max_total_chars,
            )
            compressed_history = (
                compress_history(history, self._settings.history_max_recent)
                if history
                else None
            )

        text, citations = assemble_context(
            preamble,
            compressed,
            history=compressed_history,
            sub_queries=decomposed.sub_queries if decomposed else (),
        )

        logger.info(
            "context_built",
            trace_id=trace.trace_id,
            tier=tier.value,
            passages=len(citations),
            chars=len(text),
            latency_ms=round(trace.elapsed_ms, 2),
            stages=trace.stage_latencies(),
        )

        return BuiltContext(
            text=text,
            citations=citations,
            passages=[candidate for candidate, _ in compressed],
            intent=intent,
            tier=tier,
            decomposition=decomposed,
            analysis=analysis,
            trace=trace.to_trace(query),
        )

    async def _retrieve_sub_query(
        self, sub_query: str, k: int, trace_id: str
    ) -> list[RankedCandidate]:
        try:
            candidates = await self._retriever.retrieve(sub_query, k)
        except RetrievalError as e:
            logger.warning("sub_query_retrieval_failed", trace_id=trace_id, error=str(e))
            return []

        if self._cross_encoder is not None and candidates:
            candidates = await self._cross_encode(sub_query, candidates, trace_id)

        candidates = apply_document_diversity(candidates, self._settings.mmr_lambda)
        return candidates[:k]

    async def _cross_encode(
        self, sub_query: str, candidates: list[RankedCandidate], trace_id: str
    ) -> list[RankedCandidate]:
        try:
            reranked = await self._cross_encoder.rerank(
                sub_query, candidates, top_n=len(candidates)
            )
        except Exception as e:
            logger.warning("cross_encoder_failed", trace_id=trace_id, error=str(e))
            return candidates

        # Candidates the model could not score are dropped; their fused scores
        # are not comparable with logits.
        if not reranked:
            logger.warning(
                "cross_encoder_scored_nothing", trace_id=trace_id, candidates=len(candidates)
            )
            return candidates
        log_rerank_metrics(trace_id, "cross_encoder", candidates, reranked)
        return reranked
