"""Hybrid retriever combining vector + full-text candidate sources with rank fusion."""

from __future__ import annotations

import asyncio

from retrieval_engine.exceptions import RetrievalError
from retrieval_engine.models.domain import CandidateResult, RankedCandidate
from retrieval_engine.observability.logger import get_logger
from retrieval_engine.protocols.retriever import CandidateSource
from retrieval_engine.retrieval.postprocess import deduplicate_near_identical, filter_by_score
from retrieval_engine.retrieval.rrf import FusionMethod, fuse

logger = get_logger("hybrid_retriever")


class HybridRetriever:
    def __init__(
        self,
        vector_source: CandidateSource,
        text_source: CandidateSource,
        fusion_method: FusionMethod = "score_aware_rrf",
        rrf_k: int = 60,
        score_weight: float = 0.3,
        alpha: float = 0.7,
        candidate_multiplier: int = 3,
        min_score_threshold: float = 0.1,
        dedup_threshold: float = 0.75,
    ) -> None:
        self._vector_source = vector_source
        self._text_source = text_source
        self._fusion_method = fusion_method
        self._rrf_k = rrf_k
        self._score_weight = score_weight
        self._alpha = alpha
        self._candidate_multiplier = candidate_multiplier
        self._min_score_threshold = min_score_threshold
        self._dedup_threshold = dedup_threshold

    async def retrieve(self, query: str, k: int = 10) -> list[RankedCandidate]:
        fetch_k = k * self._candidate_multiplier

        # 1. Concurrent retrieval from both sources
        try:
            vector_results, text_results = await asyncio.gather(
                self._vector_source.search(query, fetch_k),
                self._text_source.search(query, fetch_k),
            )
        except Exception as e:
            raise RetrievalError(f"Candidate retrieval failed: {e}") from e

        logger.info(
            "retrieval_results",
            vector_count=len(vector_results),
            text_count=len(text_results),
        )

        # 2. Rank fusion
        fused = fuse(
            self._fusion_method,
            [(r.id, r.score) for r in vector_results],
            [(r.id, r.score) for r in text_results],
            top_k=fetch_k,
            k=self._rrf_k,
            score_weight=self._score_weight,
            alpha=self._alpha,
        )
        if not fused:
            return []

        # 3. Join fused ids back to candidates, vector hit first
        by_id: dict[str, CandidateResult] = {}
        for result in (*text_results, *vector_results):
            by_id[result.id] = result

        candidates = []
        for hit in fused:
            candidate = by_id.get(hit.id)
            if candidate is not None:
                candidates.append(
                    RankedCandidate(candidate=candidate, score=hit.score, provenance=hit.provenance)
                )

        # 4. Threshold + near-duplicate removal. Plain RRF scores are not on a [0, 1] scale.
        if self._fusion_method != "rrf":
            candidates = filter_by_score(candidates, self._min_score_threshold)
        candidates = deduplicate_near_identical(candidates, self._dedup_threshold)

        logger.info(
            "fusion_complete",
            method=self._fusion_method,
            fused=len(fused),
            kept=len(candidates),
        )
        return candidates
