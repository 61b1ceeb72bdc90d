"""Cross-encoder reranker using sentence-transformers."""

from __future__ import annotations

import asyncio
import threading
from dataclasses import replace
from pathlib import Path

import numpy as np
from sentence_transformers import CrossEncoder

from retrieval_engine.exceptions import ModelLoadError, RerankError
from retrieval_engine.models.domain import RankedCandidate
from retrieval_engine.observability.logger import get_logger

logger = get_logger("reranker")

_LOCAL_PATH_PREFIXES = ("/", "./", "../", "~")


class CrossEncoderReranker:
    """Scores (query, passage) pairs jointly and reorders by relevance logit.

    The underlying model is shared by every caller; inference is serialized
    on a lock and runs in a worker thread.
    """

    def __init__(
        self,
        model_name: str = "cross-encoder/ms-marco-MiniLM-L-6-v2",
        max_length: int = 512,
        batch_size: int = 16,
        model: CrossEncoder | None = None,
    ) -> None:
        self._max_length = max_length
        self._batch_size = batch_size
        self._lock = threading.Lock()
        self._model = model if model is not None else self._load(model_name, max_length)

    @staticmethod
    def _load(model_name: str, max_length: int) -> CrossEncoder:
        path = Path(model_name).expanduser()
        if model_name.startswith(_LOCAL_PATH_PREFIXES) and not path.exists():
            raise ModelLoadError(f"Cross-encoder model not found at: {path}")
        try:
            model = CrossEncoder(model_name, max_length=max_length)
        except Exception as e:
            raise ModelLoadError(f"Failed to load cross-encoder '{model_name}': {e}") from e
        logger.info("cross_encoder_loaded", model=model_name, max_length=max_length)
        return model

    def score(self, query: str, document: str) -> float:
        """Relevance logit for a single pair. Higher is more relevant."""
        with self._lock:
            scores = self._model.predict([(query, document)], batch_size=1)
        return float(np.asarray(scores, dtype=np.float32).ravel()[0])

    async def rerank(
        self,
        query: str,
        candidates: list[RankedCandidate],
        top_n: int = 10,
    ) -> list[RankedCandidate]:
        if not candidates:
            return []

        # CrossEncoder.predict is synchronous, run in thread pool
        scored = await asyncio.to_thread(self._score_candidates, query, candidates)
        scored.sort(key=lambda c: c.score, reverse=True)
        result = scored[:top_n]

        logger.info(
            "reranked",
            input_count=len(candidates),
            scored_count=len(scored),
            output_count=len(result),
            top_score=round(result[0].score, 4) if result else 0.0,
        )
        return result

    def _score_candidates(
        self, query: str, candidates: list[RankedCandidate]
    ) -> list[RankedCandidate]:
        scored: list[RankedCandidate] = []
        for start in range(0, len(candidates), self._batch_size):
            batch = candidates[start : start + self._batch_size]
            # The tokenizer belongs to the shared model, so the pre-check runs
            # under the same lock as inference.
            with self._lock:
                # Keep each pair next to its candidate so a skipped one can't shift scores.
                encodable = [c for c in batch if self._can_encode(query, c)]
                if not encodable:
                    continue

                pairs = [(query, c.text) for c in encodable]
                try:
                    raw = self._model.predict(pairs, batch_size=self._batch_size)
                except Exception as e:
                    raise RerankError(f"Cross-encoder inference failed: {e}") from e
            logits = np.asarray(raw, dtype=np.float32).reshape(len(encodable), -1)[:, 0]

            for candidate, logit in zip(encodable, logits):
                scored.append(replace(candidate, score=float(logit)))
        return scored

    def _can_encode(self, query: str, candidate: RankedCandidate) -> bool:
        try:
            self._model.tokenizer(
                query,
                candidate.text,
                truncation=True,
                max_length=self._max_length,
            )
        except Exception as e:
            logger.warning("tokenization_failed", candidate_id=candidate.id, error=str(e))
            return False
        return True
