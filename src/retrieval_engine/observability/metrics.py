"""Metric recording helpers for traces."""

from __future__ import annotations

from retrieval_engine.models.domain import Provenance, RankedCandidate
from retrieval_engine.observability.logger import get_logger

logger = get_logger("metrics")


def log_fusion_metrics(
    trace_id: str,
    sub_queries: int,
    candidates: list[RankedCandidate],
) -> None:
    provenance_counts = {p.value: 0 for p in Provenance}
    for c in candidates:
        if c.provenance is not None:
            provenance_counts[c.provenance.value] += 1
    logger.info(
        "fusion_metrics",
        trace_id=trace_id,
        sub_queries=sub_queries,
        num_candidates=len(candidates),
        top_scores=[round(c.score, 4) for c in candidates[:5]],
        **provenance_counts,
    )


def log_rerank_metrics(
    trace_id: str,
    stage: str,
    before: list[RankedCandidate],
    after: list[RankedCandidate],
) -> None:
    before_ids = [c.id for c in before]
    after_ids = [c.id for c in after]
    logger.info(
        "rerank_metrics",
        trace_id=trace_id,
        stage=stage,
        input_count=len(before),
        output_count=len(after),
        order_changed=before_ids[: len(after_ids)] != after_ids,
        top_id=after_ids[0] if after_ids else None,
    )


def log_latency(trace_id: str, stage: str, duration_ms: float) -> None:
    logger.info(
        "latency",
        trace_id=trace_id,
        stage=stage,
        duration_ms=round(duration_ms, 2),
    )
