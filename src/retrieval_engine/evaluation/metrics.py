"""Offline retrieval evaluation with standard IR metrics.

- Recall@K: fraction of relevant documents retrieved in the top K
- Precision@K: fraction of the top K that is relevant
- MRR: mean of 1/rank of the first relevant result
- nDCG@K: position-weighted relevance, binary or graded
- Hit Rate@K: fraction of queries with at least one relevant hit in the top K
"""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from retrieval_engine.models.schemas import EvalQuery

RankedIds = Sequence[tuple[str, float]]


@dataclass
class QueryMetrics:
    query: str
    reciprocal_rank: float
    recall_at_k: dict[int, float] = field(default_factory=dict)
    precision_at_k: dict[int, float] = field(default_factory=dict)
    ndcg_at_k: dict[int, float] = field(default_factory=dict)
    num_relevant: int = 0
    num_retrieved_relevant: int = 0


@dataclass
class EvalMetrics:
    num_queries: int
    mrr: float
    recall_at: dict[int, float]
    precision_at: dict[int, float]
    ndcg_at: dict[int, float]
    hit_rate_at: dict[int, float]
    per_query: list[QueryMetrics]


def _relevance(doc_id: str, eval_query: EvalQuery) -> float:
    if eval_query.graded_relevance:
        return eval_query.graded_relevance.get(doc_id, 0.0)
    return 1.0 if doc_id in eval_query.relevant_ids else 0.0


def _is_relevant(doc_id: str, eval_query: EvalQuery) -> bool:
    return _relevance(doc_id, eval_query) > 0.0


def ndcg_at_k(results: RankedIds, eval_query: EvalQuery, k: int) -> float:
    dcg = sum(
        _relevance(doc_id, eval_query) / math.log2(i + 2)
        for i, (doc_id, _) in enumerate(results[:k])
    )

    if eval_query.graded_relevance:
        ideal = sorted(eval_query.graded_relevance.values(), reverse=True)
    else:
        ideal = [1.0] * len(eval_query.relevant_ids)
    idcg = sum(rel / math.log2(i + 2) for i, rel in enumerate(ideal[:k]))

    return dcg / idcg if idcg > 0 else 0.0


def evaluate_single(
    eval_query: EvalQuery, results: RankedIds, k_values: Sequence[int]
) -> QueryMetrics:
    if eval_query.graded_relevance:
        num_relevant = len(eval_query.graded_relevance)
    else:
        num_relevant = len(eval_query.relevant_ids)

    reciprocal_rank = next(
        (1.0 / (i + 1) for i, (doc_id, _) in enumerate(results) if _is_relevant(doc_id, eval_query)),
        0.0,
    )

    qm = QueryMetrics(
        query=eval_query.query,
        reciprocal_rank=reciprocal_rank,
        num_relevant=num_relevant,
    )
    max_k = max(k_values, default=0)
    for k in k_values:
        top_k = results[:k]
        relevant_in_k = sum(1 for doc_id, _ in top_k if _is_relevant(doc_id, eval_query))

        qm.recall_at_k[k] = relevant_in_k / num_relevant if num_relevant else 0.0
        qm.precision_at_k[k] = relevant_in_k / max(len(top_k), 1) if k > 0 else 0.0
        qm.ndcg_at_k[k] = ndcg_at_k(results, eval_query, k)
        if k == max_k:
            qm.num_retrieved_relevant = relevant_in_k
    return qm


def evaluate(
    eval_set: Sequence[EvalQuery],
    k_values: Sequence[int],
    results_fn: Callable[[EvalQuery], RankedIds],
) -> EvalMetrics:
    """Evaluate ranked output of ``results_fn`` for every labelled query."""
    per_query = [evaluate_single(q, results_fn(q), k_values) for q in eval_set]
    n = max(len(eval_set), 1)

    def mean(values) -> float:
        return sum(values) / n

    return EvalMetrics(
        num_queries=len(eval_set),
        mrr=mean(qm.reciprocal_rank for qm in per_query),
        recall_at={k: mean(qm.recall_at_k[k] for qm in per_query) for k in k_values},
        precision_at={k: mean(qm.precision_at_k[k] for qm in per_query) for k in k_values},
        ndcg_at={k: mean(qm.ndcg_at_k[k] for qm in per_query) for k in k_values},
        hit_rate_at={
            k: mean(1.0 if qm.recall_at_k[k] > 0 else 0.0 for qm in per_query)
            for k in k_values
        },
        per_query=per_query,
    )


def format_report(metrics: EvalMetrics) -> str:
    """Render metrics as a table plus the queries that found nothing relevant."""
    lines = [
        f"=== Retrieval Evaluation Report ({metrics.num_queries} queries) ===",
        "",
        f"MRR: {metrics.mrr:.4f}",
        "",
        "| K  | Recall | Precision | nDCG   | Hit Rate |",
        "|----|--------|-----------|--------|----------|",
    ]
    for k in sorted(metrics.recall_at):
        lines.append(
            f"| {k:2} | {metrics.recall_at[k]:.4f} | {metrics.precision_at[k]:.4f}    "
            f"| {metrics.ndcg_at[k]:.4f} | {metrics.hit_rate_at[k]:.4f}   |"
        )

    failed = [qm for qm in metrics.per_query if qm.reciprocal_rank == 0.0]
    if failed:
        lines.append("")
        lines.append(f"--- Failed queries ({len(failed)}/{metrics.num_queries}) ---")
        for qm in failed:
            lines.append(f'  - "{qm.query}" (expected {qm.num_relevant} relevant docs)')

    return "\n".join(lines) + "\n"
