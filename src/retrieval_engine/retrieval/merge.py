"""Round-robin merging of per-sub-query result lists."""

from __future__ import annotations

from collections.abc import Sequence

from retrieval_engine.config.constants import MAX_MERGE_ROUNDS
from retrieval_engine.models.domain import RankedCandidate


def merge_results(
    result_lists: Sequence[Sequence[RankedCandidate]],
    limit: int,
) -> list[RankedCandidate]:
    """Interleave sub-query results so no single sub-query owns the head.

    Each round takes the next unseen item from every list in turn. Duplicate
    ids keep their first (highest-placed) occurrence.
    """
    if not result_lists:
        return []
    if len(result_lists) == 1:
        return list(result_lists[0][:limit])

    merged: list[RankedCandidate] = []
    seen: set[str] = set()
    cursors = [0] * len(result_lists)

    for _ in range(MAX_MERGE_ROUNDS):
        if len(merged) >= limit:
            break
        progressed = False
        for i, results in enumerate(result_lists):
            if len(merged) >= limit:
                break
            while cursors[i] < len(results):
                item = results[cursors[i]]
                cursors[i] += 1
                if item.id not in seen:
                    seen.add(item.id)
                    merged.append(item)
                    progressed = True
                    break
        if not progressed:
            break

    return merged
