"""Protocol for neural rerankers applied to one sub-query's fused candidates."""

from __future__ import annotations

from typing import Protocol

from retrieval_engine.models.domain import RankedCandidate


class Reranker(Protocol):
    """Rescores candidates against the query.

    The result holds at most ``top_n`` candidates with the model's score in
    ``score``. Candidates the model cannot score may be left out; callers
    decide where those go.
    """

    async def rerank(
        self,
        query: str,
        candidates: list[RankedCandidate],
        top_n: int = 10,
    ) -> list[RankedCandidate]: ...
