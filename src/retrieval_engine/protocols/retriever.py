"""Protocols for the vector and full-text retrieval backends."""

from __future__ import annotations

from typing import Protocol

from retrieval_engine.models.domain import CandidateResult


class CandidateSource(Protocol):
    """One backend (vector index or full-text index).

    Returns candidates ordered by the backend's own score, best first. IDs must
    be comparable across the vector and full-text sources for the same chunk.
    """

    async def search(self, query: str, limit: int) -> list[CandidateResult]: ...
