"""Shared test fixtures."""

from __future__ import annotations

import asyncio

import numpy as np
import pytest

from retrieval_engine.models.domain import CandidateResult, RankedCandidate


def make_candidate(
    cid: str,
    score: float = 1.0,
    text: str | None = None,
    doc_id: str | None = None,
    title: str = "",
    source: str = "",
) -> RankedCandidate:
    metadata = {"doc_id": doc_id} if doc_id else {}
    return RankedCandidate(
        candidate=CandidateResult(
            id=cid,
            score=score,
            text=text if text is not None else f"Content of passage {cid}.",
            title=title,
            source=source,
            metadata=metadata,
        ),
        score=score,
    )


class FakeSource:
    """In-memory candidate source returning a fixed list per query."""

    def __init__(self, results: dict[str, list[CandidateResult]] | list[CandidateResult] | None = None,
                 error: Exception | None = None) -> None:
        self._results = results or []
        self._error = error
        self.calls: list[tuple[str, int]] = []

    async def search(self, query: str, limit: int) -> list[CandidateResult]:
        self.calls.append((query, limit))
        if self._error is not None:
            raise self._error
        if isinstance(self._results, dict):
            return self._results.get(query, [])[:limit]
        return self._results[:limit]


class FakeLLM:
    """Returns a canned response, optionally after a delay or by raising."""

    def __init__(self, response: str = "", delay: float = 0.0, error: Exception | None = None) -> None:
        self.response = response
        self.delay = delay
        self.error = error
        self.prompts: list[str] = []

    async def generate(self, prompt: str, max_tokens: int = 256) -> str:
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.response


class FakeTokenizer:
    def __init__(self, fail_on: set[str]) -> None:
        self._fail_on = fail_on

    def __call__(self, query, text, truncation=True, max_length=512):
        if text in self._fail_on:
            raise ValueError("cannot tokenize")
        return {"input_ids": [0] * min(len(text.split()) + 2, max_length)}


class FakeCrossEncoderModel:
    """Scores a pair by how many query words appear in the passage."""

    def __init__(self, fail_on: set[str] | None = None) -> None:
        self.tokenizer = FakeTokenizer(fail_on or set())
        self.batches: list[int] = []

    def predict(self, pairs, batch_size=32):
        self.batches.append(len(pairs))
        scores = []
        for query, text in pairs:
            words = set(text.lower().split())
            scores.append(float(sum(1 for w in query.lower().split() if w in words)))
        return np.array(scores, dtype=np.float32)


@pytest.fixture
def sample_candidates():
    return [make_candidate(f"c{i}", score=1.0 - i * 0.1) for i in range(5)]
