"""Tests for the hybrid retriever."""

import pytest
from conftest import FakeSource

from retrieval_engine.exceptions import RetrievalError
from retrieval_engine.models.domain import CandidateResult, Provenance
from retrieval_engine.retrieval.hybrid_retriever import HybridRetriever


def _result(cid, score, text=None):
    return CandidateResult(id=cid, score=score, text=text or f"passage {cid} text body")


async def test_fuses_both_sources():
    vector = FakeSource([_result("a", 0.9), _result("b", 0.8)])
    text = FakeSource([_result("b", 7.0), _result("c", 3.0)])
    retriever = HybridRetriever(vector, text, fusion_method="rrf")

    results = await retriever.retrieve("query", k=2)

    assert results[0].id == "b"
    assert results[0].provenance is Provenance.BOTH
    assert {r.id for r in results} == {"a", "b", "c"}


async def test_fetches_oversampled_candidates():
    vector = FakeSource([])
    text = FakeSource([])
    retriever = HybridRetriever(vector, text, candidate_multiplier=4)

    assert await retriever.retrieve("query", k=5) == []
    assert vector.calls == [("query", 20)]
    assert text.calls == [("query", 20)]


async def test_vector_candidate_preferred_on_join():
    vector = FakeSource([_result("a", 0.9, text="vector copy of the passage")])
    text = FakeSource([_result("a", 5.0, text="text copy of the passage")])
    retriever = HybridRetriever(vector, text)

    results = await retriever.retrieve("query", k=1)
    assert results[0].text == "vector copy of the passage"


async def test_score_threshold_applies_to_normalized_fusion():
    vector = FakeSource([_result("a", 1.0), _result("b", 0.0)])
    text = FakeSource([])
    retriever = HybridRetriever(vector, text, fusion_method="weighted", min_score_threshold=0.1)

    results = await retriever.retrieve("query", k=5)
    assert [r.id for r in results] == ["a"]


async def test_near_duplicates_removed():
    same = "identical passage text about the lease agreement terms"
    vector = FakeSource([_result("a", 0.9, text=same), _result("b", 0.8, text=same)])
    retriever = HybridRetriever(vector, FakeSource([]), fusion_method="rrf")

    results = await retriever.retrieve("query", k=5)
    assert [r.id for r in results] == ["a"]


async def test_source_failure_raises_retrieval_error():
    vector = FakeSource(error=ConnectionError("index offline"))
    retriever = HybridRetriever(vector, FakeSource([]))

    with pytest.raises(RetrievalError):
        await retriever.retrieve("query", k=5)
