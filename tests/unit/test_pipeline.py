"""Tests for the query pipeline, with in-memory sources and models."""

import pytest
from conftest import FakeCrossEncoderModel, FakeLLM, FakeSource, make_candidate

from retrieval_engine.config.settings import Settings
from retrieval_engine.models.domain import ContextTier, DecompositionStrategy
from retrieval_engine.models.schemas import CorpusStats
from retrieval_engine.pipeline.query_pipeline import QueryPipeline
from retrieval_engine.retrieval.hybrid_retriever import HybridRetriever
from retrieval_engine.retrieval.reranker_cross_encoder import CrossEncoderReranker

PAN_Q = "What is the PAN number?"
SALARY_Q = "What is the salary?"


def _results(*specs):
    return [make_candidate(cid, score, text=text).candidate for cid, score, text in specs]


@pytest.fixture
def vector_source():
    return FakeSource(
        {
            PAN_Q: _results(
                ("pan1", 0.9, "The PAN number is ABCDE1234F."),
                ("pan2", 0.8, "PAN cards are issued by the tax department."),
            ),
            SALARY_Q: _results(
                ("sal1", 0.9, "The monthly salary is 85000 rupees."),
                ("sal2", 0.8, "Salary is credited on the first working day."),
            ),
            "what is the notice period in the lease": _results(
                ("lease1", 0.9, "The notice period in the lease is sixty days."),
                ("lease2", 0.8, "Rent is payable monthly in advance."),
                ("lease3", 0.7, "The landlord maintains the building exterior."),
            ),
        }
    )


def _pipeline(vector_source, text_source=None, settings=None, **kwargs):
    settings = settings or Settings(enable_cross_encoder=False, enable_llm_rerank=False)
    retriever = HybridRetriever(vector_source, text_source or FakeSource([]), fusion_method="rrf")
    return QueryPipeline(retriever, settings, **kwargs)


async def test_single_query_builds_cited_context(vector_source):
    pipeline = _pipeline(vector_source)

    built = await pipeline.build_context("what is the notice period in the lease", k=2)

    assert built.tier is ContextTier.RAG
    assert built.decomposition.strategy is DecompositionStrategy.SINGLE
    assert [p.id for p in built.passages] == ["lease1", "lease2"]
    assert [c.index for c in built.citations] == [1, 2]
    assert "Relevant passages:" in built.text
    assert "[1]\nThe notice period in the lease is sixty days." in built.text
    span_names = [s["name"] for s in built.trace.spans]
    assert span_names == ["analysis", "decomposition", "retrieval", "fusion", "compression"]


async def test_multi_question_is_merged_and_llm_reranked(vector_source):
    llm = FakeLLM(response="[4, 3, 2, 1]")
    settings = Settings(enable_cross_encoder=False, enable_llm_rerank=True)
    pipeline = _pipeline(vector_source, settings=settings, llm=llm)

    built = await pipeline.build_context(f"{PAN_Q} {SALARY_Q}", k=4)

    assert built.decomposition.sub_queries == [PAN_Q, SALARY_Q]
    assert len(llm.prompts) == 1
    # Round-robin merge gives pan1, sal1, pan2, sal2; the model reverses it.
    assert [p.id for p in built.passages] == ["sal2", "pan2", "sal1", "pan1"]
    assert "The question has these parts:" in built.text
    assert "llm_rerank" in [s["name"] for s in built.trace.spans]


async def test_single_query_skips_llm_rerank(vector_source):
    llm = FakeLLM(response="[3, 2, 1]")
    settings = Settings(enable_cross_encoder=False, enable_llm_rerank=True)
    pipeline = _pipeline(vector_source, settings=settings, llm=llm)

    await pipeline.build_context("what is the notice period in the lease", k=3)
    assert llm.prompts == []


async def test_disabled_llm_rerank_is_not_used(vector_source):
    llm = FakeLLM(response="[4, 3, 2, 1]")
    pipeline = _pipeline(vector_source, llm=llm)

    await pipeline.build_context(f"{PAN_Q} {SALARY_Q}", k=4)
    assert llm.prompts == []


async def test_cross_encoder_drops_unscored_candidates(vector_source):
    model = FakeCrossEncoderModel(fail_on={"The notice period in the lease is sixty days."})
    settings = Settings(enable_cross_encoder=True, enable_llm_rerank=False)
    pipeline = _pipeline(
        vector_source,
        settings=settings,
        cross_encoder=CrossEncoderReranker(model=model),
    )

    built = await pipeline.build_context("what is the notice period in the lease", k=3)

    assert {p.id for p in built.passages} == {"lease2", "lease3"}


async def test_unscored_candidate_never_outranks_low_logits():
    # "top" has the best fused score but cannot be tokenized; "rel" scores 0.0.
    source = FakeSource(
        _results(
            ("top", 0.9, "Renewal terms are negotiated annually by both parties."),
            ("rel", 0.8, "Lease expiry falls on the last day of March."),
        )
    )
    model = FakeCrossEncoderModel(
        fail_on={"Renewal terms are negotiated annually by both parties."}
    )
    settings = Settings(enable_cross_encoder=True, enable_llm_rerank=False)
    pipeline = _pipeline(
        source, settings=settings, cross_encoder=CrossEncoderReranker(model=model)
    )

    built = await pipeline.build_context("when does it expire", k=2)

    assert [(p.id, p.score) for p in built.passages] == [("rel", 0.0)]


async def test_cross_encoder_scoring_nothing_keeps_fused_order(vector_source):
    texts = {
        "The notice period in the lease is sixty days.",
        "Rent is payable monthly in advance.",
        "The landlord maintains the building exterior.",
    }
    settings = Settings(enable_cross_encoder=True, enable_llm_rerank=False)
    pipeline = _pipeline(
        vector_source,
        settings=settings,
        cross_encoder=CrossEncoderReranker(model=FakeCrossEncoderModel(fail_on=texts)),
    )

    built = await pipeline.build_context("what is the notice period in the lease", k=3)
    assert [p.id for p in built.passages] == ["lease1", "lease2", "lease3"]


async def test_cross_encoder_failure_keeps_fused_order(vector_source):
    class BrokenReranker:
        async def rerank(self, query, candidates, top_n=10):
            raise RuntimeError("CUDA out of memory")

    settings = Settings(enable_cross_encoder=True, enable_llm_rerank=False)
    pipeline = _pipeline(vector_source, settings=settings, cross_encoder=BrokenReranker())

    built = await pipeline.build_context("what is the notice period in the lease", k=3)
    assert [p.id for p in built.passages] == ["lease1", "lease2", "lease3"]


async def test_failing_source_degrades_to_empty_context():
    pipeline = _pipeline(FakeSource(error=ConnectionError("index offline")))

    built = await pipeline.build_context("what is the notice period in the lease")

    assert built.passages == []
    assert built.citations == []
    assert "Relevant passages:" not in built.text


async def test_analyzer_can_skip_retrieval(vector_source):
    pipeline = _pipeline(vector_source)

    built = await pipeline.build_context("hello", corpus_stats=CorpusStats(total_docs=5))

    assert built.analysis is not None
    assert built.analysis.decision.should_retrieve is False
    assert built.decomposition is None
    assert vector_source.calls == []
    assert built.tier is ContextTier.MINIMAL


async def test_history_is_included(vector_source):
    pipeline = _pipeline(vector_source)
    history = [("user", "who is the landlord?"), ("assistant", "Acme Properties.")]

    built = await pipeline.build_context(
        "what is the notice period in the lease", history=history, k=1
    )

    assert "Conversation History" in built.text
    assert "user: who is the landlord?" in built.text


@pytest.mark.parametrize("query", ["", "   "])
async def test_blank_query_skips_retrieval(vector_source, query):
    pipeline = _pipeline(vector_source)

    built = await pipeline.build_context(query)

    assert built.decomposition is None
    assert built.passages == []
    assert vector_source.calls == []
