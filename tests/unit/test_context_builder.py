"""Tests for context assembly and citations."""

from conftest import make_candidate

from retrieval_engine.generation.context_builder import assemble_context, build_citations
from retrieval_engine.models.domain import CompressedHistory


def test_citations_are_one_based():
    passages = [
        make_candidate("a", title="Lease", source="lease.pdf"),
        make_candidate("b", source="notes.txt"),
    ]
    citations = build_citations(passages)
    assert [(c.index, c.id, c.title, c.source) for c in citations] == [
        (1, "a", "Lease", "lease.pdf"),
        (2, "b", "", "notes.txt"),
    ]


def test_sections_in_order():
    a = make_candidate("a", title="Lease")
    b = make_candidate("b", source="notes.txt")
    history = CompressedHistory(summary=None, recent_messages=[("user", "earlier question")])

    text, citations = assemble_context(
        "PREAMBLE",
        [(a, "first passage"), (b, "second passage")],
        history=history,
        sub_queries=["part one", "part two"],
    )

    assert text.startswith("PREAMBLE\n\n")
    assert text.index("user: earlier question") < text.index("1. part one")
    assert text.index("1. part one") < text.index("Relevant passages:")
    assert "[1] Lease\nfirst passage" in text
    assert "[2] notes.txt\nsecond passage" in text
    assert [c.index for c in citations] == [1, 2]


def test_single_sub_query_adds_no_hint():
    text, _ = assemble_context("PREAMBLE", [], sub_queries=["only one"])
    assert text == "PREAMBLE"


def test_no_passages_means_no_citations():
    text, citations = assemble_context("PREAMBLE", [])
    assert citations == []
    assert "Relevant passages:" not in text
