"""Tests for round-robin merging of sub-query results."""

from conftest import make_candidate

from retrieval_engine.retrieval.merge import merge_results


def test_round_robin_interleaves():
    a = [make_candidate("A0"), make_candidate("A1"), make_candidate("A2")]
    b = [make_candidate("B0"), make_candidate("B1")]
    merged = merge_results([a, b], limit=4)
    assert [c.id for c in merged] == ["A0", "B0", "A1", "B1"]


def test_duplicates_keep_first_occurrence():
    a = [make_candidate("x"), make_candidate("A1")]
    b = [make_candidate("x"), make_candidate("B1")]
    merged = merge_results([a, b], limit=10)
    assert [c.id for c in merged] == ["x", "B1", "A1"]


def test_single_list_is_truncated():
    a = [make_candidate(f"A{i}") for i in range(5)]
    assert [c.id for c in merge_results([a], limit=2)] == ["A0", "A1"]


def test_exhausted_lists_stop():
    a = [make_candidate("A0")]
    b = [make_candidate("B0"), make_candidate("B1"), make_candidate("B2")]
    merged = merge_results([a, b], limit=10)
    assert [c.id for c in merged] == ["A0", "B0", "B1", "B2"]


def test_empty_input():
    assert merge_results([], limit=5) == []
    assert merge_results([[], []], limit=5) == []
