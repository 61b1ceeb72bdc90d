"""Tests for rank fusion policies."""

import pytest

from retrieval_engine.models.domain import Provenance
from retrieval_engine.retrieval.rrf import (
    fuse,
    reciprocal_rank_fusion,
    score_aware_rrf,
    weighted_fusion,
)


def test_rrf_single_list():
    results = [("a", 0.9), ("b", 0.8), ("c", 0.7)]
    fused = reciprocal_rank_fusion(results, [], k=60)
    assert [r.id for r in fused] == ["a", "b", "c"]
    assert all(r.provenance is Provenance.VECTOR for r in fused)


def test_rrf_overlap_beats_single_list():
    vector = [("a", 0.9), ("b", 0.8)]
    text = [("b", 12.0), ("c", 9.0)]
    fused = reciprocal_rank_fusion(vector, text, k=60)
    assert fused[0].id == "b"
    assert fused[0].provenance is Provenance.BOTH
    assert fused[0].score == pytest.approx(1 / 62 + 1 / 61)


def test_rrf_disjoint_lists_tie_vector_first():
    fused = reciprocal_rank_fusion([("a", 0.9)], [("b", 0.9)], k=60)
    assert [r.id for r in fused] == ["a", "b"]
    assert fused[0].score == fused[1].score


def test_rrf_empty():
    assert reciprocal_rank_fusion([], [], k=60) == []


def test_rrf_top_k_truncates():
    vector = [(f"v{i}", 1.0) for i in range(10)]
    fused = reciprocal_rank_fusion(vector, [], top_k=3)
    assert [r.id for r in fused] == ["v0", "v1", "v2"]


def test_rrf_preserves_rank_order():
    ranked = [("a", 0.9), ("b", 0.8), ("c", 0.7)]
    fused = reciprocal_rank_fusion(ranked, ranked, k=60)
    assert [r.id for r in fused] == ["a", "b", "c"]


def test_score_aware_rrf_normalized_to_top():
    vector = [("a", 0.9), ("b", 0.5), ("c", 0.1)]
    text = [("c", 20.0), ("d", 3.0)]
    fused = score_aware_rrf(vector, text, k=60)
    assert fused[0].score == pytest.approx(1.0)
    assert all(0.0 <= r.score <= 1.0 for r in fused)


def test_score_aware_rrf_without_weight_matches_rrf_order():
    vector = [("a", 0.9), ("b", 0.5), ("c", 0.1)]
    text = [("c", 20.0), ("b", 3.0)]
    plain = [r.id for r in reciprocal_rank_fusion(vector, text)]
    aware = [r.id for r in score_aware_rrf(vector, text, score_weight=0.0)]
    assert aware == plain


def test_score_aware_rrf_rewards_raw_score_gap():
    # Plain RRF ties a and b; only a is strong in both lists.
    vector = [("a", 0.99), ("b", 0.10)]
    text = [("b", 5.0), ("a", 4.9), ("x", 0.0)]
    fused = score_aware_rrf(vector, text, score_weight=0.5)
    assert fused[0].id == "a"


def test_weighted_fusion_alpha_one_follows_vector():
    vector = [("a", 0.9), ("b", 0.5)]
    text = [("b", 10.0), ("a", 1.0)]
    fused = weighted_fusion(vector, text, alpha=1.0)
    assert [r.id for r in fused] == ["a", "b"]


def test_weighted_fusion_missing_side_contributes_zero():
    vector = [("a", 1.0), ("b", 0.0)]
    text = [("c", 5.0), ("d", 1.0)]
    fused = {r.id: r.score for r in weighted_fusion(vector, text, alpha=0.7)}
    assert fused["a"] == pytest.approx(0.7)
    assert fused["c"] == pytest.approx(0.3)
    assert fused["b"] == pytest.approx(0.0)


def test_fuse_dispatch():
    vector = [("a", 0.9)]
    assert fuse("rrf", vector, [])[0].id == "a"
    assert fuse("score_aware_rrf", vector, [])[0].score == pytest.approx(1.0)
    assert fuse("weighted", vector, [], alpha=0.5)[0].id == "a"


def test_fuse_unknown_method():
    with pytest.raises(ValueError):
        fuse("borda", [], [])
