"""Compare fusion policies on a labelled evaluation set.

The eval file is a JSON list of objects with ``query``, ``relevant_ids``
(or ``graded_relevance``) and the pre-computed ``vector_results`` and
``text_results`` lists of ``{"id": ..., "score": ...}``.

Usage:
    python scripts/run_eval.py data/eval_set.json [--k 1 3 5 10] [--output PATH]
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict
from pathlib import Path

# Add src to path so the script runs from a plain checkout
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pydantic import TypeAdapter

from retrieval_engine.config.settings import Settings
from retrieval_engine.evaluation.metrics import EvalMetrics, evaluate, format_report
from retrieval_engine.models.schemas import EvalQuery
from retrieval_engine.retrieval.rrf import fuse

FUSION_METHODS = ("rrf", "score_aware_rrf", "weighted")


def load_eval_set(path: Path) -> list[EvalQuery]:
    with open(path) as f:
        return TypeAdapter(list[EvalQuery]).validate_python(json.load(f))


def run_method(
    method: str, eval_set: list[EvalQuery], k_values: list[int], settings: Settings
) -> EvalMetrics:
    top_k = max(k_values)

    def results_fn(q: EvalQuery) -> list[tuple[str, float]]:
        fused = fuse(
            method,
            [(r.id, r.score) for r in q.vector_results],
            [(r.id, r.score) for r in q.text_results],
            top_k=top_k,
            k=settings.rrf_k,
            score_weight=settings.score_weight,
            alpha=settings.hybrid_alpha,
        )
        return [(r.id, r.score) for r in fused]

    return evaluate(eval_set, k_values, results_fn)


def print_header(title: str) -> None:
    print(f"\n{'=' * 64}")
    print(f"  {title}")
    print(f"{'=' * 64}")


def print_comparison(results: dict[str, EvalMetrics], k_values: list[int]) -> None:
    print_header("FUSION POLICY COMPARISON")
    k = max(k_values)
    print(f"  {'Method':<18} {'MRR':>8} {f'nDCG@{k}':>10} {f'Recall@{k}':>10}")
    print(f"  {'-' * 50}")
    for method, m in results.items():
        print(f"  {method:<18} {m.mrr:>8.4f} {m.ndcg_at[k]:>10.4f} {m.recall_at[k]:>10.4f}")


def save_results(results: dict[str, EvalMetrics], output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        json.dump({method: asdict(m) for method, m in results.items()}, f, indent=2)
    print(f"\nRaw results saved to {output_path}")


def main(eval_path: Path, k_values: list[int], output_path: Path | None) -> None:
    settings = Settings()
    eval_set = load_eval_set(eval_path)
    print(f"Evaluating {len(eval_set)} queries from {eval_path}")

    results = {}
    for method in FUSION_METHODS:
        metrics = run_method(method, eval_set, k_values, settings)
        results[method] = metrics
        print_header(method)
        print(format_report(metrics))

    print_comparison(results, k_values)
    if output_path is not None:
        save_results(results, output_path)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Evaluate rank fusion policies")
    parser.add_argument("eval_set", help="Path to the labelled eval JSON file")
    parser.add_argument(
        "--k",
        type=int,
        nargs="+",
        default=[1, 3, 5, 10],
        help="K values to report metrics at (default: 1 3 5 10)",
    )
    parser.add_argument("--output", default=None, help="Optional path to save raw metrics JSON")
    args = parser.parse_args()
    main(Path(args.eval_set), args.k, Path(args.output) if args.output else None)
