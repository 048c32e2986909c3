#!/usr/bin/env python3
"""Evaluate ingredient highlight matching against labeled recipes."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from highlight_config import DEFAULT_DATASET_DIR, DEFAULT_MIN_CONFIDENCE
from highlight_evaluation import evaluate_highlight_dir
from highlight_scoring import load_learned_model
from ingredient_matcher import MatcherOptions


def _pct(value: float) -> str:
    return f"{value * 100:.1f}%"


def main() -> int:
    parser = argparse.ArgumentParser(description="Evaluate ingredient highlight matching")
    parser.add_argument("--data-dir", type=Path, default=DEFAULT_DATASET_DIR)
    parser.add_argument("--min-confidence", type=float, default=DEFAULT_MIN_CONFIDENCE)
    parser.add_argument(
        "--model",
        type=Path,
        default=None,
        help="Score with a learned model JSON instead of the heuristic scorer",
    )
    parser.add_argument("--json", action="store_true", help="Print the full report as JSON")
    parser.add_argument("--report", type=Path, default=None, help="Optional output JSON report")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    learned_model = None
    if args.model is not None:
        if not args.model.exists():
            raise SystemExit(f"Model not found: {args.model}")
        learned_model = load_learned_model(args.model)

    options = MatcherOptions(
        min_confidence=args.min_confidence,
        use_learned_model=learned_model is not None,
        learned_model=learned_model,
    )

    try:
        result = evaluate_highlight_dir(args.data_dir, options)
    except FileNotFoundError as exc:
        raise SystemExit(str(exc)) from exc

    report = result.to_dict()
    if args.report is not None:
        args.report.parent.mkdir(parents=True, exist_ok=True)
        args.report.write_text(json.dumps(report, indent=2) + "\n", encoding="utf-8")

    if args.json:
        print(json.dumps(report, indent=2))
        return 1 if result.errors else 0

    aggregate = result.aggregate
    print("HIGHLIGHT EVALUATION REPORT")
    print(f"Evaluated {aggregate.total_recipes} labeled recipes from {args.data_dir}")
    if aggregate.skipped_unlabeled > 0:
        print(f"Skipped {aggregate.skipped_unlabeled} unlabeled recipes (expectedMatches empty).")

    print("Per-recipe metrics:")
    for sample in result.samples:
        print(
            f"- {sample.title or sample.id}: "
            f"P={_pct(sample.precision)} R={_pct(sample.recall)} F1={_pct(sample.f1)} "
            f"(TP={sample.tp}, FP={sample.fp}, FN={sample.fn})"
        )

    print("Aggregate:")
    print(f"  Macro Precision: {_pct(aggregate.macro_precision)}")
    print(f"  Macro Recall:    {_pct(aggregate.macro_recall)}")
    print(f"  Macro F1:        {_pct(aggregate.macro_f1)}")
    print(f"  Micro Precision: {_pct(aggregate.micro_precision)}")
    print(f"  Micro Recall:    {_pct(aggregate.micro_recall)}")
    print(f"  Micro F1:        {_pct(aggregate.micro_f1)}")
    print(f"  Totals: TP={aggregate.total_tp}, FP={aggregate.total_fp}, FN={aggregate.total_fn}")
    if args.report is not None:
        print(f"Report JSON: {args.report}")

    if result.errors:
        print("Unreadable dataset files:")
        for error in result.errors:
            print(f"  - {error}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
