#!/usr/bin/env python3
"""Report weak highlight coverage across a dataset.

For every recipe, lists steps that received no ingredients and ingredient
lines that were never highlighted in any step.
"""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

from highlight_config import DEFAULT_DATASET_DIR
from highlight_dataset import HighlightSample, load_highlight_samples
from ingredient_matcher import map_ingredients_to_steps, normalize_ingredient_groups, normalize_instruction_groups

PREVIEW_LIMIT = 5


@dataclass
class RecipeGapReport:
    id: str
    title: str | None
    zero_match_steps: List[Dict[str, str]]
    unused_ingredients: List[Dict[str, str]]

    @property
    def has_issues(self) -> bool:
        return bool(self.zero_match_steps or self.unused_ingredients)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "zeroMatchSteps": self.zero_match_steps,
            "unusedIngredients": self.unused_ingredients,
        }


def analyze(sample: HighlightSample) -> RecipeGapReport:
    ingredients = normalize_ingredient_groups(sample.ingredients)
    instructions = normalize_instruction_groups(sample.instructions)
    mapping = map_ingredients_to_steps(ingredients, instructions)

    zero_match_steps: List[Dict[str, str]] = []
    used: set[str] = set()
    steps = [step for group in instructions for step in group.steps]
    for index, text in enumerate(steps):
        step_id = f"step-{index}"
        matches = mapping.get(step_id) or []
        if not matches:
            zero_match_steps.append({"id": step_id, "text": text})
        used.update(matches)

    unused_ingredients: List[Dict[str, str]] = []
    for group_index, group in enumerate(ingredients):
        for item_index, item in enumerate(group.items):
            ingredient_id = f"{group_index}-{item_index}"
            if ingredient_id not in used:
                unused_ingredients.append({"id": ingredient_id, "text": item})

    return RecipeGapReport(
        id=sample.id,
        title=sample.title,
        zero_match_steps=zero_match_steps,
        unused_ingredients=unused_ingredients,
    )


def _print_preview(heading: str, rows: List[Dict[str, str]]) -> None:
    print(f"  {heading} ({len(rows)}):")
    for row in rows[:PREVIEW_LIMIT]:
        print(f"    * {row['id']}: {row['text']}")
    if len(rows) > PREVIEW_LIMIT:
        print(f"    ...and {len(rows) - PREVIEW_LIMIT} more")


def main() -> int:
    parser = argparse.ArgumentParser(description="Report highlight coverage gaps")
    parser.add_argument("--data-dir", type=Path, default=DEFAULT_DATASET_DIR)
    parser.add_argument("--json", action="store_true", help="Print reports as JSON")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    try:
        loaded = load_highlight_samples(args.data_dir)
    except FileNotFoundError as exc:
        raise SystemExit(str(exc)) from exc

    reports = [analyze(sample) for sample in loaded.samples]

    if args.json:
        print(json.dumps([report.to_dict() for report in reports], indent=2))
        return 1 if loaded.errors else 0

    print(f"Scanned {len(reports)} recipes from {args.data_dir}")
    for report in reports:
        if not report.has_issues:
            continue
        print(f"- {report.title or report.id}")
        if report.zero_match_steps:
            _print_preview("Steps with zero matches", report.zero_match_steps)
        if report.unused_ingredients:
            _print_preview("Unused ingredients", report.unused_ingredients)

    for error in loaded.errors:
        print(f"Unreadable: {error}")
    return 1 if loaded.errors else 0


if __name__ == "__main__":
    raise SystemExit(main())
