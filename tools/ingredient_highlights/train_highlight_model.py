#!/usr/bin/env python3
"""Train the linear highlight model from labeled recipes.

Every (step, ingredient) pair in a labeled recipe becomes one example: the
candidate feature vector, labeled 1 when the ingredient is expected for the
step. The fitted weights are written as JSON for `--model` in the evaluator.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Tuple

from highlight_config import DEFAULT_DATASET_DIR, DEFAULT_MODEL_PATH
from highlight_dataset import HighlightSample, load_highlight_samples
from highlight_scoring import CandidateFeatures, save_learned_model, train_logistic
from ingredient_matcher import (
    build_processed_ingredients,
    build_step_features,
    head_noun_counts,
    match_candidate,
    normalize_ingredient_groups,
    normalize_instruction_groups,
)


def collect_examples(sample: HighlightSample) -> List[Tuple[CandidateFeatures, int]]:
    ingredients = build_processed_ingredients(normalize_ingredient_groups(sample.ingredients))
    steps = build_step_features(normalize_instruction_groups(sample.instructions))
    head_counts = head_noun_counts(ingredients)
    expected = sample.expected_matches or {}

    examples: List[Tuple[CandidateFeatures, int]] = []
    for step in steps:
        gold = set(expected.get(step.id) or [])
        for ingredient in ingredients:
            match = match_candidate(ingredient, step, head_counts)
            examples.append((match.features, 1 if ingredient.id in gold else 0))
    return examples


def main() -> int:
    parser = argparse.ArgumentParser(description="Train ingredient highlight model")
    parser.add_argument("--data-dir", type=Path, default=DEFAULT_DATASET_DIR)
    parser.add_argument("--out", type=Path, default=DEFAULT_MODEL_PATH)
    parser.add_argument("--epochs", type=int, default=15)
    parser.add_argument("--learning-rate", type=float, default=0.03)
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    try:
        loaded = load_highlight_samples(args.data_dir)
    except FileNotFoundError as exc:
        raise SystemExit(str(exc)) from exc

    for error in loaded.errors:
        print(f"Skipping unreadable file: {error}")

    labeled = [sample for sample in loaded.samples if sample.is_labeled]
    if not labeled:
        raise SystemExit("No labeled datasets with expectedMatches found")

    examples = [example for sample in labeled for example in collect_examples(sample)]
    if not examples:
        raise SystemExit("No training examples produced")

    model = train_logistic(examples, epochs=args.epochs, learning_rate=args.learning_rate)
    save_learned_model(args.out, model)

    positives = sum(label for _, label in examples)
    print("TRAINING COMPLETE")
    print(f"Model: {args.out}")
    print(f"Recipes: {len(labeled)} | Examples: {len(examples)} | Positives: {positives}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
