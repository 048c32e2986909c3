#!/usr/bin/env python3
"""Precision/recall/F1 for ingredient highlights against labeled recipes."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from highlight_dataset import DatasetError, HighlightSample, load_highlight_samples
from ingredient_matcher import (
    MatcherOptions,
    map_ingredients_to_steps,
    normalize_ingredient_groups,
    normalize_instruction_groups,
)

logger = logging.getLogger(__name__)


def safe_divide(numerator: float, denominator: float) -> float:
    if denominator == 0:
        return 1.0 if numerator == 0 else 0.0
    return numerator / denominator


def f1_score(precision: float, recall: float) -> float:
    denominator = precision + recall
    if denominator == 0:
        return 0.0
    return 2 * precision * recall / denominator


def score_step_sets(
    expected: Mapping[str, Sequence[str]],
    predicted: Mapping[str, Sequence[str]],
) -> Tuple[int, int, int]:
    tp = fp = fn = 0
    for step_id in set(expected) | set(predicted):
        gold = set(expected.get(step_id) or [])
        guess = set(predicted.get(step_id) or [])
        tp += len(guess & gold)
        fp += len(guess - gold)
        fn += len(gold - guess)
    return tp, fp, fn


@dataclass
class RecipeMetrics:
    id: str
    title: Optional[str]
    total_steps: int
    tp: int
    fp: int
    fn: int
    precision: float
    recall: float
    f1: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "totalSteps": self.total_steps,
            "tp": self.tp,
            "fp": self.fp,
            "fn": self.fn,
            "precision": self.precision,
            "recall": self.recall,
            "f1": self.f1,
        }


@dataclass
class AggregateMetrics:
    total_recipes: int = 0
    macro_precision: float = 0.0
    macro_recall: float = 0.0
    macro_f1: float = 0.0
    micro_precision: float = 0.0
    micro_recall: float = 0.0
    micro_f1: float = 0.0
    total_tp: int = 0
    total_fp: int = 0
    total_fn: int = 0
    skipped_unlabeled: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalRecipes": self.total_recipes,
            "macroPrecision": self.macro_precision,
            "macroRecall": self.macro_recall,
            "macroF1": self.macro_f1,
            "microPrecision": self.micro_precision,
            "microRecall": self.micro_recall,
            "microF1": self.micro_f1,
            "totalTP": self.total_tp,
            "totalFP": self.total_fp,
            "totalFN": self.total_fn,
            "skippedUnlabeled": self.skipped_unlabeled,
        }


@dataclass
class EvaluationResult:
    samples: List[RecipeMetrics]
    aggregate: AggregateMetrics
    errors: List[DatasetError] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "samples": [sample.to_dict() for sample in self.samples],
            "aggregate": self.aggregate.to_dict(),
            "errors": [
                {"file": str(error.path) if error.path is not None else None, "error": error.message}
                for error in self.errors
            ],
        }


def predict_sample(sample: HighlightSample, options: MatcherOptions | None = None) -> Dict[str, List[str]]:
    ingredients = normalize_ingredient_groups(sample.ingredients)
    instructions = normalize_instruction_groups(sample.instructions)
    return map_ingredients_to_steps(ingredients, instructions, options)


def evaluate_sample(sample: HighlightSample, options: MatcherOptions | None = None) -> RecipeMetrics:
    predicted = predict_sample(sample, options)
    tp, fp, fn = score_step_sets(sample.expected_matches or {}, predicted)
    precision = safe_divide(tp, tp + fp)
    recall = safe_divide(tp, tp + fn)
    return RecipeMetrics(
        id=sample.id,
        title=sample.title,
        total_steps=sum(len(group.steps) for group in sample.instructions),
        tp=tp,
        fp=fp,
        fn=fn,
        precision=precision,
        recall=recall,
        f1=f1_score(precision, recall),
    )


def _mean(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def evaluate_samples(samples: Iterable[HighlightSample], options: MatcherOptions | None = None) -> EvaluationResult:
    recipe_metrics = [evaluate_sample(sample, options) for sample in samples]

    total_tp = sum(metrics.tp for metrics in recipe_metrics)
    total_fp = sum(metrics.fp for metrics in recipe_metrics)
    total_fn = sum(metrics.fn for metrics in recipe_metrics)

    aggregate = AggregateMetrics(
        total_recipes=len(recipe_metrics),
        total_tp=total_tp,
        total_fp=total_fp,
        total_fn=total_fn,
    )
    if recipe_metrics:
        aggregate.macro_precision = _mean([metrics.precision for metrics in recipe_metrics])
        aggregate.macro_recall = _mean([metrics.recall for metrics in recipe_metrics])
        aggregate.macro_f1 = _mean([metrics.f1 for metrics in recipe_metrics])
        aggregate.micro_precision = safe_divide(total_tp, total_tp + total_fp)
        aggregate.micro_recall = safe_divide(total_tp, total_tp + total_fn)
        aggregate.micro_f1 = f1_score(aggregate.micro_precision, aggregate.micro_recall)

    return EvaluationResult(samples=recipe_metrics, aggregate=aggregate)


def evaluate_highlight_dir(dataset_dir: Path, options: MatcherOptions | None = None) -> EvaluationResult:
    loaded = load_highlight_samples(dataset_dir)
    labeled = [sample for sample in loaded.samples if sample.is_labeled]
    skipped = len(loaded.samples) - len(labeled)
    logger.debug(
        "Evaluating %d labeled recipes from %s (%d unlabeled, %d unreadable)",
        len(labeled),
        dataset_dir,
        skipped,
        len(loaded.errors),
    )

    result = evaluate_samples(labeled, options)
    result.aggregate.skipped_unlabeled = skipped
    result.errors = list(loaded.errors)
    return result
