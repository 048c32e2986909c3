#!/usr/bin/env python3
"""Confidence strategies for ingredient-to-step candidates.

A scorer turns a `CandidateMatch` into a confidence in [0, 1]. The matcher only
calls `scorer.score(match)`, so new strategies plug in without touching the
matching loop.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Protocol, Tuple

FEATURE_NAMES: Tuple[str, ...] = (
    "overlap_ratio",
    "weight_coverage",
    "has_head_noun",
    "phrase_hit",
    "synonym_hit",
    "fuzzy_hit",
    "unique_head",
    "token_count",
    "section_align",
    "seasoning",
)


@dataclass(frozen=True)
class CandidateFeatures:
    overlap_ratio: float
    weight_coverage: float
    has_head_noun: bool
    phrase_hit: bool
    synonym_hit: bool
    fuzzy_hit: bool
    unique_head: bool
    token_count: int
    section_align: bool
    seasoning: bool

    def as_vector(self) -> Dict[str, float]:
        return {name: float(getattr(self, name)) for name in FEATURE_NAMES}


@dataclass(frozen=True)
class CandidateMatch:
    ingredient_id: str
    matched_tokens: int
    matched_weight: float
    features: CandidateFeatures


class ConfidenceScorer(Protocol):
    name: str

    def score(self, match: CandidateMatch) -> float:
        ...


class HeuristicScorer:
    """Hand-tuned linear blend of coverage terms plus flat bonuses, capped at 1."""

    name = "heuristic"

    def score(self, match: CandidateMatch) -> float:
        features = match.features
        if features.token_count == 0:
            return 0.0
        confidence = (
            features.overlap_ratio * 0.45
            + features.weight_coverage * 0.25
            + match.matched_tokens * 0.07
        )
        if features.has_head_noun:
            confidence += 0.18
        if features.phrase_hit:
            confidence += 0.15
        if features.synonym_hit:
            confidence += 0.05
        if features.fuzzy_hit:
            confidence += 0.05
        if features.unique_head:
            confidence += 0.05
        return min(1.0, confidence)


@dataclass
class LearnedModel:
    weights: Dict[str, float] = field(default_factory=dict)
    bias: float = 0.0

    def raw_score(self, features: CandidateFeatures) -> float:
        vector = features.as_vector()
        score = self.bias
        for name, weight in self.weights.items():
            score += weight * vector.get(name, 0.0)
        return score

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bias": self.bias,
            "weights": {name: self.weights.get(name, 0.0) for name in FEATURE_NAMES},
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "LearnedModel":
        if not isinstance(payload, Mapping):
            raise ValueError("Learned model payload must be a JSON object")
        raw_weights = payload.get("weights")
        if not isinstance(raw_weights, Mapping):
            raise ValueError("Learned model payload is missing a 'weights' object")
        weights: Dict[str, float] = {}
        for name in FEATURE_NAMES:
            value = raw_weights.get(name, 0.0)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"Weight '{name}' must be a number")
            weights[name] = float(value)
        bias = payload.get("bias", 0.0)
        if isinstance(bias, bool) or not isinstance(bias, (int, float)):
            raise ValueError("Learned model 'bias' must be a number")
        return cls(weights=weights, bias=float(bias))


DEFAULT_LEARNED_MODEL = LearnedModel(
    bias=-0.5,
    weights={
        "overlap_ratio": 2.0,
        "weight_coverage": 1.4,
        "has_head_noun": 0.8,
        "phrase_hit": 0.7,
        "synonym_hit": 0.3,
        "fuzzy_hit": 0.1,
        "unique_head": 0.2,
        "token_count": -0.05,
        "section_align": 0.4,
        "seasoning": 0.2,
    },
)


def sigmoid(value: float) -> float:
    if value >= 0:
        return 1.0 / (1.0 + math.exp(-value))
    exp_value = math.exp(value)
    return exp_value / (1.0 + exp_value)


class LearnedModelScorer:
    """Logistic score over the candidate feature vector."""

    name = "learned"

    def __init__(self, model: LearnedModel | None = None) -> None:
        self.model = model or DEFAULT_LEARNED_MODEL

    def score(self, match: CandidateMatch) -> float:
        return sigmoid(self.model.raw_score(match.features))


def resolve_scorer(use_learned_model: bool, model: LearnedModel | None = None) -> ConfidenceScorer:
    if use_learned_model:
        return LearnedModelScorer(model)
    return HeuristicScorer()


def load_learned_model(path: Path) -> LearnedModel:
    payload = json.loads(path.read_text(encoding="utf-8"))
    return LearnedModel.from_dict(payload)


def save_learned_model(path: Path, model: LearnedModel) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(model.to_dict(), indent=2) + "\n", encoding="utf-8")


def train_logistic(
    examples: Iterable[Tuple[CandidateFeatures, int]],
    epochs: int = 15,
    learning_rate: float = 0.03,
) -> LearnedModel:
    """Fit a logistic model with plain per-example SGD, in the given order."""
    rows: List[Tuple[Dict[str, float], int]] = [(features.as_vector(), label) for features, label in examples]
    weights = {name: 0.0 for name in FEATURE_NAMES}
    bias = 0.0

    for _ in range(epochs):
        for vector, label in rows:
            z = bias + sum(weights[name] * vector[name] for name in FEATURE_NAMES)
            error = label - sigmoid(z)
            for name in FEATURE_NAMES:
                weights[name] += learning_rate * error * vector[name]
            bias += learning_rate * error

    return LearnedModel(weights=weights, bias=bias)
