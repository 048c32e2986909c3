#!/usr/bin/env python3

from __future__ import annotations

import json
import sys
import tempfile
import unittest
from pathlib import Path

TOOL_DIR = Path(__file__).resolve().parents[1]
if str(TOOL_DIR) not in sys.path:
    sys.path.insert(0, str(TOOL_DIR))

from highlight_scoring import (
    DEFAULT_LEARNED_MODEL,
    FEATURE_NAMES,
    CandidateFeatures,
    CandidateMatch,
    HeuristicScorer,
    LearnedModel,
    LearnedModelScorer,
    load_learned_model,
    resolve_scorer,
    save_learned_model,
    sigmoid,
    train_logistic,
)


def _features(**overrides) -> CandidateFeatures:
    values = {
        "overlap_ratio": 0.0,
        "weight_coverage": 0.0,
        "has_head_noun": False,
        "phrase_hit": False,
        "synonym_hit": False,
        "fuzzy_hit": False,
        "unique_head": False,
        "token_count": 2,
        "section_align": True,
        "seasoning": False,
    }
    values.update(overrides)
    return CandidateFeatures(**values)


class HeuristicScorerTests(unittest.TestCase):
    def test_full_match_is_capped(self) -> None:
        match = CandidateMatch(
            ingredient_id="0-0",
            matched_tokens=2,
            matched_weight=2.0,
            features=_features(
                overlap_ratio=1.0,
                weight_coverage=1.0,
                has_head_noun=True,
                phrase_hit=True,
                unique_head=True,
            ),
        )
        self.assertEqual(HeuristicScorer().score(match), 1.0)

    def test_more_overlap_scores_higher(self) -> None:
        scorer = HeuristicScorer()
        partial = CandidateMatch("0-0", 1, 1.0, _features(overlap_ratio=0.5, weight_coverage=0.5))
        full = CandidateMatch("0-0", 2, 2.0, _features(overlap_ratio=1.0, weight_coverage=1.0))
        self.assertLess(scorer.score(partial), scorer.score(full))

    def test_empty_ingredient_scores_zero(self) -> None:
        match = CandidateMatch("0-0", 0, 0.0, _features(token_count=0, has_head_noun=True))
        self.assertEqual(HeuristicScorer().score(match), 0.0)


class LearnedModelTests(unittest.TestCase):
    def test_sigmoid_is_symmetric(self) -> None:
        self.assertAlmostEqual(sigmoid(0.0), 0.5)
        self.assertAlmostEqual(sigmoid(3.0) + sigmoid(-3.0), 1.0)
        self.assertLess(sigmoid(-800.0), 1e-12)

    def test_default_model_prefers_head_noun(self) -> None:
        scorer = LearnedModelScorer()
        weak = CandidateMatch("0-0", 1, 0.5, _features(overlap_ratio=0.5, weight_coverage=0.5))
        strong = CandidateMatch("0-0", 1, 0.5, _features(overlap_ratio=0.5, weight_coverage=0.5, has_head_noun=True))
        self.assertLess(scorer.score(weak), scorer.score(strong))

    def test_resolve_scorer(self) -> None:
        self.assertEqual(resolve_scorer(False).name, "heuristic")
        learned = resolve_scorer(True)
        self.assertEqual(learned.name, "learned")
        self.assertIs(learned.model, DEFAULT_LEARNED_MODEL)

    def test_model_file_round_trip(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "models" / "highlight_model.json"
            save_learned_model(path, DEFAULT_LEARNED_MODEL)

            payload = json.loads(path.read_text(encoding="utf-8"))
            self.assertEqual(list(payload["weights"]), list(FEATURE_NAMES))

            loaded = load_learned_model(path)
            self.assertEqual(loaded.bias, DEFAULT_LEARNED_MODEL.bias)
            self.assertEqual(loaded.weights, DEFAULT_LEARNED_MODEL.weights)

    def test_from_dict_rejects_bad_payloads(self) -> None:
        with self.assertRaises(ValueError):
            LearnedModel.from_dict({"bias": 0.1})
        with self.assertRaises(ValueError):
            LearnedModel.from_dict({"weights": {"overlap_ratio": "high"}})
        with self.assertRaises(ValueError):
            LearnedModel.from_dict({"weights": {}, "bias": True})

    def test_missing_weights_default_to_zero(self) -> None:
        model = LearnedModel.from_dict({"weights": {"overlap_ratio": 1.5}})
        self.assertEqual(model.weights["overlap_ratio"], 1.5)
        self.assertEqual(model.weights["seasoning"], 0.0)
        self.assertEqual(model.bias, 0.0)


class TrainingTests(unittest.TestCase):
    def test_training_separates_examples(self) -> None:
        positive = _features(overlap_ratio=1.0, weight_coverage=1.0, has_head_noun=True)
        negative = _features()
        model = train_logistic([(positive, 1), (negative, 0)] * 20, epochs=30, learning_rate=0.1)

        self.assertGreater(model.weights["overlap_ratio"], 0.0)
        self.assertGreater(sigmoid(model.raw_score(positive)), 0.5)
        self.assertLess(sigmoid(model.raw_score(negative)), 0.5)

    def test_training_is_deterministic(self) -> None:
        examples = [(_features(overlap_ratio=0.5, phrase_hit=True), 1), (_features(), 0)]
        self.assertEqual(train_logistic(examples), train_logistic(examples))


if __name__ == "__main__":
    unittest.main()
