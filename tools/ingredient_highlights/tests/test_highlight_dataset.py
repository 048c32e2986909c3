#!/usr/bin/env python3

from __future__ import annotations

import json
import shutil
import sys
import tempfile
import unittest
from pathlib import Path

TOOL_DIR = Path(__file__).resolve().parents[1]
if str(TOOL_DIR) not in sys.path:
    sys.path.insert(0, str(TOOL_DIR))

from highlight_dataset import (
    DatasetError,
    HighlightSample,
    dataset_files,
    find_sample_path,
    load_highlight_sample,
    load_highlight_samples,
    save_highlight_sample,
    validate_dataset,
)
from ingredient_matcher import IngredientGroup


class SampleSerializationTests(unittest.TestCase):
    def test_round_trip_keeps_key_order_and_extras(self) -> None:
        payload = {
            "id": "soup",
            "source": "family notebook",
            "ingredients": [{"section": "", "items": ["1 onion"]}],
            "instructions": [{"steps": ["Fry the onion."]}],
        }
        sample = HighlightSample.from_dict(payload)
        self.assertEqual(sample.extra, {"source": "family notebook"})
        self.assertIsNone(sample.title)
        self.assertFalse(sample.is_labeled)
        self.assertEqual(sample.to_dict(), payload)
        self.assertEqual(list(sample.to_dict()), ["id", "source", "ingredients", "instructions"])

    def test_round_trip_keeps_group_keys(self) -> None:
        payload = {
            "id": "soup",
            "ingredients": [
                {"section": None, "items": ["1 onion"]},
                {"items": ["2 carrots"], "section": "", "note": "from the garden"},
            ],
            "instructions": [{"steps": ["Fry the onion."], "section": ""}],
        }
        sample = HighlightSample.from_dict(payload)
        self.assertEqual(sample.to_dict(), payload)
        self.assertEqual(list(sample.to_dict()["ingredients"][1]), ["items", "section", "note"])
        self.assertEqual(list(sample.to_dict()["instructions"][0]), ["steps", "section"])

    def test_saved_labels_keep_group_keys(self) -> None:
        payload = {
            "id": "soup",
            "ingredients": [{"section": None, "items": ["1 onion"], "note": "n"}],
            "instructions": [{"steps": ["Fry the onion."]}],
        }
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "soup.json"
            sample = HighlightSample.from_dict(payload, path)
            sample.expected_matches = {"step-0": ["0-0"]}
            save_highlight_sample(path, sample)

            saved = json.loads(path.read_text(encoding="utf-8"))
        self.assertEqual(saved["ingredients"], payload["ingredients"])
        self.assertEqual(saved["instructions"], payload["instructions"])
        self.assertEqual(saved["expectedMatches"], {"step-0": ["0-0"]})

    def test_new_labels_are_appended(self) -> None:
        sample = HighlightSample.from_dict(
            {"id": "soup", "ingredients": [], "instructions": [{"section": "", "steps": ["Stir."]}]}
        )
        sample.expected_matches = {"step-0": []}
        self.assertEqual(list(sample.to_dict()), ["id", "ingredients", "instructions", "expectedMatches"])
        self.assertTrue(sample.is_labeled)

    def test_empty_labels_count_as_unlabeled(self) -> None:
        sample = HighlightSample.from_dict({"id": "soup", "ingredients": [], "instructions": [], "expectedMatches": {}})
        self.assertFalse(sample.is_labeled)

    def test_invalid_payloads_raise(self) -> None:
        with self.assertRaises(DatasetError):
            HighlightSample.from_dict([])
        with self.assertRaises(DatasetError):
            HighlightSample.from_dict({"ingredients": [], "instructions": []})
        with self.assertRaises(DatasetError):
            HighlightSample.from_dict({"id": "soup", "ingredients": "1 onion", "instructions": []})
        with self.assertRaises(DatasetError):
            HighlightSample.from_dict({"id": "soup", "ingredients": [{"items": [1]}], "instructions": []})
        with self.assertRaises(DatasetError):
            HighlightSample.from_dict(
                {"id": "soup", "ingredients": [], "instructions": [], "expectedMatches": {"step-0": "0-0"}}
            )

    def test_groups_are_parsed(self) -> None:
        sample = HighlightSample.from_dict(
            {"id": "soup", "ingredients": [{"section": "Base", "items": ["1 onion"]}], "instructions": []}
        )
        self.assertEqual(sample.ingredients, [IngredientGroup(section="Base", items=["1 onion"])])


class DatasetFileTests(unittest.TestCase):
    def setUp(self) -> None:
        self.repo_root = Path(__file__).resolve().parents[3]
        self.data_dir = self.repo_root / "data" / "ingredient_highlights"

    def test_shipped_dataset_is_valid(self) -> None:
        result = validate_dataset(self.data_dir)
        self.assertTrue(result.is_valid, msg="\n".join(result.errors))
        self.assertGreater(result.labeled_count, 0)

    def test_bookkeeping_files_are_not_recipes(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            temp_path = Path(temp_dir)
            (temp_path / "label_log.json").write_text("[]\n", encoding="utf-8")
            (temp_path / "highlight_model.json").write_text("{}\n", encoding="utf-8")
            (temp_path / "soup.json").write_text(
                json.dumps({"id": "soup", "ingredients": [], "instructions": []}),
                encoding="utf-8",
            )
            self.assertEqual([path.name for path in dataset_files(temp_path)], ["soup.json"])

    def test_missing_directory_raises(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            with self.assertRaises(FileNotFoundError):
                dataset_files(Path(temp_dir) / "missing")

    def test_malformed_files_are_collected(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            temp_path = Path(temp_dir)
            (temp_path / "broken.json").write_text("{not json", encoding="utf-8")
            shutil.copy(self.data_dir / "pan-seared-scallops.json", temp_path)

            loaded = load_highlight_samples(temp_path)
            self.assertEqual([sample.id for sample in loaded.samples], ["pan-seared-scallops"])
            self.assertEqual(len(loaded.errors), 1)
            self.assertEqual(loaded.errors[0].path, temp_path / "broken.json")
            self.assertIn("invalid JSON", loaded.errors[0].message)

    def test_save_and_find_round_trip(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            temp_path = Path(temp_dir)
            target = temp_path / "copy.json"
            sample = load_highlight_sample(self.data_dir / "garlic-prawn-linguine.json")
            save_highlight_sample(target, sample)

            self.assertTrue(target.read_text(encoding="utf-8").endswith("}\n"))
            self.assertEqual(find_sample_path(temp_path, "garlic-prawn-linguine"), target)
            self.assertIsNone(find_sample_path(temp_path, "unknown"))
            self.assertEqual(load_highlight_sample(target).to_dict(), sample.to_dict())


class DatasetValidationTests(unittest.TestCase):
    def setUp(self) -> None:
        self.repo_root = Path(__file__).resolve().parents[3]
        self.data_dir = self.repo_root / "data" / "ingredient_highlights"

    def _copy_dataset(self, temp_dir: str) -> Path:
        copied_dir = Path(temp_dir) / "ingredient_highlights"
        shutil.copytree(self.data_dir, copied_dir)
        return copied_dir

    def test_validator_fails_on_unknown_ingredient(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            copied_dir = self._copy_dataset(temp_dir)
            path = copied_dir / "pan-seared-scallops.json"
            payload = json.loads(path.read_text(encoding="utf-8"))
            payload["expectedMatches"]["step-1"] = ["9-9"]
            path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")

            result = validate_dataset(copied_dir)
            self.assertFalse(result.is_valid)
            self.assertTrue(any("unknown ingredient '9-9'" in error for error in result.errors))

    def test_validator_uses_normalized_ids(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            copied_dir = self._copy_dataset(temp_dir)
            path = copied_dir / "lemon-drizzle-cake.json"
            payload = json.loads(path.read_text(encoding="utf-8"))
            # The drizzle group echoes its own label, so only 1-0 and 1-1 exist.
            payload["expectedMatches"]["step-4"] = ["1-2"]
            payload["expectedMatches"]["step-6"] = []
            path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")

            result = validate_dataset(copied_dir)
            self.assertFalse(result.is_valid)
            self.assertTrue(any("unknown ingredient '1-2'" in error for error in result.errors))
            self.assertTrue(any("unknown step 'step-6'" in error for error in result.errors))

    def test_validator_fails_on_duplicate_ids(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            copied_dir = self._copy_dataset(temp_dir)
            shutil.copy(copied_dir / "pan-seared-scallops.json", copied_dir / "scallops-copy.json")

            result = validate_dataset(copied_dir)
            self.assertFalse(result.is_valid)
            self.assertTrue(any("appears in 2 files" in error for error in result.errors))

    def test_validator_fails_on_empty_directory(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            result = validate_dataset(Path(temp_dir))
            self.assertFalse(result.is_valid)


if __name__ == "__main__":
    unittest.main()
