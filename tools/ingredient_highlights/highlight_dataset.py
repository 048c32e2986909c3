#!/usr/bin/env python3
"""Labeled highlight dataset files: loading, saving and validation.

Each file under the dataset directory holds one recipe:

{
  "id": "pan-seared-scallops",
  "title": "Pan-Seared Scallops",
  "ingredients": [{"section": "", "items": ["..."]}],
  "instructions": [{"section": "", "steps": ["..."]}],
  "expectedMatches": {"step-0": ["0-1", "0-3"]}
}

Step and ingredient ids in `expectedMatches` refer to the normalized groups.
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from highlight_config import NON_RECIPE_FILES
from ingredient_matcher import (
    IngredientGroup,
    InstructionGroup,
    normalize_ingredient_groups,
    normalize_instruction_groups,
)

logger = logging.getLogger(__name__)

KNOWN_KEYS: Tuple[str, ...] = ("id", "title", "ingredients", "instructions", "expectedMatches")


class DatasetError(ValueError):
    def __init__(self, path: Path | None, message: str) -> None:
        self.path = path
        self.message = message
        super().__init__(f"{path}: {message}" if path is not None else message)


@dataclass
class GroupLayout:
    """Key order and unknown keys of one group object as read from disk."""

    key_order: Tuple[str, ...] = ()
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class HighlightSample:
    id: str
    ingredients: List[IngredientGroup]
    instructions: List[InstructionGroup]
    title: Optional[str] = None
    expected_matches: Optional[Dict[str, List[str]]] = None
    extra: Dict[str, Any] = field(default_factory=dict)
    key_order: Tuple[str, ...] = ()
    ingredient_layouts: List[GroupLayout] = field(default_factory=list)
    instruction_layouts: List[GroupLayout] = field(default_factory=list)

    @property
    def is_labeled(self) -> bool:
        return bool(self.expected_matches)

    def to_dict(self) -> Dict[str, Any]:
        values: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "ingredients": groups_to_payload(self.ingredients, self.ingredient_layouts),
            "instructions": groups_to_payload(self.instructions, self.instruction_layouts),
            "expectedMatches": self.expected_matches,
        }
        values.update(self.extra)

        order = list(self.key_order) or list(KNOWN_KEYS)
        order.extend(key for key in list(KNOWN_KEYS) + list(self.extra) if key not in order)

        payload: Dict[str, Any] = {}
        for key in order:
            # Optional keys absent from the source file stay absent.
            if key in self.key_order or key in self.extra or values.get(key) is not None:
                payload[key] = values.get(key)
        return payload

    @classmethod
    def from_dict(cls, payload: Any, path: Path | None = None) -> "HighlightSample":
        if not isinstance(payload, dict):
            raise DatasetError(path, "top-level JSON value must be an object")

        sample_id = payload.get("id")
        if not isinstance(sample_id, str) or not sample_id.strip():
            raise DatasetError(path, "missing string field 'id'")

        title = payload.get("title")
        if title is not None and not isinstance(title, str):
            raise DatasetError(path, "'title' must be a string")

        raw_ingredients = payload.get("ingredients")
        raw_instructions = payload.get("instructions")
        return cls(
            id=sample_id,
            title=title,
            ingredients=ingredient_groups_from_payload(raw_ingredients, path),
            instructions=instruction_groups_from_payload(raw_instructions, path),
            expected_matches=_parse_expected_matches(payload.get("expectedMatches"), path),
            extra={key: value for key, value in payload.items() if key not in KNOWN_KEYS},
            key_order=tuple(payload.keys()),
            ingredient_layouts=_group_layouts(raw_ingredients, "items"),
            instruction_layouts=_group_layouts(raw_instructions, "steps"),
        )


def _group_to_dict(
    section: str | None,
    entries_key: str,
    entries: List[str],
    layout: GroupLayout | None = None,
) -> Dict[str, Any]:
    layout = layout or GroupLayout()
    values: Dict[str, Any] = {"section": section, entries_key: list(entries)}
    values.update(layout.extra)

    order = list(layout.key_order) or ["section", entries_key]
    order.extend(key for key in ["section", entries_key, *layout.extra] if key not in order)

    group: Dict[str, Any] = {}
    for key in order:
        # A null section is written back only when the source file had the key.
        if key == "section" and section is None and key not in layout.key_order:
            continue
        group[key] = values[key]
    return group


def _parse_groups(
    raw: Any,
    field_name: str,
    entries_key: str,
    path: Path | None,
) -> List[Tuple[Optional[str], List[str]]]:
    if not isinstance(raw, list):
        raise DatasetError(path, f"'{field_name}' must be a list of groups")

    groups: List[Tuple[Optional[str], List[str]]] = []
    for index, group in enumerate(raw):
        if not isinstance(group, dict):
            raise DatasetError(path, f"{field_name}[{index}] must be an object")
        section = group.get("section")
        if section is not None and not isinstance(section, str):
            raise DatasetError(path, f"{field_name}[{index}].section must be a string")
        entries = group.get(entries_key)
        if not isinstance(entries, list) or not all(isinstance(entry, str) for entry in entries):
            raise DatasetError(path, f"{field_name}[{index}].{entries_key} must be a list of strings")
        groups.append((section, list(entries)))
    return groups


def _group_layouts(raw: List[Dict[str, Any]], entries_key: str) -> List[GroupLayout]:
    return [
        GroupLayout(
            key_order=tuple(group.keys()),
            extra={key: value for key, value in group.items() if key not in ("section", entries_key)},
        )
        for group in raw
    ]


def ingredient_groups_from_payload(raw: Any, path: Path | None = None) -> List[IngredientGroup]:
    return [
        IngredientGroup(section=section, items=entries)
        for section, entries in _parse_groups(raw, "ingredients", "items", path)
    ]


def instruction_groups_from_payload(raw: Any, path: Path | None = None) -> List[InstructionGroup]:
    return [
        InstructionGroup(section=section, steps=entries)
        for section, entries in _parse_groups(raw, "instructions", "steps", path)
    ]


def groups_to_payload(
    groups: List[IngredientGroup] | List[InstructionGroup],
    layouts: List[GroupLayout] | None = None,
) -> List[Dict[str, Any]]:
    """Serialize groups; layouts pair with groups by position and may be shorter."""
    layouts = layouts or []
    payload: List[Dict[str, Any]] = []
    for index, group in enumerate(groups):
        layout = layouts[index] if index < len(layouts) else None
        if isinstance(group, IngredientGroup):
            payload.append(_group_to_dict(group.section, "items", group.items, layout))
        else:
            payload.append(_group_to_dict(group.section, "steps", group.steps, layout))
    return payload


def _parse_expected_matches(raw: Any, path: Path | None) -> Optional[Dict[str, List[str]]]:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise DatasetError(path, "'expectedMatches' must be an object")
    parsed: Dict[str, List[str]] = {}
    for step_id, ingredient_ids in raw.items():
        if not isinstance(ingredient_ids, list) or not all(isinstance(item, str) for item in ingredient_ids):
            raise DatasetError(path, f"expectedMatches['{step_id}'] must be a list of ingredient ids")
        parsed[str(step_id)] = list(ingredient_ids)
    return parsed


@dataclass
class DatasetLoadResult:
    samples: List[HighlightSample]
    errors: List[DatasetError]
    paths: Dict[str, Path] = field(default_factory=dict)


def dataset_files(dataset_dir: Path) -> List[Path]:
    if not dataset_dir.is_dir():
        raise FileNotFoundError(f"Dataset directory not found: {dataset_dir}")
    return sorted(
        path
        for path in dataset_dir.glob("*.json")
        if path.is_file() and path.name not in NON_RECIPE_FILES
    )


def load_highlight_sample(path: Path) -> HighlightSample:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise DatasetError(path, f"invalid JSON ({exc.msg} at line {exc.lineno})") from exc
    return HighlightSample.from_dict(payload, path)


def load_highlight_samples(dataset_dir: Path) -> DatasetLoadResult:
    """Load every recipe file; malformed files are collected, not raised."""
    result = DatasetLoadResult(samples=[], errors=[])
    for path in dataset_files(dataset_dir):
        try:
            sample = load_highlight_sample(path)
        except (DatasetError, OSError, UnicodeDecodeError) as exc:
            error = exc if isinstance(exc, DatasetError) else DatasetError(path, str(exc))
            logger.debug("Skipping %s: %s", path.name, error.message)
            result.errors.append(error)
            continue
        result.samples.append(sample)
        result.paths[sample.id] = path
    return result


def save_highlight_sample(path: Path, sample: HighlightSample) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(sample.to_dict(), indent=2, ensure_ascii=False) + "\n", encoding="utf-8")


def find_sample_path(dataset_dir: Path, sample_id: str) -> Path | None:
    for path in dataset_files(dataset_dir):
        try:
            sample = load_highlight_sample(path)
        except (DatasetError, OSError, UnicodeDecodeError):
            continue
        if sample.id == sample_id:
            return path
    return None


def ingredient_ids(groups: List[IngredientGroup]) -> List[str]:
    return [
        f"{group_index}-{item_index}"
        for group_index, group in enumerate(groups)
        for item_index in range(len(group.items))
    ]


def step_ids(groups: List[InstructionGroup]) -> List[str]:
    total = sum(len(group.steps) for group in groups)
    return [f"step-{index}" for index in range(total)]


@dataclass
class ValidationResult:
    is_valid: bool
    errors: List[str]
    labeled_count: int
    unlabeled_count: int


def validate_dataset(dataset_dir: Path) -> ValidationResult:
    loaded = load_highlight_samples(dataset_dir)
    errors: List[str] = [str(error) for error in loaded.errors]

    id_counts = Counter(sample.id for sample in loaded.samples)
    for sample_id, count in sorted(id_counts.items()):
        if count > 1:
            errors.append(f"Recipe id '{sample_id}' appears in {count} files")

    if not loaded.samples and not loaded.errors:
        errors.append(f"No recipe files found under {dataset_dir}")

    labeled = 0
    for sample in loaded.samples:
        if not sample.is_labeled:
            continue
        labeled += 1
        known_steps = set(step_ids(normalize_instruction_groups(sample.instructions)))
        known_ingredients = set(ingredient_ids(normalize_ingredient_groups(sample.ingredients)))
        for step_id, expected in sorted((sample.expected_matches or {}).items()):
            if step_id not in known_steps:
                errors.append(f"Recipe '{sample.id}' labels unknown step '{step_id}'")
            for ingredient_id in expected:
                if ingredient_id not in known_ingredients:
                    errors.append(
                        f"Recipe '{sample.id}' step '{step_id}' references unknown ingredient '{ingredient_id}'"
                    )

    return ValidationResult(
        is_valid=not errors,
        errors=errors,
        labeled_count=labeled,
        unlabeled_count=len(loaded.samples) - labeled,
    )
