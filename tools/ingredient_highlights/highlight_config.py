from __future__ import annotations

import os
from pathlib import Path

DEFAULT_REPO_ROOT = Path(__file__).resolve().parents[2]
REPO_ROOT = Path(os.environ.get("HIGHLIGHTS_REPO") or DEFAULT_REPO_ROOT).resolve()
TOOLS_DIR = REPO_ROOT / "tools" / "ingredient_highlights"

DEFAULT_DATASET_DIR = Path(
    os.environ.get("HIGHLIGHTS_DATASET_DIR") or (REPO_ROOT / "data" / "ingredient_highlights")
).resolve()
DEFAULT_MODEL_PATH = DEFAULT_DATASET_DIR / "highlight_model.json"

# Written next to the dataset files by the labeling lab; never a recipe.
LABEL_LOG_NAME = "label_log.json"
NON_RECIPE_FILES = frozenset({LABEL_LOG_NAME, DEFAULT_MODEL_PATH.name})

DEFAULT_MIN_CONFIDENCE = 0.35
FALLBACK_MIN_RATIO = 0.2
FALLBACK_LIMIT = 5
