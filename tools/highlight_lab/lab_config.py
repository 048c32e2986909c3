from __future__ import annotations

import os
import sys
from pathlib import Path

HOST = "127.0.0.1"
PORT = int(os.environ.get("HIGHLIGHTS_LAB_PORT") or 8766)

DEFAULT_REPO_ROOT = Path(__file__).resolve().parents[2]
REPO_ROOT = Path(os.environ.get("HIGHLIGHTS_REPO") or DEFAULT_REPO_ROOT).resolve()
TOOLS_DIR = REPO_ROOT / "tools" / "ingredient_highlights"

if str(TOOLS_DIR) not in sys.path:
    sys.path.insert(0, str(TOOLS_DIR))

from highlight_config import DEFAULT_DATASET_DIR, LABEL_LOG_NAME  # noqa: E402

DATASET_DIR = DEFAULT_DATASET_DIR
LABEL_LOG_MAX = 5000
