#!/usr/bin/env python3
"""Fill empty expectedMatches with the current matcher's predictions.

Labels written here are a starting point for human review in the labeling lab.
Existing labels are kept unless --force is given.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List

from highlight_config import DEFAULT_DATASET_DIR
from highlight_dataset import DatasetError, dataset_files, load_highlight_sample, save_highlight_sample
from highlight_evaluation import predict_sample


def _collect_targets(files: List[Path], data_dir: Path) -> List[Path]:
    if files:
        return [path.resolve() for path in files]
    return dataset_files(data_dir)


def auto_label(path: Path, force: bool = False) -> int | None:
    """Return the number of labeled steps, or None when existing labels were kept."""
    sample = load_highlight_sample(path)
    if sample.is_labeled and not force:
        return None
    sample.expected_matches = predict_sample(sample)
    save_highlight_sample(path, sample)
    return len(sample.expected_matches)


def main() -> int:
    parser = argparse.ArgumentParser(description="Auto-label ingredient highlight datasets")
    parser.add_argument("files", nargs="*", type=Path, help="Dataset files (default: every file in --data-dir)")
    parser.add_argument("--data-dir", type=Path, default=DEFAULT_DATASET_DIR)
    parser.add_argument("--force", action="store_true", help="Overwrite existing expectedMatches")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    try:
        targets = _collect_targets(args.files, args.data_dir)
    except FileNotFoundError as exc:
        raise SystemExit(str(exc)) from exc

    if not targets:
        print("No target files found.")
        return 0

    failures = 0
    for path in targets:
        try:
            labeled_steps = auto_label(path, force=args.force)
        except (DatasetError, OSError) as exc:
            failures += 1
            print(f"Failed to label {path}: {exc}")
            continue
        if labeled_steps is None:
            print(f"Skipping {path.name} (labels already present)")
        else:
            print(f"Auto-labeled {path.name} ({labeled_steps} steps)")

    print("Done. Review the labels in the highlight lab before relying on them.")
    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
