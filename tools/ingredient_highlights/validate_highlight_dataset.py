#!/usr/bin/env python3
"""Validate labeled ingredient highlight dataset files."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from highlight_config import DEFAULT_DATASET_DIR
from highlight_dataset import validate_dataset


def main() -> int:
    parser = argparse.ArgumentParser(description="Validate ingredient highlight dataset")
    parser.add_argument("--data-dir", type=Path, default=DEFAULT_DATASET_DIR, help="Path to the dataset directory")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    try:
        result = validate_dataset(args.data_dir)
    except FileNotFoundError as exc:
        raise SystemExit(str(exc)) from exc

    print("DATASET VALIDATION REPORT")
    print(f"Data dir: {args.data_dir}")
    print(f"Labeled recipes: {result.labeled_count}")
    print(f"Unlabeled recipes: {result.unlabeled_count}")

    if result.is_valid:
        print("VALIDATION PASSED")
        return 0

    print("VALIDATION FAILED")
    for error in result.errors:
        print(f"  - {error}")

    return 1


if __name__ == "__main__":
    raise SystemExit(main())
