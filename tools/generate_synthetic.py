#!/usr/bin/env python3
"""Command that writes a deterministic set of synthetic report-card workbooks."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from tools.synthetic_cli import generate_dataset


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Generate synthetic report-card workbooks with deliberate issues."
    )
    parser.add_argument(
        "--output-dir", type=Path, help="Directory to populate (default data/synthetic)."
    )
    parser.add_argument("--seed", type=int, default=42, help="Deterministic run seed.")
    parser.add_argument("--force", action="store_true", help="Overwrite an existing directory.")
    args = parser.parse_args()
    generate_dataset(args.output_dir, args.seed, args.force)


if __name__ == "__main__":
    main()
