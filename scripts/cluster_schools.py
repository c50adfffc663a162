#!/usr/bin/env python3
"""Cluster elementary schools and compare one school with its peers."""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from krc.analysis.benchmark import benchmark_school
from krc.analysis.runner import run_analysis
from krc.errors import PipelineError
from krc.logs import configure_logging
from krc.settings import load_settings


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Impute gaps, reduce with PCA and cluster elementary schools."
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        help="Directory holding ky_report_card_data.csv (default from pipeline.yml).",
    )
    parser.add_argument("--school-id", help="State school id to benchmark against its cluster.")
    parser.add_argument("--clusters", type=int, help="Override the configured cluster count.")
    parser.add_argument("--verbose", action="store_true", help="Log at DEBUG level.")
    args = parser.parse_args(argv)

    configure_logging(args.verbose)
    settings = load_settings().with_overrides(data_dir=args.data_dir)
    if args.clusters is not None:
        if args.clusters < 1:
            raise SystemExit("--clusters must be at least 1")
        settings = replace(settings, analysis=replace(settings.analysis, n_clusters=args.clusters))

    try:
        outcome = run_analysis(settings)
        benchmark = (
            benchmark_school(outcome.table, args.school_id, settings.analysis.benchmark_metric)
            if args.school_id
            else None
        )
    except PipelineError as exc:
        raise SystemExit(f"Analysis failed: {exc}") from exc

    clusters = outcome.clusters
    variance = ", ".join(f"{value:.2f}" for value in clusters.explained_variance)
    print(f"Clustered {len(outcome.table)} schools -> {outcome.output_path}")
    print(f"Explained variance ratio: {variance}")
    for label, size in clusters.cluster_sizes.items():
        print(f"  cluster {label}: {size} schools")
    if clusters.dropped_rows:
        print(f"Skipped {clusters.dropped_rows} schools with missing features.")
    if benchmark:
        print(benchmark.describe())


if __name__ == "__main__":
    main()
