#!/usr/bin/env python3
"""Build src_data.csv and ky_report_card_data.csv from the report-card downloads."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from krc.build.runner import PipelineRunner
from krc.errors import PipelineError
from krc.logs import configure_logging
from krc.settings import load_settings


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Normalize, join and derive the school report-card tables."
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        help="Directory holding the source workbooks (default from pipeline.yml).",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Abort on coercion failures and duplicate keys instead of warning.",
    )
    parser.add_argument(
        "--skip-checks-mart",
        action="store_true",
        help="Run the quality checks without writing check_results.parquet.",
    )
    parser.add_argument("--verbose", action="store_true", help="Log at DEBUG level.")
    args = parser.parse_args(argv)

    configure_logging(args.verbose)
    settings = load_settings().with_overrides(
        data_dir=args.data_dir, strict=True if args.strict else None
    )
    try:
        summary = PipelineRunner(settings).run(persist_checks=not args.skip_checks_mart)
    except PipelineError as exc:
        raise SystemExit(f"Build failed: {exc}") from exc

    print(f"src_data: {summary.full_rows} schools -> {summary.output_paths['src_data']}")
    print(
        f"ky_report_card_data: {summary.elementary_rows} elementary schools -> "
        f"{summary.output_paths['ky_report_card_data']}"
    )
    for source, count in summary.matched.items():
        print(f"  {source}: matched {count}/{summary.full_rows}")
    if summary.issues:
        print(f"{len(summary.issues)} coercion issue(s):")
        for issue in summary.issues:
            print(f"  {issue.describe()}")
    if summary.check_results_path:
        print(f"Check results: {summary.check_results_path}")
    for result in summary.failed_checks:
        print(
            f"  FAIL {result.rule.id} on {result.table}: "
            f"{result.failure_count} of {result.total_rows}"
        )


if __name__ == "__main__":
    main()
