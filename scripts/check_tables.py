#!/usr/bin/env python3
"""Re-run the quality checks against the persisted report-card tables."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from krc.build.derive import ELEMENTARY_TABLE, FULL_TABLE
from krc.build.schema import load_schema, read_table
from krc.errors import PipelineError
from krc.logs import configure_logging
from krc.settings import load_settings
from krc.validate.output import build_check_results, persist_check_results
from krc.validate.runner import QualityRunner


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Check the built report-card tables.")
    parser.add_argument(
        "--data-dir",
        type=Path,
        help="Directory holding the built tables (default from pipeline.yml).",
    )
    parser.add_argument(
        "--fail-on-warn",
        action="store_true",
        help="Exit non-zero when any check warns, not only when one fails.",
    )
    parser.add_argument("--verbose", action="store_true", help="Log at DEBUG level.")
    args = parser.parse_args(argv)

    configure_logging(args.verbose)
    settings = load_settings().with_overrides(data_dir=args.data_dir)
    schema = load_schema(settings.schema_path)
    tables = {}
    for name in (FULL_TABLE, ELEMENTARY_TABLE):
        path = settings.output_path(name)
        if not path.exists():
            raise SystemExit(f"Missing {name} at {path}; run scripts/build_tables.py first.")
        try:
            tables[name] = read_table(path, schema.tables[name])
        except PipelineError as exc:
            raise SystemExit(str(exc)) from exc

    try:
        quality = QualityRunner(tables, settings.checks_path)
    except PipelineError as exc:
        raise SystemExit(f"Cannot load checks: {exc}") from exc
    results = quality.run()
    check_df = build_check_results(results, quality.run_ts)
    check_path = persist_check_results(check_df, settings.quality_dir)

    for result in results:
        print(
            f"{result.status.upper():4} {result.rule.id:28} {result.table:20} "
            f"{result.failure_count}/{result.total_rows}"
        )
    print(f"Check results: {check_path}")

    blocking = {"fail", "warn"} if args.fail_on_warn else {"fail"}
    failed = [result for result in results if result.status in blocking]
    if failed:
        raise SystemExit(
            f"{len(failed)} check(s) did not pass: {', '.join(r.rule.id for r in failed)}"
        )


if __name__ == "__main__":
    main()
