"""Flatten check results into the quality mart and write it as parquet."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable

import pandas as pd

from krc.validate.models import CheckResult

CHECK_RESULTS_FILE = "check_results.parquet"
CHECK_RESULT_COLUMNS = [
    "run_ts",
    "check_id",
    "table_name",
    "dimension",
    "rule_type",
    "columns",
    "severity",
    "threshold_warning",
    "threshold_fail",
    "failure_count",
    "total_rows",
    "failure_rate",
    "status",
    "issue_type",
    "sample_school_ids",
    "sample_rows_json",
    "description",
]


def _record(result: CheckResult, run_ts: str) -> dict[str, Any]:
    rule = result.rule
    school_ids = [row.get("state_sch_id") for row in result.samples if row.get("state_sch_id")]
    return {
        "run_ts": run_ts,
        "check_id": rule.id,
        "table_name": result.table,
        "dimension": rule.dimension,
        "rule_type": rule.rule_type,
        "columns": ", ".join(result.columns),
        "severity": rule.severity,
        "threshold_warning": rule.threshold.warning,
        "threshold_fail": rule.threshold.fail,
        "failure_count": result.failure_count,
        "total_rows": result.total_rows,
        "failure_rate": result.failure_rate,
        "status": result.status,
        "issue_type": result.issue_type,
        "sample_school_ids": ", ".join(dict.fromkeys(school_ids)),
        "sample_rows_json": json.dumps(result.samples, ensure_ascii=False),
        "description": rule.description,
    }


def build_check_results(results: Iterable[CheckResult], run_ts: datetime) -> pd.DataFrame:
    stamp = run_ts.isoformat()
    return pd.DataFrame(
        [_record(result, stamp) for result in results], columns=CHECK_RESULT_COLUMNS
    )


def persist_check_results(df: pd.DataFrame, quality_dir: Path) -> Path:
    quality_dir.mkdir(parents=True, exist_ok=True)
    path = quality_dir / CHECK_RESULTS_FILE
    df.to_parquet(path, index=False)
    return path
