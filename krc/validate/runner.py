"""Run the configured quality checks over the output tables."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

import duckdb
import pandas as pd

from krc.validate.config import CheckRule, load_checks
from krc.validate.models import CheckResult
from krc.validate.rule_executor import RuleEvaluator, plain_frame

logger = logging.getLogger(__name__)


class QualityRunner:
    def __init__(
        self,
        tables: dict[str, pd.DataFrame],
        checks_path: Path | None = None,
        rules: list[CheckRule] | None = None,
    ) -> None:
        self.tables = tables
        if rules is None:
            rules = load_checks(checks_path)
        self.rules: list[CheckRule] = [rule for rule in rules if rule.table in tables]
        self.run_ts = datetime.now(timezone.utc)

    def run(self) -> list[CheckResult]:
        with duckdb.connect() as con:
            for name, frame in self.tables.items():
                con.register(name, plain_frame(frame))
            evaluator = RuleEvaluator(self.tables)
            results = [evaluator.evaluate(con, rule) for rule in self.rules]

        for result in results:
            if result.status == "pass":
                continue
            logger.warning(
                "Check %s %s on %s: %s of %s values (%.2f%%) in %s",
                result.rule.id,
                result.status,
                result.table,
                result.failure_count,
                result.total_rows,
                result.failure_rate * 100,
                ", ".join(result.columns),
            )
        return results
