"""DuckDB rule evaluator for quality checks over output tables."""

from __future__ import annotations

import re
from typing import Any

import duckdb
import pandas as pd

from krc.ingest.sql import quote_ident, quote_literal
from krc.validate.config import CheckRule
from krc.validate.constants import ISSUE_TYPE_MAP, SAMPLE_COLUMNS, SAMPLE_LIMIT
from krc.validate.models import CheckResult


def plain_frame(frame: pd.DataFrame) -> pd.DataFrame:
    """Numpy-backed copy of a typed output frame for registration in DuckDB."""
    plain = pd.DataFrame(index=frame.index)
    for column in frame.columns:
        series = frame[column]
        if pd.api.types.is_numeric_dtype(series.dtype) and not pd.api.types.is_bool_dtype(series.dtype):
            plain[column] = series.astype("float64")
        else:
            plain[column] = series.astype(object).where(series.notna(), None)
    return plain


def _stringify(value: Any) -> Any:
    if value is None:
        return None
    return str(value)


class RuleEvaluator:
    def __init__(self, tables: dict[str, pd.DataFrame]) -> None:
        self._table_columns = {name: list(frame.columns) for name, frame in tables.items()}
        self._table_counts = {name: len(frame) for name, frame in tables.items()}

    def evaluate(self, con: duckdb.DuckDBPyConnection, rule: CheckRule) -> CheckResult:
        handler = {
            "NULL_PERCENTAGE": self._handle_null_percentage,
            "PATTERN": self._handle_pattern,
            "RANGE": self._handle_range,
            "NON_NEGATIVE": self._handle_non_negative,
            "ENUM": self._handle_enum,
            "DUPLICATE_PERCENTAGE": self._handle_duplicate_percentage,
        }.get(rule.rule_type)
        if not handler:
            raise RuntimeError(f"No handler for rule {rule.rule_type}")
        if rule.table not in self._table_columns:
            raise RuntimeError(f"Check '{rule.id}' targets unknown table '{rule.table}'.")
        return handler(con, rule)

    def _resolve_columns(self, rule: CheckRule) -> list[str]:
        available = self._table_columns[rule.table]
        if rule.column_regex:
            regex = re.compile(rule.column_regex)
            return [column for column in available if regex.search(column)]
        columns = rule.columns or []
        missing = [column for column in columns if column not in available]
        if missing:
            raise RuntimeError(
                f"Check '{rule.id}' references missing columns: {', '.join(missing)}"
            )
        return columns

    def _handle_null_percentage(
        self, con: duckdb.DuckDBPyConnection, rule: CheckRule
    ) -> CheckResult:
        return self._per_column(con, rule, lambda column: f"{column} IS NULL")

    def _handle_pattern(
        self, con: duckdb.DuckDBPyConnection, rule: CheckRule
    ) -> CheckResult:
        pattern = quote_literal(rule.rule_args[0])
        return self._per_column(
            con,
            rule,
            lambda column: (
                f"{column} IS NOT NULL AND NOT REGEXP_MATCHES(TRIM(CAST({column} AS VARCHAR)), {pattern})"
            ),
        )

    def _handle_range(
        self, con: duckdb.DuckDBPyConnection, rule: CheckRule
    ) -> CheckResult:
        low, high = (float(arg) for arg in rule.rule_args[:2])
        return self._per_column(
            con,
            rule,
            lambda column: f"{column} IS NOT NULL AND ({column} < {low!r} OR {column} > {high!r})",
        )

    def _handle_non_negative(
        self, con: duckdb.DuckDBPyConnection, rule: CheckRule
    ) -> CheckResult:
        return self._per_column(con, rule, lambda column: f"{column} < 0")

    def _handle_enum(
        self, con: duckdb.DuckDBPyConnection, rule: CheckRule
    ) -> CheckResult:
        try:
            numbers = [float(arg) for arg in rule.rule_args]
        except ValueError:
            numbers = []
        if numbers:
            allowed = ", ".join(repr(number) for number in numbers)
            return self._per_column(
                con,
                rule,
                lambda column: f"{column} IS NOT NULL AND CAST({column} AS DOUBLE) NOT IN ({allowed})",
            )
        allowed = ", ".join(quote_literal(arg.lower()) for arg in rule.rule_args)
        return self._per_column(
            con,
            rule,
            lambda column: (
                f"{column} IS NOT NULL AND LOWER(TRIM(CAST({column} AS VARCHAR))) NOT IN ({allowed})"
            ),
        )

    def _handle_duplicate_percentage(
        self, con: duckdb.DuckDBPyConnection, rule: CheckRule
    ) -> CheckResult:
        columns = self._resolve_columns(rule)
        partition_cols = ", ".join(quote_ident(col) for col in columns)
        failure_query = f"""
        SELECT *
        FROM (
            SELECT *, ROW_NUMBER() OVER (PARTITION BY {partition_cols} ORDER BY {quote_ident(columns[0])}) AS krc_rank
            FROM {quote_ident(rule.table)}
        ) ranked
        WHERE ranked.krc_rank > 1
        """
        failure_count = self._count_matches(con, failure_query)
        samples = self._fetch_samples(con, rule.table, failure_query, columns, SAMPLE_LIMIT)
        return self._result(rule, columns, failure_count, self._table_counts[rule.table], samples)

    def _per_column(self, con: duckdb.DuckDBPyConnection, rule: CheckRule, condition) -> CheckResult:
        columns = self._resolve_columns(rule)
        failure_count = 0
        total_rows = 0
        samples: list[dict[str, Any]] = []
        for column in columns:
            total_rows += self._table_counts[rule.table]
            query = (
                f"SELECT * FROM {quote_ident(rule.table)} "
                f"WHERE {condition(quote_ident(column))}"
            )
            failure_count += self._count_matches(con, query)
            if len(samples) < SAMPLE_LIMIT:
                samples.extend(
                    self._fetch_samples(
                        con, rule.table, query, [column], SAMPLE_LIMIT - len(samples)
                    )
                )
        return self._result(rule, columns, failure_count, total_rows, samples)

    def _result(
        self,
        rule: CheckRule,
        columns: list[str],
        failure_count: int,
        total_rows: int,
        samples: list[dict[str, Any]],
    ) -> CheckResult:
        failure_rate = failure_count / total_rows if total_rows else 0.0
        return CheckResult(
            rule=rule,
            table=rule.table,
            columns=columns,
            failure_count=failure_count,
            total_rows=total_rows,
            failure_rate=failure_rate,
            status=self._determine_status(rule, failure_count, failure_rate),
            issue_type=ISSUE_TYPE_MAP.get(rule.rule_type, "invalid"),
            samples=samples,
        )

    @staticmethod
    def _determine_status(rule: CheckRule, failure_count: int, failure_rate: float) -> str:
        if not failure_count:
            return "pass"
        if failure_rate >= rule.threshold.fail:
            return "fail"
        if failure_rate >= rule.threshold.warning:
            return "warn"
        return "pass"

    @staticmethod
    def _count_matches(con: duckdb.DuckDBPyConnection, query: str) -> int:
        return int(con.execute(f"SELECT COUNT(*) FROM ({query}) AS failures").fetchone()[0])

    def _fetch_samples(
        self,
        con: duckdb.DuckDBPyConnection,
        table: str,
        query: str,
        checked: list[str],
        limit: int,
    ) -> list[dict[str, Any]]:
        available = self._table_columns[table]
        wanted = [col for col in SAMPLE_COLUMNS if col in available]
        wanted += [col for col in checked if col not in wanted]
        selection = ", ".join(quote_ident(col) for col in wanted)
        cursor = con.execute(f"SELECT {selection} FROM ({query}) AS samples LIMIT {limit}")
        columns = [desc[0] for desc in cursor.description] if cursor.description else []
        return [
            {col: _stringify(value) for col, value in zip(columns, row)}
            for row in cursor.fetchall()
        ]
