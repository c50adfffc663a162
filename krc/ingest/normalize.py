"""Normalize raw report-card frames into one row per key with DuckDB SQL."""

from __future__ import annotations

import logging
from typing import Callable

import duckdb
import pandas as pd

from krc.errors import CoercionError, DuplicateKeyError, SourceSchemaError
from krc.ingest.config import AggregateSpec, ColumnSpec, PivotSpec, SourceSpec
from krc.ingest.models import CoercionIssue, NormalizedSource
from krc.ingest.sql import (
    build_case_expression,
    in_list,
    numeric_expr,
    percent_expr,
    quote_ident,
    quote_literal,
    ratio_expr,
    text_expr,
    token_expr,
)

logger = logging.getLogger(__name__)

RAW_RELATION = "raw_source"
ROW_COLUMN = "krc_row"
SAMPLE_LIMIT = 5

VALUE_EXPRESSIONS: dict[str, Callable[[str], str]] = {
    "text": text_expr,
    "numeric": numeric_expr,
    "percent": percent_expr,
    "ratio": ratio_expr,
    "token": token_expr,
}


def _prepare_raw(raw: pd.DataFrame) -> pd.DataFrame:
    prepared = pd.DataFrame(index=range(len(raw)))
    prepared[ROW_COLUMN] = range(len(raw))
    for column in raw.columns:
        prepared[column] = [
            None if pd.isna(value) else str(value) for value in raw[column].tolist()
        ]
    return prepared


class SourceNormalizer:
    """Build and run the normalizing query declared for one source."""

    def __init__(self, spec: SourceSpec, strict: bool = False) -> None:
        self.spec = spec
        self.strict = strict

    def normalize(self, raw: pd.DataFrame) -> NormalizedSource:
        self._check_columns(raw)
        prepared = _prepare_raw(raw)
        with duckdb.connect() as con:
            con.register(RAW_RELATION, prepared)
            issues = self._audit(con)
            con.execute(f"CREATE TABLE normalized AS {self._build_select()}")
            duplicates = self._duplicate_keys(con)
            frame = self._fetch(con, dedupe=bool(duplicates))

        for issue in issues:
            logger.warning("Coercion: %s", issue.describe())
        if issues and self.strict:
            details = "; ".join(issue.describe() for issue in issues)
            raise CoercionError(f"Source '{self.spec.name}' has uncoercible cells: {details}")
        if duplicates:
            message = (
                f"Source '{self.spec.name}' has {len(duplicates)} duplicated "
                f"{self.spec.key} values (e.g. {', '.join(duplicates[:SAMPLE_LIMIT])})"
            )
            if self.strict:
                raise DuplicateKeyError(message)
            logger.warning("%s; keeping the first row for each", message)

        logger.info(
            "Normalized %s: %s raw rows -> %s keyed rows", self.spec.name, len(raw), len(frame)
        )
        return NormalizedSource(
            spec=self.spec,
            frame=frame,
            raw_rows=len(raw),
            issues=issues,
            duplicate_keys=duplicates,
        )

    def _check_columns(self, raw: pd.DataFrame) -> None:
        missing = [
            column for column in self.spec.required_raw_columns() if column not in raw.columns
        ]
        if missing:
            raise SourceSchemaError(
                f"Source '{self.spec.name}' ({self.spec.file}) is missing columns: "
                f"{', '.join(missing)}"
            )

    def _key_column(self) -> ColumnSpec:
        return next(column for column in self.spec.columns if column.name == self.spec.key)

    def _value_expr(self, column: ColumnSpec, with_default: bool = True) -> str:
        if column.type == "enum":
            expr = build_case_expression(column.source, column.values or {})
        else:
            expr = VALUE_EXPRESSIONS[column.type](column.source)
        if with_default and column.default is not None:
            expr = f"COALESCE({expr}, {column.default!r})"
        return expr

    def _where_clause(self) -> str:
        clauses = [f"{self._value_expr(self._key_column())} IS NOT NULL"]
        for column, values in self.spec.filters.items():
            clauses.append(in_list(text_expr(column), values))
        for column, values in self.spec.exclude.items():
            clauses.append(f"NOT ({in_list(text_expr(column), values)})")
        return " AND ".join(clauses)

    def _build_select(self) -> str:
        if self.spec.pivot:
            return self._build_pivot(self.spec.pivot)
        if self.spec.aggregate:
            return self._build_aggregate(self.spec.aggregate)
        selections = [
            f"{self._value_expr(column)} AS {quote_ident(column.name)}"
            for column in self.spec.columns
        ]
        selections.append(quote_ident(ROW_COLUMN))
        return f"SELECT {', '.join(selections)} FROM {RAW_RELATION} WHERE {self._where_clause()}"

    def _build_pivot(self, pivot: PivotSpec) -> str:
        key_expr = self._value_expr(self._key_column())
        value_expr = VALUE_EXPRESSIONS[pivot.type](pivot.values_from)
        selections = [f"{key_expr} AS {quote_ident(self.spec.key)}"]
        for measure, output in pivot.columns.items():
            selections.append(
                f"MAX(CASE WHEN {text_expr(pivot.names_from)} = {quote_literal(measure)} "
                f"THEN {value_expr} END) AS {quote_ident(output)}"
            )
        selections.append(f"MIN({quote_ident(ROW_COLUMN)}) AS {quote_ident(ROW_COLUMN)}")
        measures = in_list(text_expr(pivot.names_from), pivot.columns)
        return (
            f"SELECT {', '.join(selections)} FROM {RAW_RELATION} "
            f"WHERE {self._where_clause()} AND {measures} GROUP BY 1"
        )

    def _build_aggregate(self, aggregate: AggregateSpec) -> str:
        key_expr = self._value_expr(self._key_column())
        value_expr = VALUE_EXPRESSIONS[aggregate.type](aggregate.value_column)
        group_expr = text_expr(aggregate.group_column)
        conditions = [self._where_clause(), f"{group_expr} IS NOT NULL"]
        if aggregate.exclude:
            conditions.append(f"NOT ({in_list(group_expr, aggregate.exclude)})")
        return (
            f"SELECT {key_expr} AS {quote_ident(self.spec.key)}, "
            f"SUM({value_expr}) / {aggregate.scale!r} AS {quote_ident(aggregate.name)}, "
            f"MIN({quote_ident(ROW_COLUMN)}) AS {quote_ident(ROW_COLUMN)} "
            f"FROM {RAW_RELATION} WHERE {' AND '.join(conditions)} GROUP BY 1"
        )

    def _audit_targets(self) -> list[tuple[str, str, str, str]]:
        """(output column, raw column, kind, extra condition) for each coerced value."""
        targets: list[tuple[str, str, str, str]] = []
        if self.spec.pivot:
            pivot = self.spec.pivot
            if pivot.type != "text":
                measures = in_list(text_expr(pivot.names_from), pivot.columns)
                targets.append((pivot.values_from, pivot.values_from, pivot.type, measures))
            return targets
        if self.spec.aggregate:
            aggregate = self.spec.aggregate
            if aggregate.type != "text":
                targets.append(
                    (aggregate.name, aggregate.value_column, aggregate.type, "TRUE")
                )
            return targets
        for column in self.spec.columns:
            if column.type != "text":
                targets.append((column.name, column.source, column.type, "TRUE"))
        return targets

    def _audit(self, con: duckdb.DuckDBPyConnection) -> list[CoercionIssue]:
        issues: list[CoercionIssue] = []
        columns = {column.source: column for column in self.spec.columns}
        for output, raw_column, column_type, extra in self._audit_targets():
            column = columns.get(raw_column)
            default = None
            if column is not None and column.name == output:
                expr = self._value_expr(column, with_default=False)
                default = column.default
            else:
                expr = VALUE_EXPRESSIONS[column_type](raw_column)
            condition = (
                f"{self._where_clause()} AND {extra} "
                f"AND {text_expr(raw_column)} IS NOT NULL AND {expr} IS NULL"
            )
            count = con.execute(
                f"SELECT COUNT(*) FROM {RAW_RELATION} WHERE {condition}"
            ).fetchone()[0]
            if not count:
                continue
            samples = [
                row[0]
                for row in con.execute(
                    f"SELECT DISTINCT {text_expr(raw_column)} FROM {RAW_RELATION} "
                    f"WHERE {condition} ORDER BY 1 LIMIT {SAMPLE_LIMIT}"
                ).fetchall()
            ]
            issues.append(
                CoercionIssue(
                    source=self.spec.name,
                    column=output,
                    kind="unmatched" if column_type == "enum" else "coercion",
                    count=int(count),
                    samples=tuple(samples),
                    default=default,
                )
            )
        return issues

    def _duplicate_keys(self, con: duckdb.DuckDBPyConnection) -> list[str]:
        key = quote_ident(self.spec.key)
        rows = con.execute(
            f"SELECT {key} FROM normalized GROUP BY {key} HAVING COUNT(*) > 1 ORDER BY {key}"
        ).fetchall()
        return [str(row[0]) for row in rows]

    def _fetch(self, con: duckdb.DuckDBPyConnection, dedupe: bool) -> pd.DataFrame:
        columns = ", ".join(quote_ident(column) for column in self.spec.output_columns)
        qualify = ""
        if dedupe:
            qualify = (
                f" QUALIFY ROW_NUMBER() OVER (PARTITION BY {quote_ident(self.spec.key)} "
                f"ORDER BY {quote_ident(ROW_COLUMN)}) = 1"
            )
        query = f"SELECT {columns} FROM normalized{qualify} ORDER BY {quote_ident(ROW_COLUMN)}"
        return con.execute(query).df()


def normalize_source(
    spec: SourceSpec, raw: pd.DataFrame, strict: bool = False
) -> NormalizedSource:
    return SourceNormalizer(spec, strict=strict).normalize(raw)

