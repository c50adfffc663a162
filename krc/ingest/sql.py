"""SQL fragments used to normalize raw spreadsheet columns in DuckDB."""

from __future__ import annotations

from typing import Any, Iterable


def quote_ident(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


def quote_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def value_literal(value: Any) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (int, float)):
        return repr(value)
    return quote_literal(str(value))


def text_expr(column: str) -> str:
    """Trimmed text with blank cells as NULL."""
    return f"NULLIF(TRIM(CAST({quote_ident(column)} AS VARCHAR)), '')"


def numeric_expr(column: str) -> str:
    return f"TRY_CAST({text_expr(column)} AS DOUBLE)"


def percent_expr(column: str) -> str:
    return (
        f"TRY_CAST(NULLIF(TRIM(REPLACE({text_expr(column)}, '%', '')), '') AS DOUBLE)"
    )


def ratio_expr(column: str) -> str:
    """``'students:teachers'`` as teachers per student."""
    text = text_expr(column)
    students = f"TRY_CAST(NULLIF(TRIM(SPLIT_PART({text}, ':', 1)), '') AS DOUBLE)"
    teachers = f"TRY_CAST(NULLIF(TRIM(SPLIT_PART({text}, ':', 2)), '') AS DOUBLE)"
    return f"({teachers} / NULLIF({students}, 0))"


def token_expr(column: str) -> str:
    """Leading alphanumeric token, e.g. ``'001 Adair County'`` -> ``'001'``."""
    return f"NULLIF(REGEXP_EXTRACT({text_expr(column)}, '^([0-9A-Za-z]+)', 1), '')"


def build_case_expression(column: str, mapping: dict[str, Any], fallback: str = "NULL") -> str:
    clauses = []
    for alias, canonical in mapping.items():
        clauses.append(
            f"WHEN {text_expr(column)} = {quote_literal(alias)} THEN {value_literal(canonical)}"
        )
    if not clauses:
        return fallback
    clause_text = " ".join(clauses)
    return f"(CASE {clause_text} ELSE {fallback} END)"


def in_list(expr: str, values: Iterable[str]) -> str:
    literals = ", ".join(quote_literal(value) for value in values)
    return f"{expr} IN ({literals})"
