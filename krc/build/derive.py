"""Rates, backfills and the declared projection of the joined table."""

from __future__ import annotations

import logging

import duckdb
import pandas as pd

from krc.build.join import matched_column
from krc.build.schema import OutputSchema, TableSchema, apply_types
from krc.errors import SchemaDriftError
from krc.ingest.models import NormalizedSource
from krc.ingest.sql import quote_ident, quote_literal

logger = logging.getLogger(__name__)

FULL_TABLE = "src_data"
ELEMENTARY_TABLE = "ky_report_card_data"


def _double(column: str) -> str:
    return f"CAST({quote_ident(column)} AS DOUBLE)"


def build_projection(schema: OutputSchema, table: TableSchema) -> tuple[str, list[str]]:
    """SELECT list for ``table`` and the joined columns it reads."""
    derived = schema.derived_map()
    backfill = schema.backfill_map()
    selections: list[str] = []
    inputs: list[str] = []
    for column in table.names:
        target = quote_ident(column)
        if column in derived:
            rate = derived[column]
            inputs.extend(rate.inputs)
            if rate.denominator:
                expr = f"{_double(rate.numerator)} / NULLIF({_double(rate.denominator)}, 0)"
            else:
                expr = f"{_double(rate.numerator)} / {rate.scale!r}"
        elif column in backfill:
            entry = backfill[column]
            flag = matched_column(entry.unmatched_source)
            inputs.extend([column, flag])
            expr = (
                f"CASE WHEN {quote_ident(flag)} THEN {target} "
                f"ELSE {quote_literal(entry.value)} END"
            )
        else:
            inputs.append(column)
            expr = target
        selections.append(f"{expr} AS {target}")
    return ", ".join(selections), list(dict.fromkeys(inputs))


def derive_table(joined: pd.DataFrame, schema: OutputSchema) -> pd.DataFrame:
    """Compute the full school table from the joined roster.

    Every rate is ``numerator / denominator`` with a zero or missing
    denominator giving null. Values are not rounded or clamped. Raw counts that
    only feed rates are left out because the declared table does not list them.
    """
    table = schema.tables[FULL_TABLE]
    projection, inputs = build_projection(schema, table)
    missing = [column for column in inputs if column not in joined.columns]
    if missing:
        raise SchemaDriftError(
            f"Joined table lacks columns needed for '{table.name}': {', '.join(missing)}"
        )
    with duckdb.connect() as con:
        con.register("joined", joined)
        frame = con.execute(f"SELECT {projection} FROM joined").df()
    logger.info("Derived %s with %s rows and %s columns", table.name, len(frame), len(frame.columns))
    return apply_types(frame, table)


def build_elementary_table(
    full: pd.DataFrame, proficiency: NormalizedSource, schema: OutputSchema
) -> pd.DataFrame:
    """Elementary schools only, with reading and math proficiency joined on."""
    table = schema.tables[ELEMENTARY_TABLE]
    key = table.key
    mask = full["level"].eq(table.level).fillna(False).astype(bool)
    schools = full.loc[mask].reset_index(drop=True)
    scores = proficiency.frame.astype({key: "string"})
    merged = schools.merge(scores, on=key, how="left", validate="many_to_one")
    missing = [column for column in table.names if column not in merged.columns]
    if missing:
        raise SchemaDriftError(
            f"Elementary table lacks declared columns: {', '.join(missing)}"
        )
    logger.info("Built %s with %s of %s schools", table.name, len(merged), len(full))
    return apply_types(merged, table)
