"""Left-join every normalized source onto the school roster."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import duckdb
import pandas as pd

from krc.errors import JoinError
from krc.ingest.models import NormalizedSource
from krc.ingest.sql import quote_ident

logger = logging.getLogger(__name__)

ORDER_COLUMN = "krc_roster_row"
MATCH_PREFIX = "_matched_"


@dataclass
class JoinResult:
    frame: pd.DataFrame
    roster_rows: int
    matched: dict[str, int]


def matched_column(source_name: str) -> str:
    return f"{MATCH_PREFIX}{source_name}"


def _check_collisions(roster: NormalizedSource, sources: list[NormalizedSource]) -> None:
    owners: dict[str, str] = {column: roster.name for column in roster.frame.columns}
    for source in sources:
        if source.key not in owners:
            raise JoinError(
                f"Source '{source.name}' joins on '{source.key}', which the roster does not carry."
            )
        for column in source.spec.value_columns:
            if column in owners:
                raise JoinError(
                    f"Column '{column}' from '{source.name}' is already provided by "
                    f"'{owners[column]}'."
                )
            owners[column] = source.name


def build_join_query(roster: NormalizedSource, sources: list[NormalizedSource]) -> str:
    selections = [f"r.{quote_ident(column)}" for column in roster.frame.columns]
    joins: list[str] = []
    for index, source in enumerate(sources):
        alias = f"s{index}"
        key = quote_ident(source.key)
        selections.extend(
            f"{alias}.{quote_ident(column)}" for column in source.spec.value_columns
        )
        selections.append(
            f"({alias}.{key} IS NOT NULL) AS {quote_ident(matched_column(source.name))}"
        )
        joins.append(
            f"LEFT JOIN {quote_ident('src_' + source.name)} AS {alias} "
            f"ON CAST(r.{key} AS VARCHAR) = CAST({alias}.{key} AS VARCHAR)"
        )
    return (
        f"SELECT {', '.join(selections)} FROM roster AS r "
        f"{' '.join(joins)} ORDER BY r.{quote_ident(ORDER_COLUMN)}"
    )


def join_sources(roster: NormalizedSource, sources: list[NormalizedSource]) -> JoinResult:
    """Left-join ``sources`` onto ``roster`` in the given order.

    The result keeps exactly the roster rows, in roster order. A
    ``_matched_<source>`` flag records whether each school was found in each
    source.
    """
    _check_collisions(roster, sources)
    base = roster.frame.copy()
    base[ORDER_COLUMN] = range(len(base))

    with duckdb.connect() as con:
        con.register("roster", base)
        for source in sources:
            con.register(f"src_{source.name}", source.frame)
        frame = con.execute(build_join_query(roster, sources)).df()

    if len(frame) != len(base):
        raise JoinError(
            f"Join produced {len(frame)} rows from a roster of {len(base)}; "
            "a source has repeated keys."
        )

    matched = {
        source.name: int(frame[matched_column(source.name)].sum()) for source in sources
    }
    for name, count in matched.items():
        logger.info("Joined %s: %s of %s roster schools matched", name, count, len(frame))
    return JoinResult(frame=frame, roster_rows=len(base), matched=matched)
