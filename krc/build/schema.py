"""Declared output vocabulary and drift checks against it."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd
import yaml

from krc.errors import ConfigError, SchemaDriftError
from krc.paths import CONFIG_BASE

SCHEMA_PATH = CONFIG_BASE / "schema.yml"

# declared type -> pandas dtype of the persisted frame
DTYPES: dict[str, str] = {
    "text": "string",
    "numeric": "Float64",
    "integer": "Int64",
}


@dataclass(frozen=True)
class DerivedRate:
    name: str
    numerator: str
    denominator: str | None = None
    scale: float | None = None

    @property
    def inputs(self) -> list[str]:
        return [self.numerator] + ([self.denominator] if self.denominator else [])


@dataclass(frozen=True)
class Backfill:
    column: str
    value: str
    unmatched_source: str


@dataclass(frozen=True)
class OutputColumn:
    name: str
    type: str


@dataclass(frozen=True)
class TableSchema:
    name: str
    key: str
    columns: tuple[OutputColumn, ...]
    level: str | None = None

    @property
    def names(self) -> list[str]:
        return [column.name for column in self.columns]

    def dtypes(self) -> dict[str, str]:
        return {column.name: DTYPES[column.type] for column in self.columns}


@dataclass(frozen=True)
class OutputSchema:
    derived: tuple[DerivedRate, ...]
    backfill: tuple[Backfill, ...]
    tables: dict[str, TableSchema]

    def derived_map(self) -> dict[str, DerivedRate]:
        return {rate.name: rate for rate in self.derived}

    def backfill_map(self) -> dict[str, Backfill]:
        return {entry.column: entry for entry in self.backfill}


def _parse_rate(entry: dict[str, Any]) -> DerivedRate:
    if bool(entry.get("denominator")) == ("scale" in entry):
        raise ConfigError(f"Rate '{entry['name']}' needs exactly one of denominator or scale.")
    return DerivedRate(
        name=entry["name"],
        numerator=entry["numerator"],
        denominator=entry.get("denominator"),
        scale=float(entry["scale"]) if "scale" in entry else None,
    )


def _parse_table(name: str, payload: dict[str, Any]) -> TableSchema:
    columns = []
    for entry in payload.get("columns") or []:
        column_type = entry.get("type", "numeric")
        if column_type not in DTYPES:
            raise ConfigError(f"Table '{name}' column '{entry['name']}' has unknown type.")
        columns.append(OutputColumn(name=entry["name"], type=column_type))
    return TableSchema(
        name=name,
        key=payload.get("key", "state_sch_id"),
        columns=tuple(columns),
        level=payload.get("level"),
    )


def load_schema(path: Path | None = None) -> OutputSchema:
    source = path or SCHEMA_PATH
    raw = yaml.safe_load(source.read_text()) or {}
    return OutputSchema(
        derived=tuple(_parse_rate(entry) for entry in raw.get("derived") or []),
        backfill=tuple(
            Backfill(
                column=entry["column"],
                value=str(entry["value"]),
                unmatched_source=entry["unmatched_source"],
            )
            for entry in raw.get("backfill") or []
        ),
        tables={
            name: _parse_table(name, payload)
            for name, payload in (raw.get("tables") or {}).items()
        },
    )


def apply_types(frame: pd.DataFrame, table: TableSchema) -> pd.DataFrame:
    typed = frame[table.names].copy()
    for column, dtype in table.dtypes().items():
        if dtype == "Int64":
            typed[column] = pd.to_numeric(typed[column]).astype("Int64")
        else:
            typed[column] = typed[column].astype(dtype)
    return typed.reset_index(drop=True)


def _actual_type(dtype: Any) -> str | None:
    for declared, expected in DTYPES.items():
        if str(dtype) == expected:
            return declared
    return None


def compare_columns(frame: pd.DataFrame, table: TableSchema) -> list[str]:
    """Human-readable differences between ``frame`` and its declared table."""
    notes: list[str] = []
    expected = table.names
    actual = list(frame.columns)
    missing = [column for column in expected if column not in actual]
    new = [column for column in actual if column not in expected]
    if missing:
        notes.append(f"Missing columns: {', '.join(missing)}")
    if new:
        notes.append(f"New columns: {', '.join(new)}")
    if not missing and not new and actual != expected:
        notes.append("Columns are out of declared order")
    type_changes = []
    for column in table.columns:
        if column.name not in frame.columns:
            continue
        actual_type = _actual_type(frame[column.name].dtype)
        if actual_type != column.type:
            type_changes.append(f"{column.name} ({column.type}→{actual_type or frame[column.name].dtype})")
    if type_changes:
        notes.append(f"Type changes: {', '.join(type_changes)}")
    return notes


def verify_columns(frame: pd.DataFrame, table: TableSchema) -> None:
    notes = compare_columns(frame, table)
    if notes:
        raise SchemaDriftError(f"Table '{table.name}' drifted from schema: {'; '.join(notes)}")


def read_table(path: Path, table: TableSchema) -> pd.DataFrame:
    """Load a persisted table with its declared types; ids stay text."""
    text_columns = {column.name: str for column in table.columns if column.type == "text"}
    frame = pd.read_csv(path, dtype=text_columns, float_precision="round_trip")
    notes = [note for note in compare_columns(frame, table) if not note.startswith("Type changes")]
    if notes:
        raise SchemaDriftError(f"{path.name} does not match '{table.name}': {'; '.join(notes)}")
    return apply_types(frame, table)
