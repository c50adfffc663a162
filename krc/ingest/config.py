"""Helpers for loading source declarations."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

import yaml

from krc.errors import ConfigError
from krc.paths import CONFIG_BASE

SOURCES_PATH = CONFIG_BASE / "sources.yml"
DEFAULT_KEY = "state_sch_id"
COLUMN_TYPES = ("text", "numeric", "percent", "ratio", "enum", "token")
ROLES = ("roster", "full", "elementary")


@dataclass(frozen=True)
class ColumnSpec:
    name: str
    source: str
    type: str
    values: dict[str, Any] | None = None
    default: float | None = None


@dataclass(frozen=True)
class PivotSpec:
    names_from: str
    values_from: str
    type: str
    columns: dict[str, str]


@dataclass(frozen=True)
class AggregateSpec:
    name: str
    group_column: str
    exclude: tuple[str, ...]
    value_column: str
    type: str
    scale: float


@dataclass(frozen=True)
class SourceSpec:
    name: str
    role: str
    file: str
    sheet: int | str
    skip_rows: int
    key: str
    filters: dict[str, tuple[str, ...]]
    exclude: dict[str, tuple[str, ...]]
    columns: tuple[ColumnSpec, ...]
    pivot: PivotSpec | None = None
    aggregate: AggregateSpec | None = None

    @property
    def output_columns(self) -> list[str]:
        """Columns of the normalized frame, key first."""
        if self.pivot:
            return [self.key, *self.pivot.columns.values()]
        if self.aggregate:
            return [self.key, self.aggregate.name]
        return [column.name for column in self.columns]

    @property
    def value_columns(self) -> list[str]:
        return [name for name in self.output_columns if name != self.key]

    def required_raw_columns(self) -> list[str]:
        required: list[str] = []
        for column in self.columns:
            required.append(column.source)
        required.extend(self.filters)
        required.extend(self.exclude)
        if self.pivot:
            required.extend([self.pivot.names_from, self.pivot.values_from])
        if self.aggregate:
            required.extend([self.aggregate.group_column, self.aggregate.value_column])
        return list(dict.fromkeys(required))


def _as_tuple(value: Any) -> tuple[str, ...]:
    if isinstance(value, (list, tuple)):
        return tuple(str(item) for item in value)
    return (str(value),)


def _parse_column(entry: dict[str, Any], source_name: str) -> ColumnSpec:
    column_type = entry.get("type", "text")
    if column_type not in COLUMN_TYPES:
        raise ConfigError(
            f"Source '{source_name}' column '{entry['name']}' has unknown type '{column_type}'."
        )
    if column_type == "enum" and not entry.get("values"):
        raise ConfigError(
            f"Source '{source_name}' enum column '{entry['name']}' declares no values."
        )
    default = entry.get("default")
    return ColumnSpec(
        name=entry["name"],
        source=entry.get("source", entry["name"]),
        type=column_type,
        values={str(k): v for k, v in entry["values"].items()} if entry.get("values") else None,
        default=float(default) if default is not None else None,
    )


def parse_source(entry: dict[str, Any]) -> SourceSpec:
    name = entry["name"]
    role = entry.get("role", "full")
    if role not in ROLES:
        raise ConfigError(f"Source '{name}' has unknown role '{role}'.")
    key = entry.get("key", DEFAULT_KEY)
    columns = [_parse_column(column, name) for column in entry.get("columns") or []]
    if key not in {column.name for column in columns}:
        columns.insert(0, ColumnSpec(name=key, source=key, type="text"))
    else:
        # the key always leads the normalized frame
        columns.sort(key=lambda column: column.name != key)

    pivot = None
    if entry.get("pivot"):
        raw_pivot = entry["pivot"]
        pivot = PivotSpec(
            names_from=raw_pivot["names_from"],
            values_from=raw_pivot["values_from"],
            type=raw_pivot.get("type", "numeric"),
            columns={str(k): str(v) for k, v in raw_pivot["columns"].items()},
        )
    aggregate = None
    if entry.get("aggregate"):
        raw_agg = entry["aggregate"]
        aggregate = AggregateSpec(
            name=raw_agg["name"],
            group_column=raw_agg["group_column"],
            exclude=_as_tuple(raw_agg.get("exclude") or ()),
            value_column=raw_agg["value_column"],
            type=raw_agg.get("type", "numeric"),
            scale=float(raw_agg.get("scale", 1)),
        )
    if pivot and aggregate:
        raise ConfigError(f"Source '{name}' cannot declare both pivot and aggregate.")

    return SourceSpec(
        name=name,
        role=role,
        file=entry["file"],
        sheet=entry.get("sheet", 0),
        skip_rows=int(entry.get("skip_rows", 0)),
        key=key,
        filters={column: _as_tuple(value) for column, value in (entry.get("filters") or {}).items()},
        exclude={column: _as_tuple(value) for column, value in (entry.get("exclude") or {}).items()},
        columns=tuple(columns),
        pivot=pivot,
        aggregate=aggregate,
    )


def parse_sources(entries: Iterable[dict[str, Any]]) -> list[SourceSpec]:
    specs = [parse_source(entry) for entry in entries]
    names = [spec.name for spec in specs]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise ConfigError(f"Duplicate source names: {', '.join(duplicates)}")
    for role in ("roster", "elementary"):
        count = sum(1 for spec in specs if spec.role == role)
        if count != 1:
            raise ConfigError(f"Expected exactly one {role} source, found {count}.")
    return specs


def load_sources(path: Path | None = None) -> list[SourceSpec]:
    source = path or SOURCES_PATH
    raw = yaml.safe_load(source.read_text()) or {}
    return parse_sources(raw.get("sources") or [])
