"""Quality-check declarations loaded from ``krc/config/checks.yml``."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from krc.errors import ConfigError
from krc.paths import CONFIG_BASE

CHECKS_PATH = CONFIG_BASE / "checks.yml"
RULE_TYPES = (
    "NULL_PERCENTAGE",
    "PATTERN",
    "RANGE",
    "NON_NEGATIVE",
    "ENUM",
    "DUPLICATE_PERCENTAGE",
)
_RULE_CALL = re.compile(r"^\s*([A-Za-z_]+)\s*(?:\((.*)\))?\s*$")


@dataclass(frozen=True)
class Threshold:
    warning: float
    fail: float


@dataclass(frozen=True)
class CheckRule:
    id: str
    table: str
    dimension: str
    description: str
    columns: list[str] | None
    column_regex: str | None
    rule_type: str
    rule_args: list[str]
    severity: int
    threshold: Threshold


def parse_rule_text(rule_text: str) -> tuple[str, list[str]]:
    """``'RANGE(0, 1)'`` -> ``('RANGE', ['0', '1'])``; names are case-insensitive."""
    match = _RULE_CALL.match(rule_text)
    if not match:
        raise ConfigError(f"Cannot parse check rule '{rule_text}'.")
    name, arg_text = match.groups()
    args = [arg.strip() for arg in (arg_text or "").split(",")]
    return name.upper(), [arg for arg in args if arg]


def _parse_entry(dimension: str, entry: dict[str, Any]) -> CheckRule:
    check_id = entry["id"]
    rule_type, rule_args = parse_rule_text(entry["rule"])
    if rule_type not in RULE_TYPES:
        raise ConfigError(f"Check '{check_id}' uses unknown rule {rule_type}.")
    if rule_type in ("PATTERN", "ENUM") and not rule_args:
        raise ConfigError(f"Check '{check_id}' needs arguments for {rule_type}.")
    if rule_type == "RANGE" and len(rule_args) != 2:
        raise ConfigError(f"Check '{check_id}' needs RANGE(low, high).")

    columns = entry.get("columns") or ([entry["column"]] if entry.get("column") else None)
    column_regex = entry.get("column_regex")
    if bool(columns) == bool(column_regex):
        raise ConfigError(f"Check '{check_id}' needs either columns or column_regex.")

    limits = entry.get("threshold") or {}
    threshold = Threshold(
        warning=float(limits.get("warning", 0.0)), fail=float(limits.get("fail", 0.0))
    )
    if threshold.warning > threshold.fail:
        raise ConfigError(f"Check '{check_id}' warns above its fail threshold.")

    return CheckRule(
        id=check_id,
        table=entry["table"],
        dimension=dimension,
        description=entry.get("description", ""),
        columns=columns,
        column_regex=column_regex,
        rule_type=rule_type,
        rule_args=rule_args,
        severity=int(entry.get("severity", 1)),
        threshold=threshold,
    )


def load_checks(path: Path | None = None) -> list[CheckRule]:
    raw = yaml.safe_load((path or CHECKS_PATH).read_text()) or {}
    rules = [
        _parse_entry(dimension, entry)
        for dimension, entries in (raw.get("checks") or {}).items()
        for entry in entries or []
    ]
    ids = [rule.id for rule in rules]
    repeated = sorted({check_id for check_id in ids if ids.count(check_id) > 1})
    if repeated:
        raise ConfigError(f"Duplicate check ids: {', '.join(repeated)}")
    return rules
