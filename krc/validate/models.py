"""Data models for quality-check results."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from krc.validate.config import CheckRule


@dataclass
class CheckResult:
    rule: CheckRule
    table: str
    columns: list[str]
    failure_count: int
    total_rows: int
    failure_rate: float
    status: str
    issue_type: str
    samples: list[dict[str, Any]]
