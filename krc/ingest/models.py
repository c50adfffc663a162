"""Data models for normalized sources."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from krc.ingest.config import SourceSpec


@dataclass(frozen=True)
class CoercionIssue:
    source: str
    column: str
    kind: str
    count: int
    samples: tuple[Any, ...]
    default: float | None = None

    def describe(self) -> str:
        what = "unmatched values" if self.kind == "unmatched" else "non-numeric cells"
        outcome = "null" if self.default is None else f"default {self.default:g}"
        sample_text = ", ".join(repr(value) for value in self.samples)
        return f"{self.source}.{self.column}: {self.count} {what} set to {outcome} (e.g. {sample_text})"


@dataclass
class NormalizedSource:
    spec: SourceSpec
    frame: pd.DataFrame
    raw_rows: int
    issues: list[CoercionIssue] = field(default_factory=list)
    duplicate_keys: list[str] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def key(self) -> str:
        return self.spec.key
