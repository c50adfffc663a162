"""Pipeline runner: read, normalize, join, derive, verify, write, check."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import pandas as pd

from krc.build.derive import (
    ELEMENTARY_TABLE,
    FULL_TABLE,
    build_elementary_table,
    derive_table,
)
from krc.build.join import JoinResult, join_sources
from krc.build.schema import OutputSchema, load_schema, verify_columns
from krc.ingest.config import SourceSpec, load_sources
from krc.ingest.models import CoercionIssue, NormalizedSource
from krc.ingest.normalize import normalize_source
from krc.ingest.readers import read_source
from krc.settings import Settings
from krc.validate.config import load_checks
from krc.validate.models import CheckResult
from krc.validate.output import build_check_results, persist_check_results
from krc.validate.runner import QualityRunner

logger = logging.getLogger(__name__)


@dataclass
class BuiltTables:
    full: pd.DataFrame
    elementary: pd.DataFrame
    join: JoinResult
    sources: dict[str, NormalizedSource]

    @property
    def issues(self) -> list[CoercionIssue]:
        return [issue for source in self.sources.values() for issue in source.issues]

    def as_dict(self) -> dict[str, pd.DataFrame]:
        return {FULL_TABLE: self.full, ELEMENTARY_TABLE: self.elementary}


@dataclass
class PipelineSummary:
    full_rows: int
    elementary_rows: int
    output_paths: dict[str, Path]
    matched: dict[str, int]
    issues: list[CoercionIssue] = field(default_factory=list)
    check_results: list[CheckResult] = field(default_factory=list)
    check_results_path: Path | None = None

    @property
    def failed_checks(self) -> list[CheckResult]:
        return [result for result in self.check_results if result.status == "fail"]


def build_tables(
    specs: list[SourceSpec],
    normalized: dict[str, NormalizedSource],
    schema: OutputSchema,
) -> BuiltTables:
    """Join and derive both output tables from already-normalized sources."""
    roster = next(normalized[spec.name] for spec in specs if spec.role == "roster")
    school_sources = [normalized[spec.name] for spec in specs if spec.role == "full"]
    joined = join_sources(roster, school_sources)
    full = derive_table(joined.frame, schema)
    verify_columns(full, schema.tables[FULL_TABLE])

    proficiency = next(normalized[spec.name] for spec in specs if spec.role == "elementary")
    elementary = build_elementary_table(full, proficiency, schema)
    verify_columns(elementary, schema.tables[ELEMENTARY_TABLE])
    return BuiltTables(full=full, elementary=elementary, join=joined, sources=normalized)


def write_tables(tables: dict[str, pd.DataFrame], paths: dict[str, Path]) -> dict[str, Path]:
    """Write every table or none: files are staged and moved once all succeed."""
    staged: dict[Path, Path] = {}
    try:
        for name, frame in tables.items():
            target = paths[name]
            target.parent.mkdir(parents=True, exist_ok=True)
            temp = target.with_name(target.name + ".tmp")
            frame.to_csv(temp, index=False)
            staged[temp] = target
    except Exception:
        for temp in staged:
            temp.unlink(missing_ok=True)
        raise
    # Earlier tables are kept aside until every move succeeds.
    moved: list[tuple[Path, Path | None]] = []
    try:
        for temp, target in staged.items():
            backup = None
            if target.exists():
                backup = target.with_name(target.name + ".bak")
                os.replace(target, backup)
            moved.append((target, backup))
            os.replace(temp, target)
    except OSError:
        for target, backup in reversed(moved):
            if backup is None:
                target.unlink(missing_ok=True)
            else:
                os.replace(backup, target)
        for temp in staged:
            temp.unlink(missing_ok=True)
        raise
    for _, backup in moved:
        if backup is not None:
            backup.unlink()
    return {name: paths[name] for name in tables}


class PipelineRunner:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.specs = load_sources(settings.sources_path)
        self.schema = load_schema(settings.schema_path)
        self.checks = load_checks(settings.checks_path)

    def normalize_all(self) -> dict[str, NormalizedSource]:
        normalized: dict[str, NormalizedSource] = {}
        for spec in self.specs:
            raw = read_source(spec, self.settings.data_dir)
            normalized[spec.name] = normalize_source(spec, raw, strict=self.settings.strict)
        return normalized

    def build(self) -> BuiltTables:
        logger.info(
            "Reading %s sources from %s", len(self.specs), self.settings.data_dir
        )
        return build_tables(self.specs, self.normalize_all(), self.schema)

    def run(self, persist_checks: bool = True) -> PipelineSummary:
        built = self.build()
        tables = built.as_dict()
        paths = write_tables(
            tables, {name: self.settings.output_path(name) for name in tables}
        )
        for name, path in paths.items():
            logger.info("Wrote %s (%s rows) to %s", name, len(tables[name]), path)

        quality = QualityRunner(tables, rules=self.checks)
        results = quality.run()
        check_path = None
        if persist_checks:
            check_df = build_check_results(results, quality.run_ts)
            check_path = persist_check_results(check_df, self.settings.quality_dir)

        return PipelineSummary(
            full_rows=len(built.full),
            elementary_rows=len(built.elementary),
            output_paths=paths,
            matched=built.join.matched,
            issues=built.issues,
            check_results=results,
            check_results_path=check_path,
        )
