"""Load run settings from ``krc/config/pipeline.yml``."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from krc.paths import CONFIG_BASE, REPO_ROOT

SETTINGS_PATH = CONFIG_BASE / "pipeline.yml"


@dataclass(frozen=True)
class ImputeSettings:
    predictors: tuple[str, ...]
    targets: tuple[str, ...]


@dataclass(frozen=True)
class AnalysisSettings:
    impute: ImputeSettings
    n_components: int
    n_clusters: int
    n_init: int
    random_state: int
    drop_columns: tuple[str, ...]
    benchmark_metric: str


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    outputs: dict[str, str]
    quality_dir: Path
    strict: bool
    analysis: AnalysisSettings
    sources_path: Path = field(default=CONFIG_BASE / "sources.yml")
    schema_path: Path = field(default=CONFIG_BASE / "schema.yml")
    checks_path: Path = field(default=CONFIG_BASE / "checks.yml")

    def output_path(self, table: str) -> Path:
        return self.data_dir / self.outputs[table]

    def with_overrides(
        self, data_dir: Path | None = None, strict: bool | None = None
    ) -> "Settings":
        changes: dict[str, Any] = {}
        if data_dir is not None:
            changes["data_dir"] = data_dir
        if strict is not None:
            changes["strict"] = strict
        return replace(self, **changes)


def _resolve(value: str) -> Path:
    path = Path(value)
    return path if path.is_absolute() else REPO_ROOT / path


def _parse_analysis(raw: dict[str, Any]) -> AnalysisSettings:
    impute = raw.get("impute") or {}
    return AnalysisSettings(
        impute=ImputeSettings(
            predictors=tuple(impute.get("predictors") or ()),
            targets=tuple(impute.get("targets") or ()),
        ),
        n_components=int((raw.get("pca") or {}).get("n_components", 5)),
        n_clusters=int((raw.get("kmeans") or {}).get("n_clusters", 4)),
        n_init=int((raw.get("kmeans") or {}).get("n_init", 10)),
        random_state=int(raw.get("random_state", 42)),
        drop_columns=tuple(raw.get("drop_columns") or ()),
        benchmark_metric=str((raw.get("benchmark") or {}).get("metric", "prof_rd")),
    )


def load_settings(path: Path | None = None) -> Settings:
    source = path or SETTINGS_PATH
    raw = yaml.safe_load(source.read_text()) or {}
    return Settings(
        data_dir=_resolve(raw.get("data_dir", "data")),
        outputs={str(k): str(v) for k, v in (raw.get("outputs") or {}).items()},
        quality_dir=_resolve(raw.get("quality_dir", "data/marts/quality")),
        strict=bool(raw.get("strict", False)),
        analysis=_parse_analysis(raw.get("analysis") or {}),
    )
