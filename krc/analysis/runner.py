"""Impute, cluster and persist cluster assignments for elementary schools."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import pandas as pd

from krc.analysis.clusters import ClusterResult, fit_clusters
from krc.analysis.impute import impute_regression
from krc.build.derive import ELEMENTARY_TABLE
from krc.build.schema import load_schema, read_table
from krc.errors import SourceFileError
from krc.settings import Settings

logger = logging.getLogger(__name__)

CLUSTER_TABLE = "school_clusters"


@dataclass
class AnalysisOutcome:
    clusters: ClusterResult
    table: pd.DataFrame
    output_path: Path


def load_elementary_table(settings: Settings) -> pd.DataFrame:
    path = settings.output_path(ELEMENTARY_TABLE)
    if not path.exists():
        raise SourceFileError(f"{path} not found; build the tables first.")
    schema = load_schema(settings.schema_path)
    return read_table(path, schema.tables[ELEMENTARY_TABLE])


def run_analysis(settings: Settings, frame: pd.DataFrame | None = None) -> AnalysisOutcome:
    """Cluster the elementary table and write one row per clustered school.

    The written table carries the cluster label, the component scores and the
    benchmark metric so peers can be compared without re-running the model.
    """
    analysis = settings.analysis
    schools = frame if frame is not None else load_elementary_table(settings)
    imputed = impute_regression(
        schools, analysis.impute.targets, analysis.impute.predictors
    )
    clusters = fit_clusters(imputed, analysis)

    table = clusters.assignments
    if analysis.benchmark_metric in schools.columns:
        metric = schools[["state_sch_id", analysis.benchmark_metric]]
        table = table.merge(metric, on="state_sch_id", how="left", validate="one_to_one")

    path = settings.output_path(CLUSTER_TABLE)
    path.parent.mkdir(parents=True, exist_ok=True)
    table.to_csv(path, index=False)
    logger.info("Wrote %s (%s rows) to %s", CLUSTER_TABLE, len(table), path)
    return AnalysisOutcome(clusters=clusters, table=table, output_path=path)
