"""Principal components and k-means clusters over the school table."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd
from sklearn.cluster import KMeans
from sklearn.decomposition import PCA
from sklearn.preprocessing import StandardScaler

from krc.errors import AnalysisError
from krc.settings import AnalysisSettings

logger = logging.getLogger(__name__)

ID_COLUMNS = ("state_sch_id", "sch_name")
CLUSTER_COLUMN = "cluster"


@dataclass
class ClusterResult:
    assignments: pd.DataFrame
    explained_variance: list[float]
    loadings: pd.DataFrame
    features: list[str]
    dropped_rows: int

    @property
    def cluster_sizes(self) -> dict[int, int]:
        counts = self.assignments[CLUSTER_COLUMN].value_counts().sort_index()
        return {int(label): int(size) for label, size in counts.items()}


def feature_columns(frame: pd.DataFrame, drop_columns: tuple[str, ...] = ()) -> list[str]:
    return [
        column
        for column in frame.columns
        if column not in drop_columns
        and column not in ID_COLUMNS
        and pd.api.types.is_numeric_dtype(frame[column].dtype)
    ]


def fit_clusters(frame: pd.DataFrame, settings: AnalysisSettings) -> ClusterResult:
    """Scale, project onto principal components and cluster the projection."""
    missing_ids = [column for column in ID_COLUMNS if column not in frame.columns]
    if missing_ids:
        raise AnalysisError(f"Cannot cluster without {', '.join(missing_ids)}")
    features = feature_columns(frame, settings.drop_columns)
    if not features:
        raise AnalysisError("No numeric feature columns left to cluster on.")

    values = frame[features].astype("float64")
    complete = values.notna().all(axis=1)
    dropped = int((~complete).sum())
    if dropped:
        logger.warning("Dropping %s of %s schools with missing features", dropped, len(frame))
    values = values.loc[complete]

    n_components = min(settings.n_components, len(features))
    if len(values) < max(settings.n_clusters, n_components):
        raise AnalysisError(
            f"Only {len(values)} complete schools for {settings.n_clusters} clusters "
            f"and {n_components} components."
        )

    scaled = StandardScaler().fit_transform(values.to_numpy())
    pca = PCA(n_components=n_components, random_state=settings.random_state)
    scores = pca.fit_transform(scaled)
    kmeans = KMeans(
        n_clusters=settings.n_clusters,
        random_state=settings.random_state,
        n_init=settings.n_init,
    )
    labels = kmeans.fit_predict(scores)

    component_names = [f"pc{i + 1}" for i in range(n_components)]
    assignments = frame.loc[complete, list(ID_COLUMNS)].reset_index(drop=True)
    assignments[CLUSTER_COLUMN] = labels.astype(np.int64)
    for index, name in enumerate(component_names):
        assignments[name] = scores[:, index]
    loadings = pd.DataFrame(pca.components_.T, index=features, columns=component_names)

    logger.info(
        "Clustered %s schools into %s groups; %s components explain %.1f%% of variance",
        len(assignments),
        settings.n_clusters,
        n_components,
        100 * float(pca.explained_variance_ratio_.sum()),
    )
    return ClusterResult(
        assignments=assignments,
        explained_variance=[float(value) for value in pca.explained_variance_ratio_],
        loadings=loadings,
        features=features,
        dropped_rows=dropped,
    )
