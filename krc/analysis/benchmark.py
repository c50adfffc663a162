"""Compare one school against the other schools in its cluster."""

from __future__ import annotations

from dataclasses import dataclass

import pandas as pd

from krc.analysis.clusters import CLUSTER_COLUMN
from krc.errors import AnalysisError

KEY = "state_sch_id"


@dataclass(frozen=True)
class PeerBenchmark:
    school_id: str
    cluster: int
    metric: str
    value: float | None
    peer_count: int
    peer_mean: float | None
    peer_median: float | None
    peer_min: float | None
    peer_max: float | None
    percentile: float | None

    def describe(self) -> str:
        if self.value is None:
            return f"{self.school_id}: no {self.metric} value (cluster {self.cluster})"
        parts = [f"{self.school_id}: {self.metric}={self.value:.3f} in cluster {self.cluster}"]
        if self.peer_count:
            parts.append(
                f"{self.peer_count} peers, mean {self.peer_mean:.3f}, "
                f"median {self.peer_median:.3f}, range {self.peer_min:.3f}-{self.peer_max:.3f}, "
                f"percentile {self.percentile:.0f}"
            )
        else:
            parts.append("no peers with a value")
        return "; ".join(parts)


def _optional(value: object) -> float | None:
    return None if pd.isna(value) else float(value)


def benchmark_school(frame: pd.DataFrame, school_id: str, metric: str) -> PeerBenchmark:
    """``frame`` holds one row per school with its cluster label and ``metric``.

    Peers are the other schools in the same cluster that have a value. The
    percentile is the share of peers at or below the school's value.
    """
    for column in (KEY, CLUSTER_COLUMN, metric):
        if column not in frame.columns:
            raise AnalysisError(f"Benchmark table lacks column '{column}'.")
    ids = frame[KEY].astype("string").fillna("")
    rows = frame.loc[ids == str(school_id)]
    if rows.empty:
        raise AnalysisError(f"School '{school_id}' has no cluster assignment.")
    school = rows.iloc[0]
    cluster = int(school[CLUSTER_COLUMN])
    value = _optional(school[metric])

    peers = frame.loc[
        (frame[CLUSTER_COLUMN] == cluster) & (ids != str(school_id)),
        metric,
    ]
    peers = peers.dropna().astype("float64")
    percentile = None
    if value is not None and len(peers):
        percentile = 100.0 * float((peers <= value).mean())
    return PeerBenchmark(
        school_id=str(school_id),
        cluster=cluster,
        metric=metric,
        value=value,
        peer_count=int(len(peers)),
        peer_mean=_optional(peers.mean()) if len(peers) else None,
        peer_median=_optional(peers.median()) if len(peers) else None,
        peer_min=_optional(peers.min()) if len(peers) else None,
        peer_max=_optional(peers.max()) if len(peers) else None,
        percentile=percentile,
    )
