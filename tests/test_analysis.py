"""
Tests for the clustering analysis.

These tests verify that:
- Regression imputation fills only gaps it can predict
- PCA and k-means are deterministic and drop incomplete schools
- Peer benchmarks compare a school with its own cluster
"""

import logging

import numpy as np
import pandas as pd
import pytest

from krc.analysis.benchmark import benchmark_school
from krc.analysis.clusters import feature_columns, fit_clusters
from krc.analysis.impute import impute_regression
from krc.errors import AnalysisError
from krc.settings import AnalysisSettings, ImputeSettings

ANALYSIS = AnalysisSettings(
    impute=ImputeSettings(predictors=(), targets=()),
    n_components=2,
    n_clusters=2,
    n_init=10,
    random_state=42,
    drop_columns=("prof_rd",),
    benchmark_metric="prof_rd",
)


def two_groups(rows_per_group=6):
    """Schools in two well separated groups: small/affluent and large/poor."""
    rng = np.random.default_rng(7)
    records = []
    for group, (frpl, membership) in enumerate([(0.2, 250.0), (0.8, 700.0)]):
        for index in range(rows_per_group):
            records.append(
                {
                    "state_sch_id": f"{group:03d}{index:03d}",
                    "sch_name": f"School {group}-{index}",
                    "stn_frpl_pct": frpl + rng.normal(0, 0.02),
                    "stn_membership": membership + rng.normal(0, 10),
                    "tchr_experience_avg": 12 - 4 * group + rng.normal(0, 0.3),
                    "prof_rd": 60.0 - 20 * group + index,
                }
            )
    frame = pd.DataFrame(records)
    frame["state_sch_id"] = frame["state_sch_id"].astype("string")
    frame["sch_name"] = frame["sch_name"].astype("string")
    for column in ("stn_frpl_pct", "stn_membership", "tchr_experience_avg", "prof_rd"):
        frame[column] = frame[column].astype("Float64")
    return frame


class TestImputeRegression:
    """Tests for filling survey gaps."""

    def test_fills_missing_targets_from_predictors(self):
        """Gaps are predicted from a linear fit; other values are untouched."""
        frame = pd.DataFrame(
            {
                "a": pd.array([1.0, 2.0, 3.0, 4.0, 5.0, 6.0, 7.0], dtype="Float64"),
                "b": pd.array([0.0, 1.0, 0.0, 1.0, 0.0, 1.0, None], dtype="Float64"),
                "t": pd.array([2.0, 5.0, 6.0, 9.0, None, 13.0, None], dtype="Float64"),
            }
        )

        result = impute_regression(frame, ["t"], ["a", "b"])

        assert result.loc[4, "t"] == pytest.approx(10.0)
        assert pd.isna(result.loc[6, "t"])
        assert result.loc[0, "t"] == 2.0
        assert pd.isna(frame.loc[4, "t"])
        assert str(result["t"].dtype) == "Float64"

    def test_too_few_rows_are_skipped(self, caplog):
        """A target with fewer complete rows than predictors is left alone."""
        frame = pd.DataFrame({"a": [1.0, 2.0, 3.0], "t": [1.0, None, None]})

        with caplog.at_level(logging.WARNING):
            result = impute_regression(frame, ["t"], ["a"])

        assert result["t"].isna().sum() == 2
        assert "Skipping imputation of t" in caplog.text

    def test_missing_columns_raise(self):
        with pytest.raises(AnalysisError, match="tell_students"):
            impute_regression(pd.DataFrame({"a": [1.0]}), ["tell_students"], ["a"])


class TestFitClusters:
    """Tests for PCA and k-means over the school table."""

    def test_features_skip_ids_and_dropped_columns(self):
        assert feature_columns(two_groups(), ANALYSIS.drop_columns) == [
            "stn_frpl_pct",
            "stn_membership",
            "tchr_experience_avg",
        ]

    def test_separates_groups(self):
        """Each synthetic group lands in its own cluster."""
        result = fit_clusters(two_groups(), ANALYSIS)

        labels = result.assignments.set_index("state_sch_id")["cluster"]
        first = labels[labels.index.str.startswith("000")]
        second = labels[labels.index.str.startswith("001")]
        assert first.nunique() == 1
        assert second.nunique() == 1
        assert first.iloc[0] != second.iloc[0]
        assert list(result.assignments.columns) == ["state_sch_id", "sch_name", "cluster", "pc1", "pc2"]
        assert result.loadings.shape == (3, 2)
        assert sum(result.explained_variance) <= 1.0
        assert result.cluster_sizes == {0: 6, 1: 6}

    def test_deterministic(self):
        """The fixed seed gives identical assignments on every run."""
        first = fit_clusters(two_groups(), ANALYSIS).assignments
        second = fit_clusters(two_groups(), ANALYSIS).assignments

        pd.testing.assert_frame_equal(first, second)

    def test_incomplete_schools_are_dropped(self):
        frame = two_groups()
        frame.loc[0, "tchr_experience_avg"] = pd.NA

        result = fit_clusters(frame, ANALYSIS)

        assert result.dropped_rows == 1
        assert len(result.assignments) == 11
        assert "000000" not in result.assignments["state_sch_id"].tolist()

    def test_too_few_schools_raise(self):
        with pytest.raises(AnalysisError, match="complete schools"):
            fit_clusters(two_groups(rows_per_group=1).head(1), ANALYSIS)


class TestBenchmarkSchool:
    """Tests for peer comparison within a cluster."""

    FRAME = pd.DataFrame(
        {
            "state_sch_id": pd.array(["001010", "001040", "005010", "005040", "011010"], dtype="string"),
            "cluster": [0, 0, 0, 1, 0],
            "prof_rd": pd.array([50.0, 40.0, 60.0, 90.0, None], dtype="Float64"),
        }
    )

    def test_compares_with_cluster_peers(self):
        benchmark = benchmark_school(self.FRAME, "001010", "prof_rd")

        assert benchmark.cluster == 0
        assert benchmark.value == 50.0
        assert benchmark.peer_count == 2
        assert benchmark.peer_mean == pytest.approx(50.0)
        assert benchmark.peer_min == 40.0
        assert benchmark.peer_max == 60.0
        assert benchmark.percentile == pytest.approx(50.0)
        assert "2 peers" in benchmark.describe()

    def test_school_without_value(self):
        benchmark = benchmark_school(self.FRAME, "011010", "prof_rd")

        assert benchmark.value is None
        assert benchmark.percentile is None
        assert benchmark.peer_count == 3

    def test_alone_in_cluster(self):
        benchmark = benchmark_school(self.FRAME, "005040", "prof_rd")

        assert benchmark.peer_count == 0
        assert "no peers" in benchmark.describe()

    def test_unknown_school(self):
        with pytest.raises(AnalysisError, match="999999"):
            benchmark_school(self.FRAME, "999999", "prof_rd")
