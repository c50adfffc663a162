"""
End-to-end tests over synthetic report-card workbooks.

These tests verify that a full run:
- Builds both tables from the declared downloads
- Carries the deliberate issues in the synthetic data to their documented outcome
- Writes all outputs or none
- Feeds the clustering analysis
"""

from dataclasses import replace

import pandas as pd
import pytest

from krc.analysis.benchmark import benchmark_school
from krc.analysis.runner import run_analysis
from krc.build.runner import PipelineRunner
from krc.errors import CoercionError, ConfigError, SourceFileError
from tools.synthetic_cli import generate_dataset


@pytest.fixture
def dataset(settings):
    generate_dataset(settings.data_dir, seed=42)
    return settings


@pytest.fixture
def summary(dataset):
    return PipelineRunner(dataset).run()


def read_output(settings, name):
    return pd.read_csv(
        settings.output_path(name),
        dtype={"state_sch_id": str, "dist_number": str},
        float_precision="round_trip",
    )


class TestPipelineRun:
    """Tests for a full build over the synthetic downloads."""

    def test_row_counts(self, summary):
        """One row per A1 school; only elementary schools in the reduced table."""
        assert summary.full_rows == 16
        assert summary.elementary_rows == 9
        assert summary.matched["sch_level"] == 15
        assert summary.matched["seek_funds"] == 16

    def test_outputs_written(self, dataset, summary):
        full = read_output(dataset, "src_data")

        assert summary.output_paths["src_data"].exists()
        assert summary.output_paths["ky_report_card_data"].exists()
        assert summary.check_results_path.exists()
        assert full["state_sch_id"].iloc[0] == "001010"
        assert "011900" not in full["state_sch_id"].tolist()

    def test_documented_outcomes(self, dataset, summary):
        """Each planted issue ends up where the rules say it should."""
        full = read_output(dataset, "src_data").set_index("state_sch_id")

        assert full.loc["001050", "level"] == "PreK"
        assert pd.isna(full.loc["001050", "stn_white_pct"])
        assert pd.isna(full.loc["011010", "title1_status"])
        assert full.loc["001010", "title1_status"] == 3
        assert pd.isna(full.loc["011020", "stn_chronic_absence_pct"])
        assert pd.isna(full.loc["017030", "tell_students"])
        assert full.loc["005040", "tchr_new_pct"] == 0
        assert full.loc["001010", "dist_number"] == "001"
        assert full["dist_seek_funding"].notna().all()
        assert full["tell_students"].dropna().between(0, 1).all()
        assert full["student_teacher_ratio"].between(1 / 19, 1 / 13).all()

    def test_issues_are_reported(self, summary):
        """Suppressed counts and unknown Title I labels are reported, not fatal."""
        found = {(issue.source, issue.column, issue.kind) for issue in summary.issues}

        assert ("roster", "title1_status", "unmatched") in found
        assert ("chronic_absence", "stn_chronic_absence_total", "coercion") in found

    def test_elementary_table(self, dataset, summary):
        elementary = read_output(dataset, "ky_report_card_data")

        assert set(elementary["level"]) == {"Elementary"}
        assert elementary["prof_ma"].notna().all()
        assert elementary["prof_rd"].between(0, 100).all()

    def test_checks_flag_without_failing_the_build(self, summary):
        statuses = {result.rule.id: result.status for result in summary.check_results}

        assert statuses["unique_school_id"] == "pass"
        assert statuses["school_id_digits"] == "pass"
        assert statuses["level_codes"] == "pass"
        assert statuses["title1_codes"] == "pass"


class TestAllOrNothing:
    """Tests for failed runs."""

    def test_missing_source_writes_nothing(self, dataset):
        (dataset.data_dir / "MIGRANT.xlsx").unlink()

        with pytest.raises(SourceFileError, match="MIGRANT"):
            PipelineRunner(dataset).run()

        assert not dataset.output_path("src_data").exists()
        assert not dataset.output_path("ky_report_card_data").exists()

    def test_strict_run_stops_on_suppressed_cells(self, dataset):
        with pytest.raises(CoercionError):
            PipelineRunner(replace(dataset, strict=True)).run()

        assert not dataset.output_path("src_data").exists()

    def test_malformed_checks_stop_before_writing(self, dataset, tmp_path):
        """A broken checks.yml fails the build before any table is written."""
        checks = tmp_path / "checks.yml"
        checks.write_text(
            "checks:\n  validity:\n    - {id: bad, table: src_data, column: level, rule: MEDIAN(3)}\n"
        )

        with pytest.raises(ConfigError, match="unknown rule"):
            PipelineRunner(replace(dataset, checks_path=checks)).run()

        assert not dataset.output_path("src_data").exists()
        assert not dataset.output_path("ky_report_card_data").exists()


class TestAnalysisRun:
    """Tests for clustering the built elementary table."""

    def test_clusters_and_benchmark(self, dataset, summary):
        outcome = run_analysis(dataset)

        table = outcome.table
        assert outcome.output_path.exists()
        assert len(table) == 9
        assert outcome.clusters.dropped_rows == 0
        assert set(table["cluster"]) <= set(range(dataset.analysis.n_clusters))
        assert "prof_rd" in table.columns

        benchmark = benchmark_school(table, "001010", "prof_rd")
        assert benchmark.school_id == "001010"
        assert benchmark.peer_count == int((table["cluster"] == benchmark.cluster).sum()) - 1

    def test_requires_built_tables(self, settings):
        with pytest.raises(SourceFileError, match="build the tables first"):
            run_analysis(settings)
