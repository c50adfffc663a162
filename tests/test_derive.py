"""
Tests for the derivation pass and the elementary table.

These tests verify that derivation:
- Computes rates with null for a zero or missing denominator
- Neither rounds nor clamps
- Backfills PreK only for schools missing from the level source
- Projects the declared columns, in order, with declared types
- Keeps zero-padded identifiers as text
"""

import pandas as pd
import pytest

from krc.build.derive import (
    ELEMENTARY_TABLE,
    FULL_TABLE,
    build_elementary_table,
    build_projection,
    derive_table,
)
from krc.build.join import matched_column
from krc.build.schema import verify_columns
from krc.errors import SchemaDriftError
from krc.ingest.models import NormalizedSource


def joined_frame(schema, rows):
    """A joined roster carrying every column the full table reads."""
    table = schema.tables[FULL_TABLE]
    _, inputs = build_projection(schema, table)
    text = {column.name for column in table.columns if column.type == "text"}
    defaults = {}
    for column in inputs:
        if column.startswith("_matched_"):
            defaults[column] = True
        elif column in text:
            defaults[column] = "x"
        else:
            defaults[column] = 10.0
    defaults.update({"level": "Elementary", "title1_status": 3, "stn_membership": 100.0})
    return pd.DataFrame([{**defaults, **row} for row in rows])


class TestDeriveTable:
    """Tests for rates, backfill and projection."""

    def test_projects_declared_columns(self, schema):
        """Output matches the declared columns, order and types."""
        frame = derive_table(joined_frame(schema, [{"state_sch_id": "001010"}]), schema)

        assert list(frame.columns) == schema.tables[FULL_TABLE].names
        verify_columns(frame, schema.tables[FULL_TABLE])
        assert "stn_white_total" not in frame.columns
        assert "stn_attendance_rate" not in frame.columns

    def test_rates_over_membership(self, schema):
        """Counts become shares of membership."""
        frame = derive_table(
            joined_frame(schema, [{"stn_white_total": 60.0, "stn_membership": 120.0}]), schema
        )

        assert frame.loc[0, "stn_white_pct"] == pytest.approx(0.5)
        assert frame.loc[0, "stn_membership"] == 120.0

    def test_zero_denominator_is_null(self, schema):
        """A school with no members has null student rates, never inf."""
        frame = derive_table(
            joined_frame(schema, [{"stn_membership": 0.0}, {"stn_membership": None, "tchr_total": 0.0}]),
            schema,
        )

        assert frame["stn_white_pct"].isna().all()
        assert frame["stn_iep_pct"].isna().all()
        assert pd.isna(frame.loc[1, "tchr_turnover_pct"])
        assert frame.loc[0, "tchr_turnover_pct"] == pytest.approx(1.0)

    def test_rates_are_not_clamped(self, schema):
        """Rates above one are kept for the checks to flag."""
        frame = derive_table(joined_frame(schema, [{"stn_safety_total": 150.0}]), schema)

        assert frame.loc[0, "stn_safety_pct"] == pytest.approx(1.5)

    def test_scaled_measures(self, schema):
        """TELL composites and attendance are rescaled from percents."""
        frame = derive_table(
            joined_frame(schema, [{"tell_leadership": 91.2, "tell_students": 75.0, "stn_attendance_rate": 94.5}]), schema
        )

        assert frame.loc[0, "tell_leadership"] == pytest.approx(0.912)
        assert frame.loc[0, "tell_students"] == pytest.approx(0.75)
        assert frame.loc[0, "stn_attendance_pct"] == pytest.approx(0.945)

    def test_prek_backfill(self, schema):
        """Schools missing from the level source become PreK; unknown codes stay null."""
        flag = matched_column("sch_level")
        frame = derive_table(
            joined_frame(
                schema,
                [
                    {"level": None, flag: False},
                    {"level": None, flag: True},
                    {"level": "High", flag: True},
                ],
            ),
            schema,
        )

        assert frame.loc[0, "level"] == "PreK"
        assert pd.isna(frame.loc[1, "level"])
        assert frame.loc[2, "level"] == "High"

    def test_leading_zero_ids_survive(self, schema):
        """Identifiers are text, zero padding intact."""
        frame = derive_table(joined_frame(schema, [{"state_sch_id": "001001016", "dist_number": "001"}]), schema)

        assert frame.loc[0, "state_sch_id"] == "001001016"
        assert frame.loc[0, "dist_number"] == "001"
        assert str(frame["state_sch_id"].dtype) == "string"

    def test_missing_input_raises(self, schema):
        """A joined table without a rate input is schema drift."""
        joined = joined_frame(schema, [{}]).drop(columns=["stn_gifted_total"])

        with pytest.raises(SchemaDriftError, match="stn_gifted_total"):
            derive_table(joined, schema)


class TestElementaryTable:
    """Tests for the reduced elementary table."""

    def test_filters_and_adds_proficiency(self, schema, make_spec):
        """Only elementary schools remain, with math and reading proficiency."""
        full = derive_table(
            joined_frame(
                schema,
                [
                    {"state_sch_id": "001010", "level": "Elementary"},
                    {"state_sch_id": "001030", "level": "High"},
                    {"state_sch_id": "001040", "level": None},
                    {"state_sch_id": "005010", "level": "Elementary"},
                ],
            ),
            schema,
        )
        spec = make_spec(
            {
                "name": "proficiency",
                "role": "elementary",
                "pivot": {
                    "names_from": "subject",
                    "values_from": "proficient_distinguished",
                    "columns": {"MA": "prof_ma", "RD": "prof_rd"},
                },
            }
        )
        proficiency = NormalizedSource(
            spec=spec,
            frame=pd.DataFrame({"state_sch_id": ["001010"], "prof_ma": [41.5], "prof_rd": [52.0]}),
            raw_rows=2,
        )

        frame = build_elementary_table(full, proficiency, schema)

        assert frame["state_sch_id"].tolist() == ["001010", "005010"]
        assert list(frame.columns) == schema.tables[ELEMENTARY_TABLE].names
        assert "dist_name" not in frame.columns
        assert frame.loc[0, "prof_rd"] == 52.0
        assert pd.isna(frame.loc[1, "prof_ma"])
        verify_columns(frame, schema.tables[ELEMENTARY_TABLE])
