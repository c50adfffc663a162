"""
Tests for reading report-card spreadsheets.

These tests verify that readers:
- Snake-case headers the way the source declarations expect
- Pick the declared sheet and skip title rows
- Keep identifiers as text
- Report absent files as pipeline errors
"""

import pandas as pd
import pytest

from krc.errors import SourceFileError
from krc.ingest.readers import clean_name, clean_names, read_source


class TestCleanNames:
    """Tests for header normalization."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("STATE_SCH_ID", "state_sch_id"),
            ("StateSchId", "state_sch_id"),
            ("Total Final SEEK", "total_final_seek"),
            ("EQ Value", "eq_value"),
            ("  Pct. Qualification (%) ", "pct_qualification"),
            ("ATTENDANCERATE", "attendancerate"),
        ],
    )
    def test_snake_cases_headers(self, raw, expected):
        """Headers become lower snake case."""
        assert clean_name(raw) == expected

    def test_blank_header_gets_placeholder(self):
        """A header with no usable characters is still addressable."""
        assert clean_name("  ") == "x"

    def test_repeated_headers_are_suffixed(self):
        """Repeats keep their position and get a numeric suffix."""
        assert clean_names(["Total", "TOTAL", "total"]) == ["total", "total_2", "total_3"]


class TestReadSource:
    """Tests for locating and loading a declared workbook."""

    def test_missing_file_raises(self, make_spec, tmp_path):
        """An absent file aborts with a pipeline error naming the source."""
        spec = make_spec({"name": "homeless", "file": "HOMELESS.xlsx"})

        with pytest.raises(SourceFileError, match="homeless"):
            read_source(spec, tmp_path)

    def test_reads_declared_sheet_as_text(self, make_spec, tmp_path):
        """Sheet index 1 is read and leading zeros survive."""
        path = tmp_path / "MIGRANT.xlsx"
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            pd.DataFrame({"Notes": ["cover sheet"]}).to_excel(writer, sheet_name="Notes", index=False)
            pd.DataFrame({"STATE_SCH_ID": ["001010"], "TOTAL": [4]}).to_excel(
                writer, sheet_name="Data", index=False
            )
        spec = make_spec({"name": "migrant", "file": "MIGRANT.xlsx", "sheet": 1})

        frame = read_source(spec, tmp_path)

        assert list(frame.columns) == ["state_sch_id", "total"]
        assert frame.loc[0, "state_sch_id"] == "001010"
        assert frame.loc[0, "total"] == "4"

    def test_csv_skips_title_rows(self, make_spec, tmp_path):
        """CSV exports honor skip_rows like workbooks do."""
        path = tmp_path / "funds.csv"
        path.write_text("FY 2018-2019\nSEEK\nPer Pupil\nDistrict,Total Final SEEK\n001 Adair County,5012.5\n")
        spec = make_spec({"name": "funds", "file": "funds.csv", "skip_rows": 3, "key": "district"})

        frame = read_source(spec, tmp_path)

        assert list(frame.columns) == ["district", "total_final_seek"]
        assert frame.loc[0, "district"] == "001 Adair County"

    def test_missing_sheet_raises(self, make_spec, tmp_path):
        """A sheet index past the end is a source file error."""
        path = tmp_path / "HOMELESS.xlsx"
        pd.DataFrame({"STATE_SCH_ID": ["001010"]}).to_excel(path, index=False)
        spec = make_spec({"name": "homeless", "file": "HOMELESS.xlsx", "sheet": 3})

        with pytest.raises(SourceFileError):
            read_source(spec, tmp_path)
