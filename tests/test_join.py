"""
Tests for joining normalized sources onto the roster.

These tests verify that the join:
- Keeps exactly the roster rows in roster order
- Records which schools each source matched
- Joins district sources on the district number
- Refuses column collisions and fan-out
"""

import pandas as pd
import pytest

from krc.build.join import join_sources, matched_column
from krc.errors import JoinError
from krc.ingest.models import NormalizedSource

ROSTER = {
    "name": "roster",
    "role": "roster",
    "columns": [
        {"name": "dist_number", "type": "text"},
        {"name": "sch_name", "type": "text"},
    ],
}
ROSTER_ROWS = [
    {"state_sch_id": "017010", "dist_number": "017", "sch_name": "Bourbon Central"},
    {"state_sch_id": "001010", "dist_number": "001", "sch_name": "Adair Elementary"},
    {"state_sch_id": "001020", "dist_number": "001", "sch_name": "Adair Middle"},
]
MIGRANT = {"name": "stn_migrant", "columns": [{"name": "stn_migrant_total", "source": "total", "type": "numeric"}]}
FUNDS = {
    "name": "seek_funds",
    "key": "dist_number",
    "columns": [
        {"name": "dist_number", "source": "district", "type": "token"},
        {"name": "dist_seek_funding", "source": "total_final_seek", "type": "numeric"},
    ],
}


@pytest.fixture
def roster(normalize):
    return normalize(ROSTER, ROSTER_ROWS)


class TestJoinSources:
    """Tests for the left join onto the roster."""

    def test_keeps_roster_rows_and_order(self, normalize, roster):
        """Unmatched schools stay, in roster order, with null values."""
        migrant = normalize(MIGRANT, [{"state_sch_id": "001010", "total": "3"}, {"state_sch_id": "999999", "total": "8"}])

        result = join_sources(roster, [migrant])

        frame = result.frame
        assert result.roster_rows == 3
        assert frame["state_sch_id"].tolist() == ["017010", "001010", "001020"]
        assert pd.isna(frame["stn_migrant_total"].iloc[0])
        assert frame["stn_migrant_total"].iloc[1] == 3.0
        assert frame[matched_column("stn_migrant")].tolist() == [False, True, False]
        assert result.matched == {"stn_migrant": 1}

    def test_district_sources_join_on_district_number(self, normalize, roster):
        """Every school in a district receives the district's funding."""
        funds = normalize(FUNDS, [{"district": "001 Adair County", "total_final_seek": "5012.5"}])

        frame = join_sources(roster, [funds]).frame

        assert frame["dist_seek_funding"].tolist()[1:] == [5012.5, 5012.5]
        assert pd.isna(frame["dist_seek_funding"].iloc[0])

    def test_column_collision_raises(self, normalize, roster):
        """Two sources cannot supply the same output column."""
        first = normalize(MIGRANT, [{"state_sch_id": "001010", "total": "3"}])
        second = normalize({**MIGRANT, "name": "stn_migrant_again"}, [{"state_sch_id": "001010", "total": "4"}])

        with pytest.raises(JoinError, match="stn_migrant_total"):
            join_sources(roster, [first, second])

    def test_repeated_keys_cannot_fan_out(self, make_spec, roster):
        """A source that still repeats a key would add rows and is refused."""
        spec = make_spec(MIGRANT)
        repeated = NormalizedSource(
            spec=spec,
            frame=pd.DataFrame({"state_sch_id": ["001010", "001010"], "stn_migrant_total": [1.0, 2.0]}),
            raw_rows=2,
        )

        with pytest.raises(JoinError, match="roster of 3"):
            join_sources(roster, [repeated])

    def test_key_missing_from_roster_raises(self, make_spec, normalize):
        """Sources must join on a column the roster carries."""
        roster = normalize(
            {"name": "roster", "role": "roster", "columns": [{"name": "sch_name", "type": "text"}]},
            [{"state_sch_id": "001010", "sch_name": "Adair Elementary"}],
        )
        funds = normalize(FUNDS, [{"district": "001 Adair County", "total_final_seek": "1"}])

        with pytest.raises(JoinError, match="dist_number"):
            join_sources(roster, [funds])
