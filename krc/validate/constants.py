"""Shared constants for quality checks."""

from __future__ import annotations

ISSUE_TYPE_MAP = {
    "NULL_PERCENTAGE": "missing",
    "PATTERN": "invalid",
    "RANGE": "out_of_range",
    "NON_NEGATIVE": "invalid",
    "ENUM": "invalid",
    "DUPLICATE_PERCENTAGE": "duplicate",
}

SAMPLE_LIMIT = 5
SAMPLE_COLUMNS = ("state_sch_id", "sch_name")
