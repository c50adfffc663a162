"""
Shared fixtures for the report-card pipeline tests.

Usage:
    pytest tests/ -v
"""

from dataclasses import replace

import pandas as pd
import pytest

from krc.build.schema import load_schema
from krc.ingest.config import parse_source
from krc.ingest.normalize import normalize_source
from krc.settings import load_settings


# --- Declarations ---

@pytest.fixture
def make_spec():
    """
    Build a SourceSpec from a sources.yml-style mapping.

    Usage:
        spec = make_spec({"name": "x", "file": "x.xlsx", "columns": [...]})
    """

    def _make(entry):
        payload = {"file": f"{entry['name']}.xlsx", **entry}
        return parse_source(payload)

    return _make


@pytest.fixture
def normalize(make_spec):
    """Normalize a raw frame (all text, cleaned headers) under a declaration."""

    def _normalize(entry, rows, strict=False):
        raw = pd.DataFrame(rows, dtype=object)
        return normalize_source(make_spec(entry), raw, strict=strict)

    return _normalize


@pytest.fixture(scope="session")
def schema():
    return load_schema()


@pytest.fixture
def settings(tmp_path):
    """Default settings pointed at a scratch data directory."""
    base = load_settings()
    return replace(
        base,
        data_dir=tmp_path / "data",
        quality_dir=tmp_path / "data" / "marts" / "quality",
    )
