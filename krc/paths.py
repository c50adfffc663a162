"""Repository-relative locations used by the pipeline."""

from __future__ import annotations

from pathlib import Path


REPO_ROOT = Path(__file__).resolve().parents[1]
CONFIG_BASE = REPO_ROOT / "krc" / "config"
