"""Read report-card spreadsheets into raw, all-text frames."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable

import pandas as pd

from krc.errors import SourceFileError
from krc.ingest.config import SourceSpec

logger = logging.getLogger(__name__)

_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALNUM = re.compile(r"[^0-9a-zA-Z]+")


def clean_name(name: object) -> str:
    text = _CAMEL_BOUNDARY.sub(r"\1_\2", str(name).strip())
    text = _NON_ALNUM.sub("_", text).strip("_").lower()
    return text or "x"


def clean_names(columns: Iterable[object]) -> list[str]:
    """Snake-case headers, suffixing repeats with ``_2``, ``_3``..."""
    cleaned: list[str] = []
    seen: dict[str, int] = {}
    for column in columns:
        name = clean_name(column)
        count = seen.get(name, 0) + 1
        seen[name] = count
        cleaned.append(name if count == 1 else f"{name}_{count}")
    return cleaned


def read_source(spec: SourceSpec, data_dir: Path) -> pd.DataFrame:
    path = data_dir / spec.file
    if not path.exists():
        raise SourceFileError(f"Source '{spec.name}' not found at {path}")
    try:
        if path.suffix.lower() == ".csv":
            frame = pd.read_csv(
                path, dtype=str, skiprows=spec.skip_rows, keep_default_na=False
            )
        else:
            frame = pd.read_excel(
                path,
                sheet_name=spec.sheet,
                skiprows=spec.skip_rows,
                dtype=str,
                keep_default_na=False,
            )
    except (ValueError, KeyError, IndexError, OSError) as exc:
        raise SourceFileError(f"Source '{spec.name}' could not be read from {path}: {exc}") from exc
    frame.columns = clean_names(frame.columns)
    logger.debug("Read %s rows from %s", len(frame), path.name)
    return frame
