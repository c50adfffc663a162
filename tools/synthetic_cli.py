"""Writes the synthetic report-card workbooks with the layouts the real downloads use."""

from __future__ import annotations

import shutil
from pathlib import Path

import pandas as pd

from tools.synthetic_builder import build_workbooks
from tools.synthetic_templates import WORKBOOK_LAYOUT

REPO_ROOT = Path(__file__).resolve().parents[1]
SYNTHETIC_BASE = REPO_ROOT / "data" / "synthetic"

NOTES = pd.DataFrame(
    {"Notes": ["Synthetic Kentucky School Report Card export.", "Data is on the next sheet."]}
)


def write_workbook(path: Path, frame: pd.DataFrame, layout: dict) -> None:
    """Place ``frame`` on the sheet index and below the title rows the layout names."""
    title = layout.get("title", ())
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for index in range(layout["sheet"]):
            NOTES.to_excel(writer, sheet_name=f"Notes{index + 1}", index=False)
        frame.to_excel(writer, sheet_name="Data", index=False, startrow=len(title))
        sheet = writer.sheets["Data"]
        for row, line in enumerate(title, start=1):
            sheet.cell(row=row, column=1, value=line)


def generate_dataset(output_dir: Path | None = None, seed: int = 42, force: bool = False) -> Path:
    target = output_dir or SYNTHETIC_BASE
    if target.exists() and any(target.iterdir()):
        if not force:
            raise SystemExit(f"{target} already holds files; pass --force to overwrite.")
        shutil.rmtree(target)
    target.mkdir(parents=True, exist_ok=True)

    workbooks = build_workbooks(seed)
    for name, frame in workbooks.items():
        write_workbook(target / name, frame, WORKBOOK_LAYOUT[name])
    print(f"Wrote {len(workbooks)} workbooks (seed={seed}) to {target}")
    return target
