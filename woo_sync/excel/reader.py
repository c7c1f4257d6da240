from __future__ import annotations

import datetime as dt
import math
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path
from typing import Any

import pandas as pd

from woo_sync.models.row_data import RowData

"""Spreadsheet input.

- ``scan_spreadsheets``: candidate workbooks in the run folder (non-recursive)
- ``select_spreadsheet``: interactive pick when more than one candidate exists
- ``read_source_rows``: first worksheet, 1st row = header, following rows =
  SourceRows with native Python values (blank -> None)
"""

__all__ = [
    "SpreadsheetError",
    "scan_spreadsheets",
    "select_spreadsheet",
    "read_source_rows",
]


class SpreadsheetError(Exception):
    """Raised when the folder or workbook cannot be used (fatal for the run)."""


def scan_spreadsheets(folder: Path, extensions: Iterable[str] = (".xlsx", ".xlsm")) -> list[Path]:
    if not folder.exists():
        raise SpreadsheetError(f"Directory not found: {folder}")
    if not folder.is_dir():
        raise SpreadsheetError(f"Path is not a directory: {folder}")
    wanted = {e.lower() for e in extensions}
    try:
        found = sorted(
            p for p in folder.iterdir()
            # Excel のロックファイル (~$xxx.xlsx) は除外
            if p.is_file() and p.suffix.lower() in wanted and not p.name.startswith("~$")
        )
    except OSError as e:
        raise SpreadsheetError(f"Error reading directory {folder}: {e}") from e
    if not found:
        raise SpreadsheetError(f"No {'/'.join(sorted(wanted))} files found in folder: {folder}")
    return found


def select_spreadsheet(
    candidates: Sequence[Path],
    prompt: Callable[[str], str] | None = None,
    echo: Callable[[str], None] | None = None,
) -> Path:
    """Pick the workbook to process; a single candidate is used as is.

    ``prompt`` / ``echo`` default to ``input`` / ``print``.
    """
    prompt = prompt or input
    echo = echo or print
    if not candidates:
        raise SpreadsheetError("no spreadsheet to select from")
    if len(candidates) == 1:
        return candidates[0]
    echo("Select the Excel file to process (the first sheet must be the master database):")
    for i, path in enumerate(candidates, start=1):
        echo(f"  {i}) {path.name}")
    while True:
        answer = prompt(f"File number [1-{len(candidates)}]: ").strip()
        if answer.isdigit() and 1 <= int(answer) <= len(candidates):
            return candidates[int(answer) - 1]
        echo(f"invalid choice: {answer!r}")


def _native(value: Any) -> Any:
    """Convert pandas/numpy scalars to JSON-friendly Python values."""
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        return value
    if isinstance(value, (pd.Timestamp, dt.datetime, dt.date)):
        return value.isoformat()
    if hasattr(value, "item") and not isinstance(value, (str, bytes)):
        value = value.item()
    if isinstance(value, float) and math.isinf(value):
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def read_source_rows(path: Path, limit: int | None = None) -> list[RowData]:
    """Read the first worksheet of ``path`` into RowData records.

    Fully blank rows are skipped; ``index`` still reflects the position among
    the sheet's data rows so that error log indexes match the sheet.
    """
    try:
        df = pd.read_excel(path, sheet_name=0, header=0, dtype=object)
    except Exception as e:
        raise SpreadsheetError(f"cannot read {path.name}: {e}") from e

    columns = [str(c).strip() for c in df.columns]
    rows: list[RowData] = []
    for index, raw in enumerate(df.itertuples(index=False, name=None)):
        values = {col: _native(val) for col, val in zip(columns, raw, strict=False)}
        if all(v is None for v in values.values()):
            continue
        rows.append(RowData(index=index, values=values))
        if limit is not None and len(rows) >= limit:
            break
    return rows
