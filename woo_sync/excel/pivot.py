from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pandas as pd

from woo_sync.models.row_data import RowData

"""Catalog pivot: one row per SKU with its variations spread over columns.

The master sheet has one row per variation. For catalog production the rows
are grouped by SKU; columns that are not variation-specific are taken from the
first row of each SKU and every variation adds ``Variation {i} <column>``
columns (i starting at 1).
"""

__all__ = [
    "PIVOT_SHEET_NAME",
    "pivot_variations",
    "write_pivot_workbook",
]

PIVOT_SHEET_NAME = "Restructured Data"


def pivot_variations(rows: Sequence[RowData], variation_columns: Sequence[str]) -> list[dict[str, Any]]:
    """Group variation rows per SKU (rows without SKU are skipped).

    Examples:
        >>> rows = [
        ...     RowData(0, {"SKU": "X1", "Name": "A", "Item #": "X1-1", "List Price": 5}),
        ...     RowData(1, {"SKU": "X1", "Name": "A", "Item #": "X1-2", "List Price": 9}),
        ... ]
        >>> pivot_variations(rows, ["Item #", "List Price"])
        [{'SKU': 'X1', 'Name': 'A', 'Variation 1 Item #': 'X1-1', 'Variation 1 List Price': 5, 'Variation 2 Item #': 'X1-2', 'Variation 2 List Price': 9}]
    """
    variation_set = set(variation_columns)
    parents: dict[str, dict[str, Any]] = {}
    variations: dict[str, list[dict[str, Any]]] = {}

    for row in rows:
        sku = row.get("SKU")
        if sku is None or str(sku).strip() == "":
            continue
        key = str(sku).strip()
        if key not in parents:
            parents[key] = {k: v for k, v in row.values.items() if k not in variation_set}
            variations[key] = []
        variations[key].append({col: row.get(col) for col in variation_columns})

    out: list[dict[str, Any]] = []
    for key, parent in parents.items():
        record = dict(parent)
        for i, variation in enumerate(variations[key], start=1):
            for col in variation_columns:
                record[f"Variation {i} {col}"] = variation[col]
        out.append(record)
    return out


def write_pivot_workbook(records: Sequence[dict[str, Any]], out_dir: Path) -> Path:
    """Write the pivoted records to ``mono-item-master-<timestamp>.xlsx``."""
    out_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    path = out_dir / f"mono-item-master-{stamp}.xlsx"
    # 列順は最初に現れた順 (DataFrame(list[dict]) は和集合を出現順で並べる)
    df = pd.DataFrame(list(records))
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=PIVOT_SHEET_NAME, index=False)
    return path
