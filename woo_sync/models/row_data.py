from __future__ import annotations

from dataclasses import dataclass
from typing import Any

"""RowData model (one SourceRow read from the master sheet)."""

__all__ = [
    "RowData",
]


@dataclass(frozen=True)
class RowData:
    """One spreadsheet record keyed by header name.

    ``index`` is the 0-based position among the data rows (header excluded),
    which is what the error log reports.
    """
    index: int
    values: dict[str, Any]  # Column name -> native value (None for blank cells)

    def get(self, column: str, default: Any = None) -> Any:
        return self.values.get(column, default)
