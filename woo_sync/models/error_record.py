from __future__ import annotations

from dataclasses import dataclass

"""ErrorRecord model for the per-run error log.

One ErrorRecord is produced for every spreadsheet row that failed (or was
skipped in dry-run mode). Records are buffered by the RunReporter and written
as CSV at the end of the run; they are never persisted beyond that log.

``index`` is the 0-based position of the row among the sheet's data rows.
Use -1 for run-level problems where no row applies.
"""

__all__ = [
    "ErrorRecord",
    "VALIDATION_ERROR",
    "REMOTE_LOOKUP_ERROR",
    "REMOTE_MUTATION_ERROR",
    "ATTRIBUTE_DEFINITION_ERROR",
    "DRY_RUN_SKIP",
    "UNEXPECTED_ERROR",
]

VALIDATION_ERROR = "VALIDATION_ERROR"
REMOTE_LOOKUP_ERROR = "REMOTE_LOOKUP_ERROR"
REMOTE_MUTATION_ERROR = "REMOTE_MUTATION_ERROR"
ATTRIBUTE_DEFINITION_ERROR = "ATTRIBUTE_DEFINITION_ERROR"
DRY_RUN_SKIP = "DRY_RUN_SKIP"
UNEXPECTED_ERROR = "UNEXPECTED_ERROR"


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for the CSV error log.

    Attributes:
        index: Row index (0-based). -1 when no row applies
        sku: Parent SKU of the row (may be empty)
        item_number: Item number of the row (may be empty)
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Human readable description
    """
    index: int
    sku: str
    item_number: str
    error_type: str
    message: str

    @staticmethod
    def create(index: int, sku: str, item_number: str, error_type: str, message: str) -> ErrorRecord:
        return ErrorRecord(
            index=index,
            sku=sku or "",
            item_number=item_number or "",
            error_type=error_type,
            message=message,
        )

    @property
    def is_skip(self) -> bool:
        return self.error_type == DRY_RUN_SKIP

    def to_csv_row(self) -> list[str]:
        """Row for the error log: Index, SKU, Item Number, Message."""
        return [str(self.index), self.sku, self.item_number, f"[{self.error_type}] {self.message}"]
