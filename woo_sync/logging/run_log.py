from __future__ import annotations

import csv
from datetime import UTC, datetime
from pathlib import Path

from woo_sync.models.error_record import ErrorRecord
from woo_sync.models.outcome import UpdateRecord

"""Run Reporter: buffers per-row outcomes and writes the CSV logs.

- ``price_update_log-YYYYMMDD-HHMMSS.csv`` (UTC): one line per row that
  produced a remote change
- ``errors-YYYYMMDD-HHMMSS.csv`` (UTC): one line per failed or dry-run
  skipped row

Files are only written when there is something to write. Serial use only.
"""

__all__ = [
    "RunReporter",
    "UPDATE_LOG_HEADER",
    "ERROR_LOG_HEADER",
]

TIMESTAMP_FMT = "%Y%m%d-%H%M%S"
UPDATE_LOG_HEADER = ["Item Number", "SKU", "Variation ID", "Updated Fields"]
ERROR_LOG_HEADER = ["Index", "SKU", "Item Number", "Message"]


class RunReporter:
    """In-memory buffer for update and error records. flush() writes CSV."""

    def __init__(self, log_dir: Path) -> None:
        self.log_dir = log_dir
        self._stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
        self._updates: list[UpdateRecord] = []
        self._errors: list[ErrorRecord] = []

    @property
    def update_log_path(self) -> Path:
        return self.log_dir / f"price_update_log-{self._stamp}.csv"

    @property
    def error_log_path(self) -> Path:
        return self.log_dir / f"errors-{self._stamp}.csv"

    @property
    def updates(self) -> list[UpdateRecord]:
        return list(self._updates)

    @property
    def errors(self) -> list[ErrorRecord]:
        return list(self._errors)

    def record_update(self, record: UpdateRecord) -> None:
        self._updates.append(record)

    def record_error(self, record: ErrorRecord) -> None:
        self._errors.append(record)

    def flush(self) -> tuple[Path | None, Path | None]:
        """Write both logs; returns the paths actually written (None if empty)."""
        update_path = error_path = None
        if self._updates:
            update_path = self._write(
                self.update_log_path, UPDATE_LOG_HEADER, [u.to_csv_row() for u in self._updates]
            )
        if self._errors:
            error_path = self._write(
                self.error_log_path, ERROR_LOG_HEADER, [e.to_csv_row() for e in self._errors]
            )
        return update_path, error_path

    def _write(self, path: Path, header: list[str], rows: list[list[str]]) -> Path:
        self.log_dir.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(header)
            writer.writerows(rows)
        return path
