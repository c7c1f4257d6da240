from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

"""Run result models for the spreadsheet -> WooCommerce sync.

SyncResult aggregates the per-row outcomes of one run and carries everything
the SUMMARY line needs.
"""


@dataclass(frozen=True)
class SyncResult:
    """Aggregated results and summary output for one sync run."""
    total_rows: int  # 処理対象行数
    changed_rows: int  # rows with an update log line (failed rows included)
    created_rows: int  # rows that created a parent or variation
    unchanged_rows: int  # succeeded without any remote change
    skipped_rows: int  # dry-run skips
    error_rows: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    throughput_rows_per_sec: float
    update_log_path: Path | None = None
    error_log_path: Path | None = None

    @property
    def has_errors(self) -> bool:
        return self.error_rows > 0
