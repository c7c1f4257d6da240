from __future__ import annotations

from datetime import UTC, datetime

from woo_sync.models.processing_result import SyncResult
from woo_sync.services.summary import render_summary_line


def _result(**overrides) -> SyncResult:
    now = datetime(2024, 1, 1, tzinfo=UTC)
    values = dict(
        total_rows=10, changed_rows=3, created_rows=1, unchanged_rows=5, skipped_rows=1,
        error_rows=1, start_time=now, end_time=now, elapsed_seconds=2.0, throughput_rows_per_sec=5.0,
    )
    values.update(overrides)
    return SyncResult(**values)


def test_summary_line_format() -> None:
    assert render_summary_line(_result()) == (
        "SUMMARY rows=10 changed=3 created=1 unchanged=5 skipped=1 errors=1 "
        "elapsed_sec=2 throughput_rps=5"
    )


def test_summary_fractional_numbers() -> None:
    line = render_summary_line(_result(elapsed_seconds=1.234, throughput_rows_per_sec=8.1037))
    assert "elapsed_sec=1.23" in line
    assert "throughput_rps=8.1" in line


def test_summary_tiny_numbers_avoid_scientific_notation() -> None:
    line = render_summary_line(_result(elapsed_seconds=0.000123))
    assert "elapsed_sec=0.000123" in line


def test_summary_zero_rows() -> None:
    result = _result(total_rows=0, changed_rows=0, created_rows=0, unchanged_rows=0,
                     skipped_rows=0, error_rows=0, elapsed_seconds=0.0, throughput_rows_per_sec=0.0)
    assert render_summary_line(result).endswith("errors=0 elapsed_sec=0 throughput_rps=0")
    assert not result.has_errors
