from __future__ import annotations

from ..models.processing_result import SyncResult

"""SUMMARY line rendering.

Format:
SUMMARY rows={n} changed={n} created={n} unchanged={n} skipped={n}
errors={n} elapsed_sec={s} throughput_rps={r}
"""


def _format_number(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # avoid scientific notation for very small numbers
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.2f}".rstrip("0").rstrip(".")


def render_summary_line(result: SyncResult) -> str:
    """Render the SUMMARY line for one run.

    Examples:
        >>> from datetime import datetime, timezone
        >>> start = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
        >>> end = datetime(2024, 1, 1, 10, 0, 2, tzinfo=timezone.utc)
        >>> result = SyncResult(
        ...     total_rows=10, changed_rows=3, created_rows=1, unchanged_rows=6,
        ...     skipped_rows=0, error_rows=1, start_time=start, end_time=end,
        ...     elapsed_seconds=2.0, throughput_rows_per_sec=5.0,
        ... )
        >>> render_summary_line(result)
        'SUMMARY rows=10 changed=3 created=1 unchanged=6 skipped=0 errors=1 elapsed_sec=2 throughput_rps=5'
    """
    return (
        f"SUMMARY rows={result.total_rows} "
        f"changed={result.changed_rows} "
        f"created={result.created_rows} "
        f"unchanged={result.unchanged_rows} "
        f"skipped={result.skipped_rows} "
        f"errors={result.error_rows} "
        f"elapsed_sec={_format_number(result.elapsed_seconds)} "
        f"throughput_rps={_format_number(result.throughput_rows_per_sec)}"
    )
