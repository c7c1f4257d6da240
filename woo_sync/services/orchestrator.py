from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..logging.run_log import RunReporter
from ..models.error_record import (
    ATTRIBUTE_DEFINITION_ERROR,
    DRY_RUN_SKIP,
    REMOTE_LOOKUP_ERROR,
    REMOTE_MUTATION_ERROR,
    UNEXPECTED_ERROR,
    VALIDATION_ERROR,
    ErrorRecord,
)
from ..models.outcome import RowOutcome, RowResult
from ..models.processing_result import SyncResult
from ..models.product_data import RowValidationError
from ..models.row_data import RowData
from ..woo.client import RemoteError
from .attributes import AttributeDefinitionError, AttributeDefinitions
from .cache_store import save_cache
from .progress import ProgressTracker
from .reconciler import DryRunSkip, ReconciliationEngine, partial_result
from .row_mapper import map_row

"""Run orchestration: the sequential row loop.

Each row is mapped, reconciled and its outcome recorded. Every exception is
caught at the row boundary and turned into an ErrorRecord; the loop always
moves on to the next row. Mutations a failed row already applied still get
their update log line. Rows are processed strictly one at a time because a
later row may depend on cache state (a shared parent) written by an earlier
one.
"""

logger = logging.getLogger(__name__)


class ProcessingError(Exception):
    """Fatal, run-level error (raised before any row is processed)."""


def load_attribute_definitions(client: Any) -> AttributeDefinitions:
    """Fetch the global attribute definitions once for the whole run.

    Raises:
        ProcessingError: the store cannot be reached or returns garbage
    """
    try:
        data = client.list_attribute_definitions()
    except RemoteError as e:
        raise ProcessingError(f"cannot load global attribute definitions: {e}") from e
    if not isinstance(data, list):
        raise ProcessingError("cannot load global attribute definitions: unexpected response")
    logger.info("fetched %d global attribute definition(s)", len(data))
    return AttributeDefinitions.from_remote(data)


def _classify(exc: Exception) -> str:
    if isinstance(exc, DryRunSkip):
        return DRY_RUN_SKIP
    if isinstance(exc, RowValidationError):
        return VALIDATION_ERROR
    if isinstance(exc, AttributeDefinitionError):
        return ATTRIBUTE_DEFINITION_ERROR
    if isinstance(exc, RemoteError):
        return REMOTE_MUTATION_ERROR if exc.is_mutation else REMOTE_LOOKUP_ERROR
    return UNEXPECTED_ERROR


def run_sync(
    rows: Sequence[RowData],
    engine: ReconciliationEngine,
    reporter: RunReporter,
    *,
    cache_path: Path | None = None,
    checkpoint: bool = False,
) -> SyncResult:
    """Reconcile every row and return the aggregated result.

    Args:
        rows: Source rows in sheet order
        engine: Configured reconciliation engine (holds the in-memory cache)
        reporter: Receives update / error records; flushed at the end
        cache_path: Where to checkpoint the cache (only with ``checkpoint``)
        checkpoint: Save the cache after every row that changed it

    The final cache save is the caller's job.
    """
    start_time = datetime.now(UTC)
    counts = {outcome: 0 for outcome in RowOutcome}
    changed = 0
    unchanged = 0

    def _checkpoint(result: RowResult) -> None:
        if checkpoint and cache_path is not None and result.cache_changed:
            save_cache(cache_path, engine.cache)

    with ProgressTracker(len(rows)) as progress:
        for row in rows:
            product = None
            progress.start_row(str(row.get("Item #") or row.index))
            try:
                product = map_row(row.values)
                result = engine.reconcile(product)
            except Exception as e:
                sku = product.sku if product else str(row.get("SKU") or "")
                item_number = product.item_number if product else str(row.get("Item #") or "")
                partial = partial_result(e)
                if partial is not None:
                    if partial.update is not None:
                        changed += 1
                        reporter.record_update(partial.update)
                        logger.info(
                            "row=%d sku=%s item=%s applied before failure: %s",
                            row.index, sku, item_number, partial.update.fields,
                        )
                    _checkpoint(partial)
                record = ErrorRecord.create(row.index, sku, item_number, _classify(e), str(e))
                reporter.record_error(record)
                if record.is_skip:
                    counts[RowOutcome.SKIPPED] += 1
                    logger.info("row=%d sku=%s item=%s %s", row.index, sku, item_number, e)
                else:
                    counts[RowOutcome.FAILED] += 1
                    logger.warning(
                        "row=%d sku=%s item=%s %s: %s", row.index, sku, item_number, record.error_type, e
                    )
                    if record.error_type == UNEXPECTED_ERROR:
                        logger.debug("unexpected error detail", exc_info=True)
            else:
                counts[result.outcome] += 1
                if result.update is not None:
                    changed += 1
                    reporter.record_update(result.update)
                    logger.info(
                        "row=%d sku=%s item=%s %s: %s",
                        row.index,
                        product.sku,
                        product.item_number,
                        result.outcome.value,
                        result.update.fields,
                    )
                else:
                    unchanged += 1
                    logger.debug(
                        "row=%d sku=%s item=%s %s",
                        row.index,
                        product.sku,
                        product.item_number,
                        result.outcome.value,
                    )
                _checkpoint(result)
            finally:
                progress.set_postfix(
                    changed=changed,
                    errors=counts[RowOutcome.FAILED],
                )
                progress.finish_row()

    update_log, error_log = reporter.flush()

    end_time = datetime.now(UTC)
    elapsed_seconds = (end_time - start_time).total_seconds()
    throughput = len(rows) / elapsed_seconds if elapsed_seconds > 0 else 0.0
    failed = counts[RowOutcome.FAILED]
    skipped = counts[RowOutcome.SKIPPED]

    return SyncResult(
        total_rows=len(rows),
        changed_rows=changed,
        created_rows=counts[RowOutcome.CREATED],
        unchanged_rows=unchanged,
        skipped_rows=skipped,
        error_rows=failed,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=elapsed_seconds,
        throughput_rows_per_sec=throughput,
        update_log_path=update_log,
        error_log_path=error_log,
    )
