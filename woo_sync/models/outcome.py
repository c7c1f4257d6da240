from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

"""Per-row outcome models for the reconciliation engine.

RowOutcome follows the row through the engine; a row that produced a remote
change also yields an UpdateRecord for the update log.
"""

__all__ = [
    "RowOutcome",
    "UpdateRecord",
    "RowResult",
]


class RowOutcome(Enum):
    """Result of reconciling one spreadsheet row.

    - UNCHANGED: cache and spreadsheet agree, no remote call issued
    - UPDATED: a cached row was patched (only changed fields sent)
    - CREATED: a new parent and/or variation was created remotely
    - ADOPTED: an existing remote parent/variation was found and cached
    - SKIPPED: dry-run mode, the needed mutation was not issued
    - FAILED: the row was aborted with an error
    """
    UNCHANGED = "unchanged"
    UPDATED = "updated"
    CREATED = "created"
    ADOPTED = "adopted"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class UpdateRecord:
    """One line of the update log."""
    item_number: str
    sku: str
    variation_id: int | None
    fields: str  # 変更内容の要約

    def to_csv_row(self) -> list[str]:
        vid = "" if self.variation_id is None else str(self.variation_id)
        return [self.item_number, self.sku, vid, self.fields]


@dataclass(frozen=True)
class RowResult:
    outcome: RowOutcome
    update: UpdateRecord | None = None
    cache_changed: bool = False
