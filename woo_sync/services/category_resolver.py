from __future__ import annotations

import logging
from typing import Any

from woo_sync.woo.client import RemoteError

"""Category Resolver.

Turns a raw category string such as ``"Reagents > Acids, Solvents"`` into
WooCommerce category ids. Only the leaf (last ``>`` segment) of each path is
looked up. Names that cannot be resolved are dropped with a warning; they are
never reported as row errors.
"""

__all__ = [
    "CategoryResolver",
    "leaf_category_names",
]

logger = logging.getLogger(__name__)


def leaf_category_names(raw: str | None) -> list[str]:
    """Unique leaf names (case-sensitive), first-seen order."""
    if not raw:
        return []
    names: list[str] = []
    for path in str(raw).split(","):
        leaf = path.split(">")[-1].strip()
        if leaf and leaf not in names:
            names.append(leaf)
    return names


class CategoryResolver:
    def __init__(self, client: Any) -> None:
        self._client = client
        self._resolved: dict[str, int] = {}  # run-scoped memo (successes only)

    def resolve(self, raw: str | None) -> list[dict[str, int]]:
        ids: list[dict[str, int]] = []
        for name in leaf_category_names(raw):
            category_id = self._lookup(name)
            if category_id is not None:
                ids.append({"id": category_id})
        return ids

    def _lookup(self, name: str) -> int | None:
        if name in self._resolved:
            return self._resolved[name]
        try:
            found = self._client.search_categories(name)
        except RemoteError as e:
            logger.warning("category lookup failed name=%s: %s", name, e)
            return None
        match = next(
            (c for c in found or [] if str(c.get("name", "")).lower() == name.lower()),
            None,
        )
        if match is None:
            logger.warning("category not found name=%s (dropped)", name)
            return None
        self._resolved[name] = match["id"]
        return match["id"]
