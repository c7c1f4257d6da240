from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

"""Local Reconciliation Cache persistence.

The cache is a JSON object keyed by SKU::

    {
      "X100": {
        "parentId": 10, "sku": "X100", "name": "...", "categories": "...",
        "attributes": {"CAS Number": "64-19-7", ...},
        "variations": {"X100-A": {"variationId": 11, "regular_price": 19.5, ...}}
      }
    }

It is loaded once per run and overwritten wholesale at the end. No locking:
one run at a time per cache file.
"""

__all__ = [
    "CacheError",
    "load_cache",
    "save_cache",
]

logger = logging.getLogger(__name__)


class CacheError(Exception):
    pass


def load_cache(path: Path) -> dict[str, Any]:
    """Return the persisted cache, or an empty mapping when no file exists."""
    if not path.exists():
        logger.info("no cache file at %s, starting cold", path)
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise CacheError(f"cannot read cache file {path}: {e}") from e
    if not isinstance(data, dict):
        raise CacheError(f"cache file {path} must contain a JSON object")
    logger.info("loaded %d cached SKU(s) from %s", len(data), path)
    return data


def save_cache(path: Path, cache: dict[str, Any]) -> Path:
    """Overwrite the cache file (pretty printed)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(cache, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.debug("cache saved to %s (%d SKU(s))", path, len(cache))
    return path
