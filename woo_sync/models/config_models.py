from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

"""Config dataclasses for the spreadsheet -> WooCommerce sync.

These are the typed result of ``woo_sync.config.loader.load_config``. API
credentials normally come from the environment (.env) and take precedence over
the YAML values.
"""

DEFAULT_EXTENSIONS = (".xlsx", ".xlsm")


@dataclass(frozen=True)
class ApiConfig:
    """WooCommerce REST API connection settings."""
    url: str | None
    consumer_key: str | None
    consumer_secret: str | None
    version: str = "wc/v3"
    timeout: int = 30
    verify_ssl: bool = True

    @property
    def is_complete(self) -> bool:
        return bool(self.url and self.consumer_key and self.consumer_secret)


@dataclass(frozen=True)
class SyncConfig:
    """Root configuration object for one sync run."""
    live: bool  # False = dry run (no post/put)
    meta_dir: Path  # cache + logs
    cache_file: Path
    api: ApiConfig
    row_limit: int | None = None
    strict_item_numbers: bool = True
    checkpoint_cache: bool = False
    spreadsheet_extensions: tuple[str, ...] = field(default=DEFAULT_EXTENSIONS)
