from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from woo_sync.models.config_models import DEFAULT_EXTENSIONS, ApiConfig, SyncConfig

"""Config loader.

Responsibilities:
- Load YAML config (default ``config/sync.yml``)
- Validate it against the bundled JSON schema
- Apply defaults (dry run, ./meta, id_cache.json, wc/v3, 30s timeout)
- Overlay API credentials from the environment (WC_API_URL / WC_KEY / WC_SECRET)
"""

__all__ = [
    "ConfigError",
    "SCHEMA_PATH",
    "load_config",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")

ENV_URL = "WC_API_URL"
ENV_KEY = "WC_KEY"
ENV_SECRET = "WC_SECRET"


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: If the schema file is missing/invalid or the data fails
            validation (unknown keys, wrong types, ...).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def load_config(path: Path, env: Mapping[str, str] | None = None) -> SyncConfig:
    if env is None:
        env = os.environ
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping: {path}")

    _validate_config_schema(data)

    meta_dir = Path(data.get("meta_dir", "./meta"))
    cache_file = Path(data.get("cache_file", "id_cache.json"))
    if not cache_file.is_absolute():
        cache_file = meta_dir / cache_file

    # 環境変数 (.env) が YAML より優先
    api_raw = data.get("api") or {}
    api = ApiConfig(
        url=env.get(ENV_URL) or api_raw.get("url"),
        consumer_key=env.get(ENV_KEY),
        consumer_secret=env.get(ENV_SECRET),
        version=api_raw.get("version", "wc/v3"),
        timeout=api_raw.get("timeout", 30),
        verify_ssl=api_raw.get("verify_ssl", True),
    )

    extensions = tuple(e.lower() for e in data.get("spreadsheet_extensions", DEFAULT_EXTENSIONS))
    return SyncConfig(
        live=data.get("live", False),
        meta_dir=meta_dir,
        cache_file=cache_file,
        api=api,
        row_limit=data.get("row_limit"),
        strict_item_numbers=data.get("strict_item_numbers", True),
        checkpoint_cache=data.get("checkpoint_cache", False),
        spreadsheet_extensions=extensions,
    )
