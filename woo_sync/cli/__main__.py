from __future__ import annotations

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

from woo_sync.config.loader import ConfigError, load_config
from woo_sync.excel.pivot import pivot_variations, write_pivot_workbook
from woo_sync.excel.reader import (
    SpreadsheetError,
    read_source_rows,
    scan_spreadsheets,
    select_spreadsheet,
)
from woo_sync.logging.init import log_summary, set_debug, setup_logging
from woo_sync.logging.run_log import RunReporter
from woo_sync.models.row_data import RowData
from woo_sync.services.cache_store import CacheError, load_cache, save_cache
from woo_sync.services.category_resolver import CategoryResolver
from woo_sync.services.orchestrator import ProcessingError, load_attribute_definitions, run_sync
from woo_sync.services.reconciler import ReconciliationEngine
from woo_sync.services.row_mapper import VARIATION_COLUMNS
from woo_sync.services.summary import render_summary_line
from woo_sync.woo.client import RemoteCatalogClient

"""CLI entrypoint.

Flow:
- Load .env (overrides the process environment) and config/sync.yml
- Scan the given folder for spreadsheets and let the user pick one
- Read the first sheet, fetch the global attribute definitions, load the cache
- Reconcile every row, save the cache, print the SUMMARY line

Exit codes: 0 = every row ok, 2 = at least one row error, 1 = fatal.
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

DEFAULT_CONFIG = Path("config/sync.yml")
PIVOT_DIR = Path("mono-item-catalog")
_INSPECT_ROWS = 3


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv.

    override=True により .env の値で既存環境変数を上書き (API 資格情報を最優先)。
    """
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="woo_sync", description="Spreadsheet -> WooCommerce product/variation sync"
    )
    p.add_argument("folder", help="Folder containing the master spreadsheet")
    p.add_argument("--config", default=str(DEFAULT_CONFIG), help="Path to the YAML config")
    mode = p.add_mutually_exclusive_group()
    mode.add_argument("--live", dest="live", action="store_true", default=None,
                      help="Send changes to the store (overrides config)")
    mode.add_argument("--dry-run", dest="live", action="store_false", default=None,
                      help="Only report what would change (overrides config)")
    p.add_argument("--limit", type=int, default=None, help="Process at most N rows")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true",
                   help="Print the sheet header & first rows then exit")
    p.add_argument("--pivot", action="store_true",
                   help="Write the one-row-per-SKU catalog workbook then exit")
    return p.parse_args(argv)


def _inspect_data(path: Path, rows: list[RowData]) -> int:
    print(f"FILE: {path.name} rows={len(rows)}")
    if not rows:
        return EXIT_SUCCESS_ALL
    print(f"  columns={list(rows[0].values)}")
    for row in rows[:_INSPECT_ROWS]:
        print(f"  row[{row.index}]=", row.values)
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # NOTE: 空リスト [] が与えられた場合に sys.argv[1:] が混入しないよう None のときのみ読む
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        set_debug(True)
        logger.debug("debug mode enabled")

    try:
        cfg = load_config(Path(args.config))
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    live = cfg.live if args.live is None else args.live
    limit = args.limit if args.limit is not None else cfg.row_limit

    try:
        candidates = scan_spreadsheets(Path(args.folder), cfg.spreadsheet_extensions)
        source = select_spreadsheet(candidates)
        rows = read_source_rows(source, limit=limit)
    except SpreadsheetError as e:
        logger.error(f"spreadsheet: {e}")
        return EXIT_FATAL
    logger.info(f"Processing {len(rows)} row(s) from: {source}")

    if args.inspect_data:
        return _inspect_data(source, rows)

    if args.pivot:
        records = pivot_variations(rows, VARIATION_COLUMNS)
        out = write_pivot_workbook(records, PIVOT_DIR)
        logger.info(f"wrote {len(records)} product(s) to {out}")
        return EXIT_SUCCESS_ALL

    if not cfg.api.is_complete:
        logger.error("api: WC_API_URL, WC_KEY and WC_SECRET must be set (.env or environment)")
        return EXIT_FATAL

    try:
        cache = load_cache(cfg.cache_file)
        client = RemoteCatalogClient.from_config(cfg.api)
        definitions = load_attribute_definitions(client)
    except (CacheError, ProcessingError) as e:
        logger.error(f"setup: {e}")
        return EXIT_FATAL

    if not live:
        logger.info("dry run: no changes will be sent to the store (use --live to apply)")

    engine = ReconciliationEngine(
        client,
        definitions,
        cache,
        CategoryResolver(client),
        live=live,
        strict_item_numbers=cfg.strict_item_numbers,
    )
    reporter = RunReporter(cfg.meta_dir)
    result = run_sync(
        rows, engine, reporter, cache_path=cfg.cache_file, checkpoint=cfg.checkpoint_cache
    )

    try:
        save_cache(cfg.cache_file, engine.cache)
    except OSError as e:
        logger.error(f"cache: cannot write {cfg.cache_file}: {e}")
        return EXIT_FATAL

    # log_summary が "SUMMARY " を付けるので除去して渡す
    log_summary(render_summary_line(result)[len("SUMMARY "):])
    if result.update_log_path is not None:
        logger.info(f"update log: {result.update_log_path}")
    if result.error_log_path is not None:
        logger.info(f"error log: {result.error_log_path}")

    return EXIT_PARTIAL_FAILURE if result.error_rows else EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
