"""Domain models for the spreadsheet -> WooCommerce sync.

This package contains the records passed between the row mapper, the
reconciliation engine, the run reporter and the CLI.
"""

from .config_models import ApiConfig, SyncConfig
from .error_record import ErrorRecord
from .outcome import RowOutcome, RowResult, UpdateRecord
from .processing_result import SyncResult
from .product_data import ProductData, RowValidationError
from .row_data import RowData

__all__ = [
    # Configuration models
    "ApiConfig",
    "SyncConfig",
    # Row models
    "RowData",
    "ProductData",
    "RowValidationError",
    # Outcome models
    "RowOutcome",
    "RowResult",
    "UpdateRecord",
    "ErrorRecord",
    "SyncResult",
]
