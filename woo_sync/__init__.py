"""Spreadsheet -> WooCommerce product/variation sync."""

__version__ = "0.1.0"
