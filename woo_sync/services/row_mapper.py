from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from woo_sync.models.product_data import (
    AttributeSpec,
    FieldSpec,
    IdentifyingAttribute,
    MasterData,
    MetaSpec,
    ProductData,
    VariationData,
)

"""Row Mapper: SourceRow -> ProductData.

This module is the only place that knows the master sheet's column names.
Mapping is pure and never fails; missing values are dealt with when a payload
is built (see ``ProductData.validate_required`` / ``payload_value``).
"""

__all__ = [
    "ITEM_NUMBER_ATTRIBUTE",
    "VARIATION_COLUMNS",
    "map_row",
    "format_price",
    "format_number",
]

ITEM_NUMBER_ATTRIBUTE = "Item #"

# column -> (attribute name, visible, position); Full Name / Synonyms fall back to Name
_ATTRIBUTE_COLUMNS: tuple[tuple[str, str, bool, int], ...] = (
    ("Full Name", "Full Name", True, 1),
    ("Synonyms", "Synonyms", True, 2),
    ("CAS Number", "CAS Number", True, 3),
    ("Molecular Formula", "Molecular Formula", True, 4),
    ("Molecular Weight", "Molecular Weight", True, 5),
    ("Appearance", "Appearance", True, 6),
    ("Storage", "Storage", True, 7),
    ("SMILES", "SMILES", True, 8),
    ("Functional Group", "Functional Group", False, 9),
    ("PEG Length", "PEG-Length", False, 10),
    ("Functional Group Prefix", "Functional Group Prefix", False, 11),
)
_FALLBACK_TO_NAME = {"Full Name", "Synonyms"}

# Columns that belong to a variation rather than the parent family
VARIATION_COLUMNS = ("Item #", "Weight (g)", "Purity", "List Price")


def format_price(value: Any) -> str:
    return f"{float(value):.2f}"


def format_number(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _key(value: Any) -> str:
    if value is None:
        return ""
    return format_number(value)


def map_row(row: Mapping[str, Any]) -> ProductData:
    sku = _key(row.get("SKU"))
    item_number = _key(row.get("Item #"))
    name = row.get("Name")

    attributes = tuple(
        AttributeSpec(
            name=attr_name,
            value=row.get(column),
            visible=visible,
            position=position,
            fallback=name if attr_name in _FALLBACK_TO_NAME else None,
        )
        for column, attr_name, visible, position in _ATTRIBUTE_COLUMNS
    )
    master = MasterData(
        fields=(FieldSpec("name", name, required=True, transform=lambda v: str(v).strip()),),
        attributes=attributes,
        categories=row.get("Categories"),
    )
    variation = VariationData(
        fields=(
            FieldSpec("regular_price", row.get("List Price"), required=True, transform=format_price),
            # optional: omitted from payloads when blank
            FieldSpec("weight", row.get("Weight (g)"), required=False, transform=format_number),
        ),
        meta_data=(
            MetaSpec("_purity", row.get("Purity"), required=True, transform=format_number),
        ),
        attribute=IdentifyingAttribute(ITEM_NUMBER_ATTRIBUTE, item_number or None, required=True, position=0),
    )
    return ProductData(sku=sku, item_number=item_number, master=master, variation=variation)
