from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

"""ProductData domain model for the spreadsheet -> WooCommerce sync.

A ProductData is the typed view of one spreadsheet row: parent-level fields,
descriptive attributes and categories, plus the variation-level fields,
metadata and the identifying "Item #" attribute.

Values are kept raw. Transforms (price formatting etc.) run lazily through
``payload_value()`` so that a missing required value is reported at the point
where a remote payload actually needs it.
"""

__all__ = [
    "NOT_AVAILABLE",
    "RowValidationError",
    "is_blank",
    "FieldSpec",
    "AttributeSpec",
    "MetaSpec",
    "IdentifyingAttribute",
    "MasterData",
    "VariationData",
    "ProductData",
]

# 任意項目が空のときに送る値
NOT_AVAILABLE = "N/A"


class RowValidationError(Exception):
    """Raised when a required value is missing at the time it is used."""


def is_blank(value: Any) -> bool:
    """Falsy check used for required values.

    None, NaN, empty / whitespace-only strings, ``0`` and ``False`` count as
    missing.
    """
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return not value


@dataclass(frozen=True)
class FieldSpec:
    """Scalar product/variation field (e.g. ``name``, ``regular_price``)."""
    name: str
    value: Any
    required: bool = False
    transform: Callable[[Any], Any] | None = field(default=None, compare=False)

    def payload_value(self) -> Any:
        if is_blank(self.value):
            if self.required:
                raise RowValidationError(f'Required field "{self.name}" is missing.')
            return NOT_AVAILABLE
        return self.transform(self.value) if self.transform else self.value


@dataclass(frozen=True)
class AttributeSpec:
    """Descriptive taxonomy attribute attached to the parent product."""
    name: str
    value: Any
    visible: bool = True
    position: int = 0
    fallback: Any = None
    required: bool = False

    @property
    def effective_value(self) -> Any:
        """Raw value, or the fallback when the cell is blank."""
        if is_blank(self.value) and not is_blank(self.fallback):
            return self.fallback
        return self.value

    def payload_value(self) -> str:
        value = self.effective_value
        if is_blank(value):
            if self.required:
                raise RowValidationError(f'Required attribute "{self.name}" is missing.')
            return NOT_AVAILABLE
        return _text(value)


@dataclass(frozen=True)
class MetaSpec:
    """Opaque key/value pair stored in a variation's meta_data."""
    key: str
    value: Any
    required: bool = False
    transform: Callable[[Any], Any] | None = field(default=None, compare=False)

    def payload_value(self) -> Any:
        if is_blank(self.value):
            if self.required:
                raise RowValidationError(f'Required variation metadata "{self.key}" is missing.')
            return NOT_AVAILABLE
        return self.transform(self.value) if self.transform else _text(self.value)


@dataclass(frozen=True)
class IdentifyingAttribute:
    """The hidden parent attribute whose options enumerate variation item numbers."""
    name: str
    value: Any
    required: bool = True
    position: int = 0

    def payload_value(self) -> str:
        if is_blank(self.value):
            raise RowValidationError(f'Required variation attribute "{self.name}" is missing.')
        return _text(self.value)


@dataclass(frozen=True)
class MasterData:
    fields: tuple[FieldSpec, ...]
    attributes: tuple[AttributeSpec, ...]
    categories: str | None = None


@dataclass(frozen=True)
class VariationData:
    fields: tuple[FieldSpec, ...]
    meta_data: tuple[MetaSpec, ...]
    attribute: IdentifyingAttribute


@dataclass(frozen=True)
class ProductData:
    """Structured record derived from one SourceRow."""
    sku: str
    item_number: str
    master: MasterData
    variation: VariationData

    def validate_required(self, strict_item_numbers: bool = False) -> None:
        """Check every required entry before any remote action.

        Raises:
            RowValidationError: naming the first missing entry.
        """
        if is_blank(self.sku):
            raise RowValidationError('Required key "SKU" is missing.')
        for f in self.master.fields:
            if f.required and is_blank(f.value):
                raise RowValidationError(f'Required parent field "{f.name}" is missing.')
        for a in self.master.attributes:
            if a.required and is_blank(a.effective_value):
                raise RowValidationError(f'Required attribute "{a.name}" is missing.')
        for f in self.variation.fields:
            if f.required and is_blank(f.value):
                raise RowValidationError(f'Required variation field "{f.name}" is missing.')
        for m in self.variation.meta_data:
            if m.required and is_blank(m.value):
                raise RowValidationError(f'Required variation metadata "{m.key}" is missing.')
        ident = self.variation.attribute
        if ident.required and is_blank(ident.value):
            raise RowValidationError(f'Required variation attribute "{ident.name}" is missing.')
        if strict_item_numbers:
            prefix = f"{self.sku}-"
            if not self.item_number.startswith(prefix) or len(self.item_number) == len(prefix):
                raise RowValidationError(
                    f'Item number "{self.item_number}" does not match the format '
                    f'"{self.sku}-<variant>"; it is probably not a variation.'
                )


def _text(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()
