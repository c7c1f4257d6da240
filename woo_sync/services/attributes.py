from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from woo_sync.models.product_data import NOT_AVAILABLE, AttributeSpec, IdentifyingAttribute, is_blank

"""Attribute helpers: global definitions snapshot, option splitting, payload
formatting and the merge used when updating a parent's attribute list.

WooCommerce does not support partial attribute updates; the merged list always
replaces the remote list wholesale.
"""

__all__ = [
    "AttributeDefinitionError",
    "AttributeDefinitions",
    "split_escaped",
    "attribute_options",
    "format_attribute",
    "identifying_attribute_entry",
    "merge_attributes",
]

_UNESCAPED_COMMA = re.compile(r"(?<!\\),")


class AttributeDefinitionError(Exception):
    """Raised when an attribute name has no global definition in the store."""


@dataclass(frozen=True)
class AttributeDefinitions:
    """Snapshot of ``products/attributes`` fetched once at run start."""
    items: tuple[dict[str, Any], ...]

    @classmethod
    def from_remote(cls, data: Iterable[dict[str, Any]]) -> AttributeDefinitions:
        return cls(items=tuple(data))

    def find(self, name: str) -> dict[str, Any] | None:
        return next((a for a in self.items if a.get("name") == name), None)

    def require(self, name: str) -> dict[str, Any]:
        ref = self.find(name)
        if ref is None:
            raise AttributeDefinitionError(f'Attribute reference not found for "{name}"')
        return ref

    def __len__(self) -> int:
        return len(self.items)


def split_escaped(text: str) -> list[str]:
    """Split on unescaped commas; ``\\,`` stays a literal comma.

    >>> split_escaped("Acids\\\\, Bases,Solvents")
    ['Acids, Bases', 'Solvents']
    """
    return [part.replace("\\,", ",") for part in _UNESCAPED_COMMA.split(text)]


def attribute_options(spec: AttributeSpec) -> list[str]:
    value = spec.payload_value()
    if value == NOT_AVAILABLE or is_blank(value):
        return [NOT_AVAILABLE]
    return split_escaped(value)


def format_attribute(spec: AttributeSpec, definitions: AttributeDefinitions) -> dict[str, Any]:
    ref = definitions.require(spec.name)
    return {
        "id": ref["id"],
        "name": spec.name,
        "visible": spec.visible,
        "variation": False,
        "position": spec.position,
        "options": attribute_options(spec),
    }


def identifying_attribute_entry(
    ident: IdentifyingAttribute, definitions: AttributeDefinitions, options: list[str]
) -> dict[str, Any]:
    """Hidden, variation-enabling attribute entry (the "Item #" slot)."""
    ref = definitions.require(ident.name)
    return {
        "id": ref["id"],
        "name": ident.name,
        "options": options,
        "position": ident.position,
        "visible": False,
        "variation": True,
    }


def merge_attributes(
    remote: list[dict[str, Any]],
    desired: Iterable[AttributeSpec],
    definitions: AttributeDefinitions,
) -> tuple[list[dict[str, Any]], list[str]]:
    """Merge spreadsheet attributes into the remote attribute list.

    Returns the merged list and the names whose options actually changed or
    that were appended.
    """
    merged = [dict(a) for a in remote]
    changed: list[str] = []
    for spec in desired:
        options = attribute_options(spec)
        current = next((a for a in merged if a.get("name") == spec.name), None)
        if current is None:
            merged.append(format_attribute(spec, definitions))
            changed.append(spec.name)
            continue
        if list(current.get("options") or []) != options:
            current["options"] = options
            changed.append(spec.name)
    return merged, changed
