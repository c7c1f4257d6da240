from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from woo_sync.models.outcome import RowOutcome, RowResult, UpdateRecord
from woo_sync.models.product_data import FieldSpec, ProductData, is_blank
from woo_sync.services.attributes import (
    AttributeDefinitions,
    format_attribute,
    identifying_attribute_entry,
    merge_attributes,
)
from woo_sync.services.category_resolver import CategoryResolver

"""Reconciliation Engine.

For each ProductData the engine works out, from the local cache first, which
of three states the row is in and issues the minimal set of remote calls:

- fully cached (SKU and item number in cache): diff against the cached values
  and patch only what changed; no call at all when nothing changed
- parent cached, variation missing: look the variation up on the parent by its
  "Item #" option, adopt it or create it
- parent missing: look the parent up by SKU, adopt it or create it (with the
  hidden, variation-enabling "Item #" attribute), then the variation step

Remote calls always happen before the cache is touched; a failed call leaves
the cache as it was. In dry-run mode (``live=False``) lookups still run but
every post/put is replaced by a planned change and the row ends in DryRunSkip.
"""

__all__ = [
    "DryRunSkip",
    "ReconciliationEngine",
    "partial_result",
    "values_equal",
]

logger = logging.getLogger(__name__)


class DryRunSkip(Exception):
    """Raised in dry-run mode when the row needs a mutating remote call."""


def partial_result(exc: BaseException) -> RowResult | None:
    """RowResult for the mutations a failed row already applied, if any."""
    return getattr(exc, "partial_result", None)


def _normalize(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _canonical_text(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def values_equal(cached: Any, current: Any) -> bool:
    """Value equality used by every diff.

    Blank (None, NaN, whitespace) equals blank; two numbers compare
    numerically; anything else compares as trimmed canonical text.
    """
    a, b = _normalize(cached), _normalize(current)
    if a is None or b is None:
        return a is None and b is None
    if _is_number(a) and _is_number(b):
        return float(a) == float(b)
    return _canonical_text(a) == _canonical_text(b)


def _show(value: Any) -> str:
    value = _normalize(value)
    return "<blank>" if value is None else _canonical_text(value)


def _update_value(spec: FieldSpec) -> Any:
    # 任意項目の空欄は "" で送りリモート側をクリアする
    if not spec.required and is_blank(spec.value):
        return ""
    return spec.payload_value()


@dataclass
class _RowContext:
    product: ProductData
    changes: list[str] = field(default_factory=list)
    planned: list[str] = field(default_factory=list)
    created: bool = False
    adopted: bool = False
    parent_created: bool = False
    cache_changed: bool = False
    variation_id: int | None = None

    def result(self) -> RowResult:
        if self.planned:
            raise DryRunSkip("dry run, would " + "; ".join(self.planned))
        if self.created:
            outcome = RowOutcome.CREATED
        elif self.adopted:
            outcome = RowOutcome.ADOPTED
        elif self.changes:
            outcome = RowOutcome.UPDATED
        else:
            outcome = RowOutcome.UNCHANGED
        return RowResult(outcome=outcome, update=self._update_record(), cache_changed=self.cache_changed)

    def partial_result(self) -> RowResult | None:
        """What a failed row already applied remotely (None when nothing was)."""
        if not self.changes and not self.cache_changed:
            return None
        return RowResult(
            outcome=RowOutcome.FAILED, update=self._update_record(), cache_changed=self.cache_changed
        )

    def _update_record(self) -> UpdateRecord | None:
        if not self.changes:
            return None
        return UpdateRecord(
            item_number=self.product.item_number,
            sku=self.product.sku,
            variation_id=self.variation_id,
            fields="; ".join(self.changes),
        )


class ReconciliationEngine:
    """Brings the remote store in line with one spreadsheet row at a time."""

    def __init__(
        self,
        client: Any,
        attributes: AttributeDefinitions,
        cache: dict[str, Any],
        categories: CategoryResolver,
        *,
        live: bool = False,
        strict_item_numbers: bool = True,
    ) -> None:
        self.client = client
        self.attributes = attributes
        self.cache = cache
        self.categories = categories
        self.live = live
        self.strict_item_numbers = strict_item_numbers

    def reconcile(self, product: ProductData) -> RowResult:
        """Reconcile one row.

        Raises:
            RowValidationError: a required value is missing (no remote call made)
            AttributeDefinitionError: an attribute has no global definition
            RemoteError: a lookup or mutation failed
            DryRunSkip: dry-run mode and the row needs a post/put

        A row that fails after some of its mutations went through carries
        them on the raised exception; see ``partial_result()``.
        """
        product.validate_required(self.strict_item_numbers)
        ctx = _RowContext(product)

        try:
            entry = self.cache.get(product.sku)
            remote_parent = None
            if entry is None:
                entry, remote_parent = self._resolve_parent(product, ctx)

            cached_variation = entry["variations"].get(product.item_number) if entry else None
            if cached_variation is not None:
                ctx.variation_id = cached_variation.get("variationId")
                self._patch(product, entry, cached_variation, ctx)
            else:
                self._resolve_variation(product, entry, remote_parent, ctx)
        except Exception as e:
            # 途中まで成功した変更は呼び出し側で更新ログに残す
            e.partial_result = ctx.partial_result()
            raise
        return ctx.result()

    # ---- helpers ----

    def _mutate(self, ctx: _RowContext, description: str, call: Callable[[], Any]) -> Any:
        """Issue a post/put, or record it as planned in dry-run mode (returns None)."""
        if not self.live:
            ctx.planned.append(description)
            logger.debug("dry-run skip: %s", description)
            return None
        return call()

    # ---- fully cached: diff and patch ----

    def _patch(
        self, product: ProductData, entry: dict[str, Any], cached: dict[str, Any], ctx: _RowContext
    ) -> None:
        parent_payload, parent_changes, parent_updates = self._diff_parent(product, entry)
        variation_payload, variation_changes, variation_updates = self._diff_variation(product, cached)
        if not parent_payload and not variation_payload:
            logger.debug("sku=%s item=%s unchanged", product.sku, product.item_number)
            return

        if parent_payload:
            done = self._mutate(
                ctx,
                f"update parent {product.sku} ({'; '.join(parent_changes)})",
                lambda: self.client.update_product(entry["parentId"], parent_payload),
            )
            if done is not None:
                attr_updates = parent_updates.pop("attributes", {})
                entry.update(parent_updates)
                entry.setdefault("attributes", {}).update(attr_updates)
                ctx.changes.extend(parent_changes)
                ctx.cache_changed = True

        if variation_payload:
            done = self._mutate(
                ctx,
                f"update variation {product.item_number} ({'; '.join(variation_changes)})",
                lambda: self.client.update_variation(
                    entry["parentId"], cached["variationId"], variation_payload
                ),
            )
            if done is not None:
                cached.update(variation_updates)
                ctx.changes.extend(variation_changes)
                ctx.cache_changed = True

    def _diff_parent(
        self, product: ProductData, entry: dict[str, Any]
    ) -> tuple[dict[str, Any], list[str], dict[str, Any]]:
        payload: dict[str, Any] = {}
        changes: list[str] = []
        updates: dict[str, Any] = {}

        for f in product.master.fields:
            if not values_equal(entry.get(f.name), f.value):
                payload[f.name] = _update_value(f)
                changes.append(f"{f.name}: {_show(entry.get(f.name))} -> {_show(f.value)}")
                updates[f.name] = f.value

        cached_attrs = entry.get("attributes") or {}
        changed_attrs = [
            a for a in product.master.attributes
            if a.name not in cached_attrs or not values_equal(cached_attrs[a.name], a.effective_value)
        ]
        if changed_attrs:
            remote = self.client.get_product(entry["parentId"])
            merged, _ = merge_attributes(remote.get("attributes") or [], changed_attrs, self.attributes)
            payload["attributes"] = merged
            changes.append("attributes: " + ", ".join(a.name for a in changed_attrs))
            updates["attributes"] = {a.name: a.effective_value for a in changed_attrs}

        raw_categories = product.master.categories
        if not values_equal(entry.get("categories"), raw_categories):
            payload["categories"] = self.categories.resolve(raw_categories)
            changes.append(f"categories: {_show(entry.get('categories'))} -> {_show(raw_categories)}")
            updates["categories"] = raw_categories

        return payload, changes, updates

    def _diff_variation(
        self, product: ProductData, cached: dict[str, Any]
    ) -> tuple[dict[str, Any], list[str], dict[str, Any]]:
        payload: dict[str, Any] = {}
        changes: list[str] = []
        updates: dict[str, Any] = {}

        for f in product.variation.fields:
            if not values_equal(cached.get(f.name), f.value):
                payload[f.name] = _update_value(f)
                changes.append(f"{f.name}: {_show(cached.get(f.name))} -> {_show(f.value)}")
                updates[f.name] = f.value

        meta_payload = []
        for m in product.variation.meta_data:
            if not values_equal(cached.get(m.key), m.value):
                meta_payload.append({"key": m.key, "value": m.payload_value()})
                changes.append(f"{m.key}: {_show(cached.get(m.key))} -> {_show(m.value)}")
                updates[m.key] = m.value
        if meta_payload:
            payload["meta_data"] = meta_payload

        return payload, changes, updates

    # ---- parent missing from cache ----

    def _resolve_parent(
        self, product: ProductData, ctx: _RowContext
    ) -> tuple[dict[str, Any] | None, dict[str, Any] | None]:
        remote = self.client.find_product_by_sku(product.sku)
        if remote is not None:
            logger.debug("sku=%s found remote parent id=%s", product.sku, remote.get("id"))
            payload, changes = self._parent_sync_payload(product, remote)
            if payload:
                updated = self._mutate(
                    ctx,
                    f"sync parent {product.sku} ({'; '.join(changes)})",
                    lambda: self.client.update_product(remote["id"], payload),
                )
                if updated is None:
                    # dry run: work on a detached entry, nothing is cached
                    return self._parent_entry(product, remote["id"]), remote
                remote = updated
                ctx.changes.extend(changes)
            entry = self._parent_entry(product, remote["id"])
            self.cache[product.sku] = entry
            ctx.adopted = True
            ctx.cache_changed = True
            return entry, remote

        payload = self._parent_create_payload(product)
        created = self._mutate(
            ctx,
            f"create parent {product.sku}",
            lambda: self.client.create_product(payload),
        )
        if created is None:
            return None, None
        logger.info("sku=%s created parent id=%s", product.sku, created.get("id"))
        entry = self._parent_entry(product, created["id"])
        self.cache[product.sku] = entry
        ctx.created = True
        ctx.parent_created = True
        ctx.cache_changed = True
        ctx.changes.append(f"created parent {product.sku}")
        return entry, created

    def _parent_entry(self, product: ProductData, parent_id: int) -> dict[str, Any]:
        entry: dict[str, Any] = {"parentId": parent_id, "sku": product.sku}
        for f in product.master.fields:
            entry[f.name] = f.value
        entry["categories"] = product.master.categories
        entry["attributes"] = {a.name: a.effective_value for a in product.master.attributes}
        entry["variations"] = {}
        return entry

    def _parent_create_payload(self, product: ProductData) -> dict[str, Any]:
        ident = product.variation.attribute
        attributes = [format_attribute(a, self.attributes) for a in product.master.attributes]
        # 最初のバリエーションの item number を事前に登録
        attributes.append(
            identifying_attribute_entry(ident, self.attributes, [ident.payload_value()])
        )
        payload: dict[str, Any] = {f.name: f.payload_value() for f in product.master.fields}
        payload.update(
            {
                "sku": product.sku,
                "type": "variable",
                "attributes": attributes,
                "categories": self.categories.resolve(product.master.categories),
            }
        )
        return payload

    def _parent_sync_payload(
        self, product: ProductData, remote: dict[str, Any]
    ) -> tuple[dict[str, Any], list[str]]:
        payload: dict[str, Any] = {}
        changes: list[str] = []
        for f in product.master.fields:
            desired = _update_value(f)
            if not values_equal(remote.get(f.name), desired):
                payload[f.name] = desired
                changes.append(f"{f.name}: {_show(remote.get(f.name))} -> {_show(desired)}")

        merged, changed = merge_attributes(
            remote.get("attributes") or [], product.master.attributes, self.attributes
        )
        if changed:
            payload["attributes"] = merged
            changes.append("attributes: " + ", ".join(changed))

        categories = self.categories.resolve(product.master.categories)
        remote_ids = {c.get("id") for c in remote.get("categories") or []}
        if categories and {c["id"] for c in categories} != remote_ids:
            payload["categories"] = categories
            changes.append("categories")
        return payload, changes

    # ---- variation missing from cache ----

    def _resolve_variation(
        self,
        product: ProductData,
        entry: dict[str, Any] | None,
        remote_parent: dict[str, Any] | None,
        ctx: _RowContext,
    ) -> None:
        if entry is None:
            # dry run and the parent itself would be created
            ctx.planned.append(f"create variation {product.item_number}")
            return
        parent_id = entry["parentId"]

        remote_variation = None
        if not ctx.parent_created:
            remote_variation = self._find_remote_variation(parent_id, product)

        if remote_variation is not None:
            self._adopt_variation(product, entry, remote_variation, ctx)
            return

        if remote_parent is None:
            remote_parent = self.client.get_product(parent_id)
        attribute_id = self._ensure_identifying_option(product, remote_parent, ctx)
        payload = self._variation_create_payload(product, attribute_id)
        created = self._mutate(
            ctx,
            f"create variation {product.item_number}",
            lambda: self.client.create_variation(parent_id, payload),
        )
        if created is None:
            return
        logger.info(
            "sku=%s item=%s created variation id=%s", product.sku, product.item_number, created.get("id")
        )
        entry["variations"][product.item_number] = self._variation_entry(product, created["id"])
        ctx.variation_id = created["id"]
        ctx.created = True
        ctx.cache_changed = True
        ctx.changes.append(f"created variation {product.item_number}")

    def _find_remote_variation(self, parent_id: int, product: ProductData) -> dict[str, Any] | None:
        ident = product.variation.attribute
        wanted = ident.payload_value()
        for variation in self.client.list_variations(parent_id):
            for attr in variation.get("attributes") or []:
                if (
                    str(attr.get("name", "")).lower() == ident.name.lower()
                    and str(attr.get("option", "")) == wanted
                ):
                    return variation
        return None

    def _adopt_variation(
        self,
        product: ProductData,
        entry: dict[str, Any],
        remote: dict[str, Any],
        ctx: _RowContext,
    ) -> None:
        payload: dict[str, Any] = {}
        changes: list[str] = []
        for f in product.variation.fields:
            desired = _update_value(f)
            if not values_equal(remote.get(f.name), desired):
                payload[f.name] = desired
                changes.append(f"{f.name}: {_show(remote.get(f.name))} -> {_show(desired)}")
        remote_meta = {m.get("key"): m.get("value") for m in remote.get("meta_data") or []}
        meta_payload = []
        for m in product.variation.meta_data:
            desired = m.payload_value()
            if not values_equal(remote_meta.get(m.key), desired):
                meta_payload.append({"key": m.key, "value": desired})
                changes.append(f"{m.key}: {_show(remote_meta.get(m.key))} -> {_show(desired)}")
        if meta_payload:
            payload["meta_data"] = meta_payload

        if payload:
            done = self._mutate(
                ctx,
                f"sync variation {product.item_number} ({'; '.join(changes)})",
                lambda: self.client.update_variation(entry["parentId"], remote["id"], payload),
            )
            if done is None:
                return
            ctx.changes.extend(changes)

        entry["variations"][product.item_number] = self._variation_entry(product, remote["id"])
        ctx.variation_id = remote["id"]
        ctx.adopted = True
        ctx.cache_changed = True

    def _ensure_identifying_option(
        self, product: ProductData, remote_parent: dict[str, Any], ctx: _RowContext
    ) -> int:
        """Make sure the parent's "Item #" slot lists this item number.

        Must happen before the variation is created, otherwise WooCommerce
        rejects the variation.
        """
        ident = product.variation.attribute
        value = ident.payload_value()
        attributes = [dict(a) for a in remote_parent.get("attributes") or []]
        slot = next(
            (a for a in attributes if str(a.get("name", "")).lower() == ident.name.lower()), None
        )
        if slot is None:
            slot = identifying_attribute_entry(ident, self.attributes, [])
            attributes.append(slot)
        options = list(slot.get("options") or [])
        if value not in options or not slot.get("variation"):
            if value not in options:
                options.append(value)
            slot["options"] = options
            slot["variation"] = True
            description = f"add {ident.name} option {value} to parent {product.sku}"
            done = self._mutate(
                ctx,
                description,
                lambda: self.client.update_product(remote_parent["id"], {"attributes": attributes}),
            )
            if done is not None:
                ctx.changes.append(description)
        return slot.get("id") or self.attributes.require(ident.name)["id"]

    def _variation_create_payload(self, product: ProductData, attribute_id: int) -> dict[str, Any]:
        ident = product.variation.attribute
        payload: dict[str, Any] = {
            "attributes": [{"id": attribute_id, "option": ident.payload_value()}],
        }
        for f in product.variation.fields:
            if f.required or not is_blank(f.value):
                payload[f.name] = f.payload_value()
        payload["meta_data"] = [
            {"key": m.key, "value": m.payload_value()} for m in product.variation.meta_data
        ]
        return payload

    def _variation_entry(self, product: ProductData, variation_id: int) -> dict[str, Any]:
        entry: dict[str, Any] = {"variationId": variation_id}
        for f in product.variation.fields:
            entry[f.name] = f.value
        for m in product.variation.meta_data:
            entry[m.key] = m.value
        return entry
