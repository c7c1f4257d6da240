from __future__ import annotations

import logging
from typing import Any

import requests
from woocommerce import API

from woo_sync.models.config_models import ApiConfig

"""Remote Catalog Client (WooCommerce REST API, wc/v3).

Thin wrapper around ``woocommerce.API`` exposing ``get/post/put`` that return
the decoded JSON body and raise ``RemoteError`` for transport failures and
non-2xx responses. The typed helpers below are the only resources the sync
uses: product search by SKU, product by id, product variations, category
search and the global attribute definitions.
"""

__all__ = [
    "RemoteError",
    "RemoteCatalogClient",
    "PER_PAGE",
]

logger = logging.getLogger(__name__)

PER_PAGE = 100
MUTATING_METHODS = frozenset({"POST", "PUT"})


class RemoteError(Exception):
    """A remote call failed (network, auth, 4xx/5xx, undecodable body)."""

    def __init__(self, method: str, path: str, message: str, status: int | None = None) -> None:
        self.method = method
        self.path = path
        self.status = status
        self.message = message
        where = f"{method} {path}"
        if status is not None:
            where += f" -> {status}"
        super().__init__(f"{where}: {message}")

    @property
    def is_mutation(self) -> bool:
        return self.method in MUTATING_METHODS


class RemoteCatalogClient:
    """get/post/put against the product catalog of one store."""

    def __init__(self, api: Any) -> None:
        self._api = api

    @classmethod
    def from_config(cls, cfg: ApiConfig) -> RemoteCatalogClient:
        api = API(
            url=cfg.url,
            consumer_key=cfg.consumer_key,
            consumer_secret=cfg.consumer_secret,
            version=cfg.version,
            timeout=cfg.timeout,
            verify_ssl=cfg.verify_ssl,
        )
        return cls(api)

    # ---- raw verbs ----

    def get(self, path: str, query: dict[str, Any] | None = None) -> Any:
        return self._call("GET", path, lambda: self._api.get(path, params=query or {}))

    def post(self, path: str, body: dict[str, Any]) -> Any:
        return self._call("POST", path, lambda: self._api.post(path, body))

    def put(self, path: str, body: dict[str, Any]) -> Any:
        return self._call("PUT", path, lambda: self._api.put(path, body))

    def _call(self, method: str, path: str, send: Any) -> Any:
        logger.debug("remote %s %s", method, path)
        try:
            response = send()
        except requests.exceptions.RequestException as e:
            raise RemoteError(method, path, str(e)) from e
        status = response.status_code
        if not 200 <= status < 300:
            raise RemoteError(method, path, _error_message(response), status=status)
        try:
            return response.json()
        except ValueError as e:
            raise RemoteError(method, path, f"invalid JSON response: {e}", status=status) from e

    # ---- products ----

    def find_product_by_sku(self, sku: str) -> dict[str, Any] | None:
        products = self.get("products", {"sku": sku})
        return products[0] if products else None

    def get_product(self, product_id: int) -> dict[str, Any]:
        return self.get(f"products/{product_id}")

    def create_product(self, body: dict[str, Any]) -> dict[str, Any]:
        return self.post("products", body)

    def update_product(self, product_id: int, body: dict[str, Any]) -> dict[str, Any]:
        return self.put(f"products/{product_id}", body)

    # ---- variations ----

    def list_variations(self, product_id: int) -> list[dict[str, Any]]:
        """Fetch all pages of a product's variations."""
        items: list[dict[str, Any]] = []
        page = 1
        while True:
            batch = self.get(
                f"products/{product_id}/variations", {"per_page": PER_PAGE, "page": page}
            )
            if not batch:
                break
            items.extend(batch)
            if len(batch) < PER_PAGE:
                break
            page += 1
        return items

    def create_variation(self, product_id: int, body: dict[str, Any]) -> dict[str, Any]:
        return self.post(f"products/{product_id}/variations", body)

    def update_variation(self, product_id: int, variation_id: int, body: dict[str, Any]) -> dict[str, Any]:
        return self.put(f"products/{product_id}/variations/{variation_id}", body)

    # ---- taxonomy ----

    def search_categories(self, name: str) -> list[dict[str, Any]]:
        return self.get("products/categories", {"search": name})

    def list_attribute_definitions(self) -> list[dict[str, Any]]:
        return self.get("products/attributes")


def _error_message(response: Any) -> str:
    try:
        body = response.json()
    except ValueError:
        return (getattr(response, "text", "") or "").strip()[:200] or "no response body"
    if isinstance(body, dict):
        return str(body.get("message") or body.get("code") or body)
    return str(body)
