# Shared pytest fixtures
from __future__ import annotations
import copy
import re
import tempfile
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from woo_sync.logging.init import reset_logging
from woo_sync.services.attributes import AttributeDefinitions
from woo_sync.woo.client import RemoteCatalogClient

ATTRIBUTE_NAMES = [
    "Item #",
    "Full Name",
    "Synonyms",
    "CAS Number",
    "Molecular Formula",
    "Molecular Weight",
    "Appearance",
    "Storage",
    "SMILES",
    "Functional Group",
    "PEG-Length",
    "Functional Group Prefix",
]


class FakeResponse:
    def __init__(self, status_code: int, body: Any) -> None:
        self.status_code = status_code
        self._body = body
        self.text = "" if body is None else str(body)

    def json(self) -> Any:
        if self._body is None:
            raise ValueError("no JSON body")
        return self._body


class FakeWooApi:
    """In-memory stand-in for ``woocommerce.API`` (get/post/put -> response)."""

    def __init__(self) -> None:
        self.products: dict[int, dict[str, Any]] = {}
        self.variations: dict[int, list[dict[str, Any]]] = {}
        self.categories: list[dict[str, Any]] = []
        self.attributes = [{"id": i, "name": n} for i, n in enumerate(ATTRIBUTE_NAMES, start=1)]
        self.calls: list[tuple[str, str, Any]] = []
        self.failures: dict[tuple[str, str], tuple[int, str]] = {}
        self._next_id = 100

    # ---- seeding helpers ----

    def add_product(self, sku: str, name: str = "", attributes: list[dict] | None = None, **extra) -> dict:
        product = {"id": self._new_id(), "sku": sku, "name": name, "type": "variable",
                   "attributes": attributes or [], "categories": [], **extra}
        self.products[product["id"]] = product
        self.variations[product["id"]] = []
        return product

    def add_variation(self, product_id: int, item_number: str, **fields) -> dict:
        variation = {"id": self._new_id(),
                     "attributes": [{"id": 1, "name": "Item #", "option": item_number}],
                     "meta_data": [], **fields}
        self.variations[product_id].append(variation)
        return variation

    def add_category(self, name: str) -> dict:
        category = {"id": self._new_id(), "name": name}
        self.categories.append(category)
        return category

    def fail(self, method: str, path: str, status: int = 500, message: str = "boom") -> None:
        self.failures[(method, path)] = (status, message)

    def mutations(self) -> list[tuple[str, str, Any]]:
        return [c for c in self.calls if c[0] in ("POST", "PUT")]

    # ---- woocommerce.API surface ----

    def get(self, endpoint: str, **kwargs) -> FakeResponse:
        params = kwargs.get("params") or {}
        self.calls.append(("GET", endpoint, dict(params)))
        failed = self._failure("GET", endpoint)
        if failed:
            return failed
        if endpoint == "products":
            return self._ok([copy.deepcopy(p) for p in self.products.values() if p["sku"] == params.get("sku")])
        if endpoint == "products/attributes":
            return self._ok(copy.deepcopy(self.attributes))
        if endpoint == "products/categories":
            term = str(params.get("search", "")).lower()
            return self._ok([dict(c) for c in self.categories if term in c["name"].lower()])
        m = re.fullmatch(r"products/(\d+)/variations", endpoint)
        if m:
            items = self.variations.get(int(m.group(1)), [])
            per_page, page = params.get("per_page", 10), params.get("page", 1)
            return self._ok(copy.deepcopy(items[(page - 1) * per_page: page * per_page]))
        m = re.fullmatch(r"products/(\d+)", endpoint)
        if m and int(m.group(1)) in self.products:
            return self._ok(copy.deepcopy(self.products[int(m.group(1))]))
        return FakeResponse(404, {"code": "not_found", "message": "Invalid ID."})

    def post(self, endpoint: str, data: dict) -> FakeResponse:
        self.calls.append(("POST", endpoint, copy.deepcopy(data)))
        failed = self._failure("POST", endpoint)
        if failed:
            return failed
        if endpoint == "products":
            product = {"id": self._new_id(), "categories": [], "attributes": [], **copy.deepcopy(data)}
            self.products[product["id"]] = product
            self.variations[product["id"]] = []
            return FakeResponse(201, copy.deepcopy(product))
        m = re.fullmatch(r"products/(\d+)/variations", endpoint)
        if m:
            variation = {"id": self._new_id(), **copy.deepcopy(data)}
            names = {a["id"]: a["name"] for a in self.attributes}
            for attr in variation.get("attributes", []):
                attr.setdefault("name", names.get(attr.get("id"), ""))
            self.variations[int(m.group(1))].append(variation)
            return FakeResponse(201, copy.deepcopy(variation))
        return FakeResponse(404, {"message": "no route"})

    def put(self, endpoint: str, data: dict) -> FakeResponse:
        self.calls.append(("PUT", endpoint, copy.deepcopy(data)))
        failed = self._failure("PUT", endpoint)
        if failed:
            return failed
        m = re.fullmatch(r"products/(\d+)/variations/(\d+)", endpoint)
        if m:
            for variation in self.variations.get(int(m.group(1)), []):
                if variation["id"] == int(m.group(2)):
                    variation.update(copy.deepcopy(data))
                    return self._ok(copy.deepcopy(variation))
            return FakeResponse(404, {"message": "Invalid ID."})
        m = re.fullmatch(r"products/(\d+)", endpoint)
        if m and int(m.group(1)) in self.products:
            self.products[int(m.group(1))].update(copy.deepcopy(data))
            return self._ok(copy.deepcopy(self.products[int(m.group(1))]))
        return FakeResponse(404, {"message": "Invalid ID."})

    # ---- internals ----

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def _ok(self, body: Any) -> FakeResponse:
        return FakeResponse(200, body)

    def _failure(self, method: str, endpoint: str) -> FakeResponse | None:
        if (method, endpoint) in self.failures:
            status, message = self.failures[(method, endpoint)]
            return FakeResponse(status, {"code": "error", "message": message})
        return None


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "meta").mkdir()
        monkeypatch.chdir(p)
        # 実環境の資格情報がテストに混入しないようにする
        for var in ("WC_API_URL", "WC_KEY", "WC_SECRET"):
            monkeypatch.delenv(var, raising=False)
        yield p

@pytest.fixture()
def sample_config_yaml() -> str:
    return """live: true
meta_dir: ./meta
cache_file: id_cache.json
strict_item_numbers: true
api:
  url: https://shop.example.com
  version: wc/v3
  timeout: 10
"""

@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "sync.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg

@pytest.fixture()
def api_env(monkeypatch) -> None:
    monkeypatch.setenv("WC_API_URL", "https://shop.example.com")
    monkeypatch.setenv("WC_KEY", "ck_test")
    monkeypatch.setenv("WC_SECRET", "cs_test")

@pytest.fixture()
def fake_api() -> FakeWooApi:
    return FakeWooApi()

@pytest.fixture()
def client(fake_api: FakeWooApi) -> RemoteCatalogClient:
    return RemoteCatalogClient(fake_api)

@pytest.fixture()
def definitions(fake_api: FakeWooApi) -> AttributeDefinitions:
    return AttributeDefinitions.from_remote(fake_api.attributes)

@pytest.fixture()
def make_row():
    """Factory for a complete master-sheet row; keyword args override columns."""
    def _make(**overrides) -> dict[str, Any]:
        row: dict[str, Any] = {
            "SKU": "X100",
            "Item #": "X100-A",
            "Name": "Test Compound",
            "Full Name": None,
            "Synonyms": None,
            "CAS Number": "64-19-7",
            "Molecular Formula": "C2H4O2",
            "Molecular Weight": 60.05,
            "Appearance": None,
            "Storage": None,
            "SMILES": None,
            "Functional Group": None,
            "PEG Length": None,
            "Functional Group Prefix": None,
            "Categories": None,
            "List Price": 19.5,
            "Purity": "99%",
            "Weight (g)": None,
        }
        row.update(overrides)
        return row
    return _make

@pytest.fixture()
def write_workbook():
    """Write rows (list of dicts) to an .xlsx whose first sheet is the master sheet."""
    def _write(path: Path, rows: list[dict[str, Any]], extra_sheet: bool = False) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            pd.DataFrame(rows).to_excel(writer, sheet_name="Master", index=False)
            if extra_sheet:
                pd.DataFrame([{"ignored": 1}]).to_excel(writer, sheet_name="Other", index=False)
        return path
    return _write

@pytest.fixture(autouse=True)
def _reset_logging():
    # CLI テストが設定した handler / propagate=False を次のテストに持ち越さない
    yield
    reset_logging()
