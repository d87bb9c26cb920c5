# Shared pytest fixtures
from __future__ import annotations

import tempfile
from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest

from inventory_import.auth.session import SessionContext
from inventory_import.db.store import StoreError
from inventory_import.logging.init import reset_logging
from inventory_import.models.permission import Permission, Role

DUPLICATE_SKU_MESSAGE = 'duplicate key value violates unique constraint "products_sku_key"'


class FakeStore:
    """In-memory DataStore with failure injection.

    - fail_fetch: name of a fetch_* method that raises StoreError
    - fail_product_batches: {call_no (1-based): StoreError}
    - fail_inventory: StoreError raised by upsert_inventory
    - fail_order_for / fail_items_for: {customer_name: StoreError}
    - duplicate SKUs (against existing or already inserted rows, or inside
      one batch) fail the whole batch like a unique constraint would
    """

    def __init__(
        self,
        categories: list[dict[str, Any]] | None = None,
        products: list[dict[str, Any]] | None = None,
        locations: list[dict[str, Any]] | None = None,
        profiles: dict[str, dict[str, Any]] | None = None,
        permissions: dict[tuple[str, str | None], list[dict[str, Any]]] | None = None,
    ) -> None:
        self.categories = list(categories or [])
        self.products = list(products or [])
        self.locations = list(locations or [])
        self.profiles = dict(profiles or {})
        self.permissions = dict(permissions or {})

        self.inserted_products: list[dict[str, Any]] = []
        self.inventory: dict[tuple[Any, Any], dict[str, Any]] = {}
        self.orders: list[dict[str, Any]] = []
        self.order_items: list[dict[str, Any]] = []
        self.calls: list[str] = []

        self.fail_fetch: str | None = None
        self.fail_product_batches: dict[int, StoreError] = {}
        self.fail_inventory: StoreError | None = None
        self.fail_order_for: dict[str, StoreError] = {}
        self.fail_items_for: dict[str, StoreError] = {}
        self._product_calls = 0

    def _check_fetch(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_fetch == name:
            raise StoreError("connection refused")

    def fetch_categories(self) -> list[dict[str, Any]]:
        self._check_fetch("fetch_categories")
        return list(self.categories)

    def fetch_products(self) -> list[dict[str, Any]]:
        self._check_fetch("fetch_products")
        return list(self.products)

    def fetch_locations(self) -> list[dict[str, Any]]:
        self._check_fetch("fetch_locations")
        return list(self.locations)

    def insert_products(self, rows):
        self.calls.append("insert_products")
        self._product_calls += 1
        if self._product_calls in self.fail_product_batches:
            raise self.fail_product_batches[self._product_calls]
        existing = {p["sku"] for p in self.products} | {p["sku"] for p in self.inserted_products}
        batch_skus = [r["sku"] for r in rows]
        if len(set(batch_skus)) != len(batch_skus) or existing & set(batch_skus):
            raise StoreError(DUPLICATE_SKU_MESSAGE, duplicate_key=True)
        for r in rows:
            self.inserted_products.append({"id": f"new-{len(self.inserted_products) + 1}", **r})
        return len(rows)

    def upsert_inventory(self, rows):
        self.calls.append("upsert_inventory")
        if self.fail_inventory is not None:
            raise self.fail_inventory
        for r in rows:
            self.inventory[(r["product_id"], r["location_id"])] = dict(r)
        return len(rows)

    def insert_order(self, order):
        self.calls.append("insert_order")
        name = order["customer_details"]["name"]
        if name in self.fail_order_for:
            raise self.fail_order_for[name]
        order_id = f"order-{len(self.orders) + 1}"
        self.orders.append({"id": order_id, **order})
        return order_id

    def insert_order_items(self, items):
        self.calls.append("insert_order_items")
        order = next(o for o in self.orders if o["id"] == items[0]["order_id"])
        name = order["customer_details"]["name"]
        if name in self.fail_items_for:
            raise self.fail_items_for[name]
        self.order_items.extend(dict(i) for i in items)
        return len(items)

    def fetch_profile(self, user_id):
        self.calls.append("fetch_profile")
        return self.profiles.get(user_id)

    def fetch_permissions(self, user_id, tenant_id):
        self.calls.append("fetch_permissions")
        return list(self.permissions.get((user_id, tenant_id), []))

    def items_of(self, order_id: str) -> list[dict[str, Any]]:
        return [i for i in self.order_items if i["order_id"] == order_id]


@pytest.fixture(autouse=True)
def _fresh_logging():
    # ハンドラは setup 時の sys.stdout を掴むので capsys ごとに作り直す
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
import:
  product_batch_size: 2
  error_log_dir: ./logs
  order_source: csv_import
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def fake_store() -> FakeStore:
    return FakeStore(
        categories=[
            {"id": "cat-1", "name": "Electronics"},
            {"id": "cat-2", "name": "Office Supplies"},
        ],
        products=[
            {"id": "prod-1", "sku": "PROD-001", "selling_price": 49.99},
            {"id": "prod-2", "sku": "PROD-002", "selling_price": Decimal("10.00")},
            {"id": "prod-3", "sku": "PROD-003", "selling_price": None},
        ],
        locations=[
            {"id": "loc-1", "name": "Main Warehouse"},
            {"id": "loc-2", "name": "Store Front"},
        ],
        profiles={
            "u-admin": {"id": "u-admin", "email": "admin@example.com", "role": "admin"},
            "u-manager": {"id": "u-manager", "email": "mgr@example.com", "role": "manager"},
            "u-user": {"id": "u-user", "email": "user@example.com", "role": "user"},
        },
        permissions={
            ("u-user", "t-1"): [
                {"resource": "inventory", "action": "update", "granted": True},
                {"resource": "orders", "action": "create", "granted": False},
            ],
        },
    )


@pytest.fixture()
def admin_session() -> SessionContext:
    return SessionContext(user_id="u-admin", role=Role.ADMIN)


@pytest.fixture()
def manager_session() -> SessionContext:
    return SessionContext(user_id="u-manager", role=Role.MANAGER)


@pytest.fixture()
def user_session() -> SessionContext:
    return SessionContext(
        user_id="u-user",
        tenant_id="t-1",
        role=Role.USER,
        permissions=frozenset({Permission("inventory", "update")}),
    )


@pytest.fixture()
def store_factory():
    """FakeStore class, for tests that need custom reference data."""
    return FakeStore
