from __future__ import annotations

from decimal import Decimal

import pytest

from inventory_import.models.record_kind import ImportRecordKind
from inventory_import.services.reference_resolver import (
    ReferenceResolutionError,
    build_name_map,
    build_product_map,
    resolve,
)


def test_resolve_products_fetches_categories_only(fake_store):
    lookups = resolve(ImportRecordKind.PRODUCTS, fake_store)
    assert fake_store.calls == ["fetch_categories"]
    assert lookups.category_id("ELECTRONICS") == "cat-1"
    assert lookups.category_id(" office supplies ") == "cat-2"
    assert lookups.category_id("Toys") is None


def test_resolve_inventory_sets_default_location(fake_store):
    lookups = resolve(ImportRecordKind.INVENTORY, fake_store)
    assert fake_store.calls == ["fetch_products", "fetch_locations"]
    assert lookups.product("prod-002").id == "prod-2"
    assert lookups.location_id("store front") == "loc-2"
    assert lookups.default_location_id == "loc-1"


def test_resolve_inventory_without_locations(store_factory):
    store = store_factory(products=[{"id": "p", "sku": "A", "selling_price": 1}])
    assert resolve(ImportRecordKind.INVENTORY, store).default_location_id is None


def test_resolve_orders_keeps_selling_price(fake_store):
    lookups = resolve(ImportRecordKind.ORDERS, fake_store)
    assert fake_store.calls == ["fetch_products"]
    assert lookups.product("PROD-001").selling_price == 49.99
    # numeric columns come back as Decimal
    assert lookups.product("PROD-002").selling_price == 10.0
    assert isinstance(lookups.product("PROD-002").selling_price, float)
    assert lookups.product("PROD-003").selling_price is None


def test_resolve_store_failure_is_fatal(fake_store):
    fake_store.fail_fetch = "fetch_locations"
    with pytest.raises(ReferenceResolutionError, match="connection refused"):
        resolve(ImportRecordKind.INVENTORY, fake_store)


def test_resolve_unknown_kind(fake_store):
    with pytest.raises(ReferenceResolutionError):
        resolve(ImportRecordKind.UNKNOWN, fake_store)


def test_build_name_map_last_duplicate_wins_and_skips_missing_keys():
    rows = [
        {"id": 1, "name": "Main"},
        {"id": 2, "name": "MAIN"},
        {"id": 3, "name": None},
    ]
    assert build_name_map(rows, "name") == {"main": 2}


def test_build_product_map_price_conversion():
    out = build_product_map(
        [
            {"id": 1, "sku": "A", "selling_price": Decimal("1.50")},
            {"id": 2, "sku": "B", "selling_price": "not-a-number"},
        ]
    )
    assert out["a"].selling_price == 1.5
    assert out["b"].selling_price is None
    assert out["a"].sku == "A"
