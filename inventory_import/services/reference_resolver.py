from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any

from ..db.store import DataStore, StoreError
from ..models.record_kind import ImportRecordKind

"""Reference resolution for CSV imports.

Natural keys in the CSV (category name, product SKU, location name) are
resolved to store ids through in-memory lookup maps built once per import:

- PRODUCTS:  categories(id, name)            -> category name -> id
- INVENTORY: products(id, sku), locations(id, name)
             -> sku -> id, location name -> id, plus a default location
- ORDERS:    products(id, sku, selling_price) -> sku -> ProductRef

All keys are lower-cased; lookups are case-insensitive. A failed fetch is
fatal for the whole import (lookups are prerequisites, not data).
"""

logger = logging.getLogger(__name__)


class ReferenceResolutionError(Exception):
    """Raised when reference data cannot be fetched from the store."""


@dataclass(frozen=True)
class ProductRef:
    id: Any
    sku: str
    selling_price: float | None


@dataclass(frozen=True)
class ReferenceLookups:
    """Lookup tables consumed by the row validator."""
    categories: dict[str, Any] = field(default_factory=dict)
    products: dict[str, ProductRef] = field(default_factory=dict)
    locations: dict[str, Any] = field(default_factory=dict)
    # 先頭ロケーション (行に location が無い場合に使用、ロケーション 0 件なら None)
    default_location_id: Any = None

    def category_id(self, name: str) -> Any:
        return self.categories.get(_key(name))

    def product(self, sku: str) -> ProductRef | None:
        return self.products.get(_key(sku))

    def location_id(self, name: str) -> Any:
        return self.locations.get(_key(name))


def _key(value: str) -> str:
    return value.strip().lower()


def _to_price(value: Any) -> float | None:
    # numeric 列は Decimal で返る
    if value is None:
        return None
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    return price if math.isfinite(price) else None


def build_name_map(rows: list[dict[str, Any]], key_column: str) -> dict[str, Any]:
    """Map lower-cased key_column -> id. Rows without a key are skipped."""
    out: dict[str, Any] = {}
    for row in rows:
        name = row.get(key_column)
        if name is None:
            continue
        out[_key(str(name))] = row.get("id")
    return out


def build_product_map(rows: list[dict[str, Any]]) -> dict[str, ProductRef]:
    out: dict[str, ProductRef] = {}
    for row in rows:
        sku = row.get("sku")
        if sku is None:
            continue
        out[_key(str(sku))] = ProductRef(
            id=row.get("id"), sku=str(sku), selling_price=_to_price(row.get("selling_price"))
        )
    return out


def resolve(kind: ImportRecordKind, store: DataStore) -> ReferenceLookups:
    """Fetch the reference data needed to validate rows of the given kind.

    Raises:
        ReferenceResolutionError: the store call failed
    """
    try:
        if kind is ImportRecordKind.PRODUCTS:
            lookups = ReferenceLookups(
                categories=build_name_map(store.fetch_categories(), "name"),
            )
        elif kind is ImportRecordKind.INVENTORY:
            products = store.fetch_products()
            locations = store.fetch_locations()
            lookups = ReferenceLookups(
                products=build_product_map(products),
                locations=build_name_map(locations, "name"),
                default_location_id=locations[0].get("id") if locations else None,
            )
        elif kind is ImportRecordKind.ORDERS:
            lookups = ReferenceLookups(products=build_product_map(store.fetch_products()))
        else:
            raise ReferenceResolutionError(f"no reference data for kind '{kind.value}'")
    except StoreError as e:
        raise ReferenceResolutionError(str(e)) from e

    logger.debug(
        "resolved kind=%s categories=%d products=%d locations=%d default_location=%s",
        kind.value,
        len(lookups.categories),
        len(lookups.products),
        len(lookups.locations),
        lookups.default_location_id,
    )
    return lookups
