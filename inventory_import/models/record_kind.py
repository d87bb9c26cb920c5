from __future__ import annotations

from enum import Enum

"""ImportRecordKind enum.

The kind is determined once per input from its header line and drives which
validator / importer path runs. Values are the lower-case names used on the
CLI, in error logs and in the SUMMARY line.
"""

__all__ = [
    "ImportRecordKind",
]


class ImportRecordKind(Enum):
    """Classification of one CSV input.

    - PRODUCTS: product master rows (bulk insert in batches)
    - INVENTORY: stock levels per product/location (single upsert)
    - ORDERS: order lines consolidated per customer
    - UNKNOWN: header set matches none of the above
    """
    PRODUCTS = "products"
    INVENTORY = "inventory"
    ORDERS = "orders"
    UNKNOWN = "unknown"

    @classmethod
    def from_name(cls, name: str) -> ImportRecordKind:
        try:
            return cls(name.strip().lower())
        except ValueError:
            return cls.UNKNOWN
