from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

"""Normalized record models produced by the row validator.

Each variant keeps the row_number of the CSV line it came from so that
persistence errors can be traced back to the input. The batch importer
dispatches on the concrete type (NormalizedRecord is a tagged union).
"""

__all__ = [
    "NormalizedProductRecord",
    "NormalizedInventoryRecord",
    "NormalizedOrderLineRecord",
    "NormalizedRecord",
    "ConsolidatedOrder",
]


@dataclass(frozen=True)
class NormalizedProductRecord:
    """Row of the products table.

    sku uniqueness is not checked here; duplicates surface as a unique
    constraint violation at persistence time.
    """
    row_number: int
    sku: str  # trimmed, upper-cased
    name: str
    description: str | None
    category_id: str | None
    selling_price: float
    cost_price: float
    weight_kg: float | None
    status: str = "active"

    def to_row(self) -> dict[str, object]:
        return {
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "category_id": self.category_id,
            "selling_price": self.selling_price,
            "cost_price": self.cost_price,
            "weight_kg": self.weight_kg,
            "status": self.status,
        }


@dataclass(frozen=True)
class NormalizedInventoryRecord:
    """Stock level for one (product, location) pair."""
    row_number: int
    product_id: str
    location_id: str | None  # None only when the store has no locations at all
    quantity: int
    reorder_level: int | None

    def to_row(self) -> dict[str, object]:
        return {
            "product_id": self.product_id,
            "location_id": self.location_id,
            "quantity": self.quantity,
            "reorder_level": self.reorder_level,
        }


@dataclass(frozen=True)
class NormalizedOrderLineRecord:
    """One order line; lines sharing (customer_name, customer_email) form one order."""
    row_number: int
    product_id: str
    quantity: int
    unit_price: float
    total_price: float
    notes: str | None
    customer_name: str
    customer_email: str
    status: str = "pending"

    @property
    def customer_key(self) -> tuple[str, str]:
        return (self.customer_name, self.customer_email)

    def to_item_row(self, order_id: object) -> dict[str, object]:
        return {
            "order_id": order_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "total_price": self.total_price,
            "notes": self.notes,
        }


NormalizedRecord = Union[
    NormalizedProductRecord,
    NormalizedInventoryRecord,
    NormalizedOrderLineRecord,
]


@dataclass(frozen=True)
class ConsolidatedOrder:
    """All lines of one customer, persisted as one order header + items."""
    order_number: str
    items: list[NormalizedOrderLineRecord] = field(default_factory=list)

    @property
    def subtotal(self) -> float:
        return sum(item.total_price for item in self.items)

    @property
    def customer_name(self) -> str:
        return self.items[0].customer_name

    @property
    def customer_email(self) -> str:
        return self.items[0].customer_email

    def to_order_row(self, *, source: str, created_by: str | None) -> dict[str, object]:
        """Build the orders row; header fields come from the first line."""
        first = self.items[0]
        subtotal = self.subtotal
        return {
            "order_number": self.order_number,
            "customer_details": {"name": first.customer_name, "email": first.customer_email},
            "status": first.status,
            "subtotal": subtotal,
            "total_amount": subtotal,
            "notes": first.notes,
            "source": source,
            "created_by": created_by,
        }
