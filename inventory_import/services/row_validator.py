from __future__ import annotations

import math
import re
from collections.abc import Callable, Sequence

from ..models.record_kind import ImportRecordKind
from ..models.records import (
    NormalizedInventoryRecord,
    NormalizedOrderLineRecord,
    NormalizedProductRecord,
)
from ..models.row_data import RowData
from ..models.validation import Accepted, Rejected, ValidationOutcome, ValidationReport
from .reference_resolver import ReferenceLookups

"""Row validation.

Rules are evaluated top to bottom per row and stop at the first failure, so a
rejected row carries exactly one reason. Messages are rendered as
"Row <n>: <reason>" where n counts the header as row 1.

The validator only reads the in-memory ReferenceLookups; it never talks to
the store.
"""

__all__ = [
    "EMAIL_RE",
    "parse_number",
    "parse_int",
    "validate_product_row",
    "validate_inventory_row",
    "validate_order_row",
    "validate",
]

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
# 桁区切り "_" や inf / nan は float() が受け付けるので形式で弾く
NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")

DEFAULT_PRODUCT_STATUS = "active"
DEFAULT_ORDER_STATUS = "pending"


def parse_number(text: str) -> float | None:
    """Finite float from cell text, None when empty or not a number."""
    if not text or not NUMBER_RE.match(text):
        return None
    try:
        value = float(text)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def parse_int(text: str) -> int | None:
    """Integer from cell text. Integral decimals ("12.0") are accepted."""
    if not text or not NUMBER_RE.match(text):
        return None
    try:
        return int(text)
    except ValueError:
        pass
    value = parse_number(text)
    if value is None or not value.is_integer():
        return None
    return int(value)


def validate_product_row(row: RowData, lookups: ReferenceLookups) -> ValidationOutcome:
    sku = row.get("sku")
    if not sku:
        return Rejected(row.row_number, "SKU is required")

    name = row.get("name")
    if not name:
        return Rejected(row.row_number, "Product name is required")

    selling_price = parse_number(row.get("selling_price"))
    if selling_price is None or selling_price < 0:
        return Rejected(row.row_number, "Invalid selling price")

    cost_price = parse_number(row.get("cost_price"))
    if cost_price is None or cost_price < 0:
        return Rejected(row.row_number, "Invalid cost price")

    category_id = None
    category = row.get("category")
    if category:
        category_id = lookups.category_id(category)
        if category_id is None:
            return Rejected(row.row_number, f'Category "{category}" not found')

    return Accepted(
        NormalizedProductRecord(
            row_number=row.row_number,
            sku=sku.upper(),
            name=name,
            description=row.get("description") or None,
            category_id=category_id,
            selling_price=selling_price,
            cost_price=cost_price,
            # 不正な重量は null 扱い (行は拒否しない)
            weight_kg=parse_number(row.get("weight_kg")),
            status=row.get("status").lower() or DEFAULT_PRODUCT_STATUS,
        )
    )


def validate_inventory_row(row: RowData, lookups: ReferenceLookups) -> ValidationOutcome:
    sku = row.get("sku")
    if not sku:
        return Rejected(row.row_number, "SKU is required")

    product = lookups.product(sku)
    if product is None:
        return Rejected(row.row_number, f'Product with SKU "{sku}" not found')

    quantity = parse_int(row.get("quantity"))
    if quantity is None or quantity < 0:
        return Rejected(row.row_number, "Invalid quantity")

    location_id = lookups.default_location_id
    location = row.get("location")
    if location:
        location_id = lookups.location_id(location)
        if location_id is None:
            return Rejected(row.row_number, f'Location "{location}" not found')

    return Accepted(
        NormalizedInventoryRecord(
            row_number=row.row_number,
            product_id=product.id,
            location_id=location_id,
            quantity=quantity,
            reorder_level=parse_int(row.get("reorder_level")),
        )
    )


def validate_order_row(row: RowData, lookups: ReferenceLookups) -> ValidationOutcome:
    customer_name = row.get("customer_name")
    if not customer_name:
        return Rejected(row.row_number, "Customer name is required")

    customer_email = row.get("customer_email")
    if not customer_email:
        return Rejected(row.row_number, "Customer email is required")
    if not EMAIL_RE.match(customer_email):
        return Rejected(row.row_number, "Invalid email format")

    sku = row.get("product_sku")
    if not sku:
        return Rejected(row.row_number, "Product SKU is required")
    product = lookups.product(sku)
    if product is None:
        return Rejected(row.row_number, f'Product with SKU "{sku}" not found')

    quantity = parse_int(row.get("quantity"))
    if quantity is None or quantity <= 0:
        return Rejected(row.row_number, "Invalid quantity")

    # unit_price が空なら商品の販売価格で補完
    if row.has_value("unit_price"):
        unit_price = parse_number(row.get("unit_price"))
    else:
        unit_price = product.selling_price
    if unit_price is None or unit_price < 0:
        return Rejected(row.row_number, "Invalid unit price")

    return Accepted(
        NormalizedOrderLineRecord(
            row_number=row.row_number,
            product_id=product.id,
            quantity=quantity,
            unit_price=unit_price,
            total_price=quantity * unit_price,
            notes=row.get("notes") or None,
            customer_name=customer_name,
            customer_email=customer_email,
            status=row.get("status").lower() or DEFAULT_ORDER_STATUS,
        )
    )


_VALIDATORS: dict[ImportRecordKind, Callable[[RowData, ReferenceLookups], ValidationOutcome]] = {
    ImportRecordKind.PRODUCTS: validate_product_row,
    ImportRecordKind.INVENTORY: validate_inventory_row,
    ImportRecordKind.ORDERS: validate_order_row,
}


def validate(
    rows: Sequence[RowData], kind: ImportRecordKind, lookups: ReferenceLookups
) -> ValidationReport:
    """Validate every row of one kind; accepted records keep input order.

    Raises:
        ValueError: kind has no validator (UNKNOWN)
    """
    try:
        validator = _VALIDATORS[kind]
    except KeyError:
        raise ValueError(f"no validator for kind '{kind.value}'") from None

    report = ValidationReport()
    for row in rows:
        report.add(validator(row, lookups))
    return report
