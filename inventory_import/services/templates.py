from __future__ import annotations

import pandas as pd

from ..models.record_kind import ImportRecordKind

"""Downloadable CSV templates.

Header lists are fixed; after header normalization every template is detected
as its own kind (e.g. "Product Name" -> name, "Selling Price" -> selling_price).
"""

__all__ = [
    "TEMPLATE_HEADERS",
    "TEMPLATE_SAMPLES",
    "render_template",
    "template_filename",
]

TEMPLATE_HEADERS: dict[ImportRecordKind, list[str]] = {
    ImportRecordKind.PRODUCTS: [
        "SKU",
        "Product Name",
        "Category",
        "Brand",
        "Selling Price",
        "Cost Price",
        "Weight (kg)",
        "Description",
        "Stock Quantity",
        "Reorder Level",
        "Status",
    ],
    ImportRecordKind.INVENTORY: ["sku", "location", "quantity", "reorder_level"],
    ImportRecordKind.ORDERS: [
        "customer_name",
        "customer_email",
        "product_sku",
        "quantity",
        "unit_price",
        "status",
        "notes",
    ],
}

TEMPLATE_SAMPLES: dict[ImportRecordKind, list[str]] = {
    ImportRecordKind.PRODUCTS: [
        "PROD-001",
        "Sample Electronics Product",
        "Electronics",
        "TechBrand",
        "299.99",
        "199.99",
        "1.5",
        "High-quality electronic device, advanced features",
        "100",
        "20",
        "active",
    ],
    ImportRecordKind.INVENTORY: ["PROD-001", "Main Warehouse", "100", "20"],
    ImportRecordKind.ORDERS: [
        "Jane Doe",
        "jane@example.com",
        "PROD-001",
        "2",
        "299.99",
        "pending",
        "Gift wrap",
    ],
}


def render_template(kind: ImportRecordKind, *, include_sample: bool = True) -> str:
    """CSV text (header line plus one sample row) for `kind`.

    Raises:
        ValueError: kind is UNKNOWN
    """
    try:
        headers = TEMPLATE_HEADERS[kind]
    except KeyError:
        raise ValueError(f"no template for kind '{kind.value}'") from None
    rows = [TEMPLATE_SAMPLES[kind]] if include_sample else []
    frame = pd.DataFrame(rows, columns=headers)
    return frame.to_csv(index=False, lineterminator="\n")


def template_filename(kind: ImportRecordKind, date_str: str) -> str:
    """e.g. products-template-2024-01-31.csv"""
    return f"{kind.value}-template-{date_str}.csv"
