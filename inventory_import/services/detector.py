from __future__ import annotations

from collections.abc import Iterable

from ..models.record_kind import ImportRecordKind
from ..tabular.reader import read_header

"""CSV type detection from the header line.

Rules, first match wins:
    1. sku + name + selling_price                -> PRODUCTS
    2. sku + quantity, without customer_name     -> INVENTORY
    3. customer_name + customer_email + product_sku -> ORDERS
    4. otherwise                                 -> UNKNOWN
Products is checked before Inventory because both carry sku; selling_price
disambiguates.
"""

__all__ = [
    "detect",
    "detect_headers",
]


def detect_headers(headers: Iterable[str]) -> ImportRecordKind:
    """Classify an already-normalized header set."""
    h = set(headers)
    if {"sku", "name", "selling_price"} <= h:
        return ImportRecordKind.PRODUCTS
    if {"sku", "quantity"} <= h and "customer_name" not in h:
        return ImportRecordKind.INVENTORY
    if {"customer_name", "customer_email", "product_sku"} <= h:
        return ImportRecordKind.ORDERS
    return ImportRecordKind.UNKNOWN


def detect(raw_text: str | bytes) -> ImportRecordKind:
    """Classify raw CSV content by its header line. Pure; empty input -> UNKNOWN.

    Raises:
        CSVParseError: the header line itself cannot be read
    """
    return detect_headers(read_header(raw_text))
