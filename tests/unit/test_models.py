from __future__ import annotations

import dataclasses

import pytest

from inventory_import.models.import_result import BatchStatsAccumulator, ImportResult
from inventory_import.models.permission import Permission, Role
from inventory_import.models.record_kind import ImportRecordKind
from inventory_import.models.records import ConsolidatedOrder, NormalizedOrderLineRecord
from inventory_import.models.row_data import RowData
from inventory_import.models.validation import Accepted, Rejected, ValidationReport


def test_record_kind_from_name():
    assert ImportRecordKind.from_name(" Products ") is ImportRecordKind.PRODUCTS
    assert ImportRecordKind.from_name("customers") is ImportRecordKind.UNKNOWN


def test_row_data_get():
    row = RowData(row_number=2, values={"sku": "  A-1 ", "name": ""})
    assert row.get("sku") == "A-1"
    assert row.get("missing") == ""
    assert row.has_value("sku")
    assert not row.has_value("name")


def test_rejected_message():
    assert Rejected(4, "SKU is required").message == "Row 4: SKU is required"


def test_validation_report_routes_outcomes():
    report = ValidationReport()
    report.add(Rejected(2, "x"))
    line = NormalizedOrderLineRecord(3, "p", 1, 1.0, 1.0, None, "A", "a@x.com")
    report.add(Accepted(line))
    assert report.accepted == [line]
    assert report.errors == ["Row 2: x"]
    assert report.total_rows == 2


def test_import_result_failure_and_to_dict():
    result = ImportResult.failure("Processing error: boom", ImportRecordKind.ORDERS)
    assert result.to_dict() == {
        "success": False,
        "totalRows": 0,
        "successfulRows": 0,
        "failedRows": 0,
        "errors": ["Processing error: boom"],
        "csvType": "orders",
    }


def test_import_result_to_dict_includes_data():
    result = ImportResult(True, 1, 1, 0, [], ImportRecordKind.PRODUCTS, data=[{"sku": "A"}])
    assert result.to_dict()["data"] == [{"sku": "A"}]


def test_import_result_is_frozen():
    with pytest.raises(dataclasses.FrozenInstanceError):
        ImportResult.failure("x").success = True  # type: ignore[misc]


def test_consolidated_order_row():
    items = [
        NormalizedOrderLineRecord(2, "p1", 2, 5.0, 10.0, "first", "Alice", "a@x.com", "confirmed"),
        NormalizedOrderLineRecord(3, "p2", 1, 7.5, 7.5, None, "Alice", "a@x.com"),
    ]
    order = ConsolidatedOrder("ORD-1-ABCDE", items)
    row = order.to_order_row(source="csv_import", created_by="u-1")
    assert row["subtotal"] == 17.5
    assert row["total_amount"] == 17.5
    assert row["status"] == "confirmed"
    assert row["notes"] == "first"
    assert row["customer_details"] == {"name": "Alice", "email": "a@x.com"}
    assert items[1].to_item_row("o-1") == {
        "order_id": "o-1",
        "product_id": "p2",
        "quantity": 1,
        "unit_price": 7.5,
        "total_price": 7.5,
        "notes": None,
    }


def test_role_parse():
    assert Role.parse("ADMIN") is Role.ADMIN
    assert Role.parse(None) is Role.USER
    assert Role.parse("owner") is Role.USER


def test_permission_from_row():
    p = Permission.from_row({"resource": "orders", "action": "approve", "granted": False})
    assert p == Permission("orders", "approve", False)
    assert not p.matches("orders", "approve")
    assert Permission.from_row({"resource": "a", "action": "b"}).granted is True


def test_batch_stats_accumulator():
    acc = BatchStatsAccumulator()
    assert acc.get_stats() == (0, 0.0, 0.0)
    acc.add_batch_time(0.5)
    assert acc.get_stats() == (1, 0.5, 0.5)
    for t in (0.1, 0.2, 0.3):
        acc.add_batch_time(t)
    total, avg, p95 = acc.get_stats()
    assert total == 4
    assert avg == pytest.approx(0.275)
    assert 0.3 <= p95 <= 0.5
