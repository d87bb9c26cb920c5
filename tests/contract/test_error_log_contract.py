from __future__ import annotations

import json
from pathlib import Path

from inventory_import.db.store import StoreError
from inventory_import.logging.error_log import ErrorLogBuffer
from inventory_import.models.config_models import ImportConfig, ImportSettings
from inventory_import.services.orchestrator import import_csv

EXPECTED_KEYS = {"timestamp", "source", "kind", "row", "error_type", "message"}
KNOWN_TYPES = {
    "ROW_VALIDATION_ERROR",
    "BATCH_INSERT_ERROR",
    "DUPLICATE_KEY_ERROR",
    "INVENTORY_UPSERT_ERROR",
    "ORDER_INSERT_ERROR",
    "ORDER_ITEMS_INSERT_ERROR",
    "PROCESSING_ERROR",
    "FORMAT_DETECTION_ERROR",
    "PERMISSION_DENIED",
}


def _read_jsonl(path: Path) -> list[dict]:
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


def test_products_error_log_lines(temp_workdir: Path, fake_store, admin_session):
    fake_store.fail_product_batches = {2: StoreError("value too long")}
    buf = ErrorLogBuffer(temp_workdir / "logs")
    csv_text = (
        "sku,name,selling_price,cost_price\n"
        "N-1,One,1,1\n"
        "PROD-001,Dup,1,1\n"
        "N-3,Three,1,1\n"
        ",Blank,1,1\n"
        "N-5,Five,1,1\n"
    )
    config = ImportConfig(settings=ImportSettings(product_batch_size=2))
    import_csv(csv_text, fake_store, admin_session, config=config, source="p.csv", error_log=buf)
    path = buf.flush()
    assert path is not None
    assert path.name.startswith("errors-") and path.suffix == ".log"

    records = _read_jsonl(path)
    for rec in records:
        assert set(rec) == EXPECTED_KEYS
        assert rec["error_type"] in KNOWN_TYPES
        assert rec["timestamp"].endswith("Z")
        assert rec["source"] == "p.csv"
        assert rec["kind"] == "products"

    assert [(r["row"], r["error_type"]) for r in records] == [
        (5, "ROW_VALIDATION_ERROR"),
        (2, "DUPLICATE_KEY_ERROR"),
        (4, "BATCH_INSERT_ERROR"),
    ]
    assert records[1]["message"] == "Batch 1: Some SKUs already exist"
    assert records[2]["message"] == "Batch 2: value too long"


def test_inventory_and_file_level_errors_use_row_minus_one(temp_workdir: Path, fake_store, admin_session):
    fake_store.fail_inventory = StoreError("deadlock detected")
    buf = ErrorLogBuffer(temp_workdir / "logs")
    import_csv("sku,quantity\nPROD-001,1\n", fake_store, admin_session, error_log=buf)
    import_csv("foo,bar\n", fake_store, admin_session, error_log=buf)
    records = _read_jsonl(buf.flush())
    assert [(r["row"], r["error_type"]) for r in records] == [
        (-1, "INVENTORY_UPSERT_ERROR"),
        (-1, "FORMAT_DETECTION_ERROR"),
    ]
    assert records[0]["message"] == "Database error: deadlock detected"
    assert records[1]["kind"] == "unknown"


def test_order_errors_point_at_first_line_of_group(temp_workdir: Path, fake_store, admin_session):
    fake_store.fail_order_for = {"Bob": StoreError("orders_pkey")}
    fake_store.fail_items_for = {"Carol": StoreError("fk violation")}
    buf = ErrorLogBuffer(temp_workdir / "logs")
    csv_text = (
        "customer_name,customer_email,product_sku,quantity\n"
        "Alice,a@example.com,PROD-001,1\n"
        "Bob,b@example.com,PROD-001,1\n"
        "Carol,c@example.com,PROD-002,1\n"
        "Bob,b@example.com,PROD-002,1\n"
    )
    import_csv(csv_text, fake_store, admin_session, error_log=buf)
    records = _read_jsonl(buf.flush())
    assert [(r["row"], r["error_type"], r["message"]) for r in records] == [
        (3, "ORDER_INSERT_ERROR", "Error creating order for Bob: orders_pkey"),
        (4, "ORDER_ITEMS_INSERT_ERROR", "Error creating order items for Carol: fk violation"),
    ]


def test_processing_error_is_logged(temp_workdir: Path, fake_store, admin_session):
    fake_store.fail_fetch = "fetch_products"
    buf = ErrorLogBuffer(temp_workdir / "logs")
    import_csv("sku,quantity\nPROD-001,1\n", fake_store, admin_session, error_log=buf)
    (rec,) = buf.records
    assert rec.error_type == "PROCESSING_ERROR"
    assert rec.row == -1
    assert rec.message.startswith("Processing error: ")


def test_clean_run_writes_nothing(temp_workdir: Path, fake_store, admin_session):
    buf = ErrorLogBuffer(temp_workdir / "logs")
    import_csv("sku,quantity\nPROD-001,1\n", fake_store, admin_session, error_log=buf)
    assert buf.flush() is None
    assert not (temp_workdir / "logs").exists()
