from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

from ..db.store import DataStore, StoreError
from ..models.config_models import DEFAULT_ORDER_SOURCE, DEFAULT_PRODUCT_BATCH_SIZE
from ..models.error_record import ROW_UNKNOWN
from ..models.import_result import BatchStatsAccumulator, PersistenceOutcome
from ..models.record_kind import ImportRecordKind
from ..models.records import (
    ConsolidatedOrder,
    NormalizedInventoryRecord,
    NormalizedOrderLineRecord,
    NormalizedProductRecord,
    NormalizedRecord,
)
from .progress import ProgressTracker

"""Batch persistence of validated records.

- PRODUCTS: fixed-size batches, one bulk insert each. A failed batch is
  reported once and counted as failed as a whole, then the next batch runs.
- INVENTORY: a single upsert keyed on (product_id, location_id).
- ORDERS: lines grouped by (customer_name, customer_email); per group one
  order header insert followed by one items insert. Counts are groups.

Units are processed sequentially; nothing is retried and nothing already
written is compensated. In particular, when the items insert of an order
fails after its header was written, the header stays in the store without
items and only a warning is logged.
"""

__all__ = [
    "ImportContext",
    "chunked",
    "generate_order_number",
    "group_order_lines",
    "import_products",
    "import_inventory",
    "import_orders",
    "import_records",
]

logger = logging.getLogger(__name__)

T = TypeVar("T")

# (row, error_type, message) ; row は失敗単位の先頭行 (不明なら ROW_UNKNOWN)
ErrorSink = Callable[[int, str, str], None]

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


@dataclass(frozen=True)
class ImportContext:
    """Per-import parameters of the persistence step."""
    created_by: str | None = None
    order_source: str = DEFAULT_ORDER_SOURCE
    product_batch_size: int = DEFAULT_PRODUCT_BATCH_SIZE
    on_error: ErrorSink | None = None
    order_number_factory: Callable[[], str] | None = None

    def report(self, row: int, error_type: str, message: str) -> None:
        if self.on_error is not None:
            self.on_error(row, error_type, message)


def chunked(items: Sequence[T], size: int) -> Iterator[list[T]]:
    if size < 1:
        raise ValueError("batch size must be >= 1")
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


def generate_order_number(now_ms: int | None = None, rng: random.Random | None = None) -> str:
    """ORD-<unix millis>-<5 base36 chars, upper-cased>.

    Uniqueness is not re-checked against the store.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    rng = rng or random
    suffix = "".join(rng.choice(_BASE36) for _ in range(5))
    return f"ORD-{now_ms}-{suffix.upper()}"


def import_products(
    records: Sequence[NormalizedProductRecord], store: DataStore, context: ImportContext
) -> PersistenceOutcome:
    successful = 0
    failed = 0
    errors: list[str] = []
    persisted: list[dict[str, Any]] = []
    stats = BatchStatsAccumulator()

    batches = list(chunked(records, context.product_batch_size))
    with ProgressTracker(len(batches), description="Importing products", unit="batch") as progress:
        for batch_no, batch in enumerate(batches, start=1):
            progress.start(f"batch {batch_no}")
            rows = [r.to_row() for r in batch]
            started = time.perf_counter()
            try:
                inserted = store.insert_products(rows)
            except StoreError as e:
                if e.duplicate_key:
                    message = f"Batch {batch_no}: Some SKUs already exist"
                    error_type = "DUPLICATE_KEY_ERROR"
                else:
                    message = f"Batch {batch_no}: {e}"
                    error_type = "BATCH_INSERT_ERROR"
                errors.append(message)
                failed += len(batch)
                context.report(batch[0].row_number, error_type, message)
                logger.debug("products batch=%d size=%d failed: %s", batch_no, len(batch), e)
                progress.finish(success=False)
                continue
            finally:
                stats.add_batch_time(time.perf_counter() - started)

            inserted = min(inserted, len(batch))
            successful += inserted
            failed += len(batch) - inserted
            persisted.extend(rows[:inserted])
            progress.finish(success=True)

    total_batches, avg_s, p95_s = stats.get_stats()
    logger.debug(
        "products batches=%d avg_batch_sec=%.4f p95_batch_sec=%.4f inserted=%d failed=%d",
        total_batches, avg_s, p95_s, successful, failed,
    )
    return PersistenceOutcome(
        successful_rows=successful, failed_rows=failed, errors=errors, persisted=persisted
    )


def import_inventory(
    records: Sequence[NormalizedInventoryRecord], store: DataStore, context: ImportContext
) -> PersistenceOutcome:
    rows = [r.to_row() for r in records]
    with ProgressTracker(1 if rows else 0, description="Importing inventory", unit="upsert") as progress:
        progress.start(f"{len(rows)} rows")
        try:
            upserted = store.upsert_inventory(rows)
        except StoreError as e:
            message = f"Database error: {e}"
            context.report(ROW_UNKNOWN, "INVENTORY_UPSERT_ERROR", message)
            progress.finish(success=False)
            return PersistenceOutcome(successful_rows=0, failed_rows=len(rows), errors=[message])
        progress.finish(success=True)

    upserted = min(upserted, len(rows))
    return PersistenceOutcome(
        successful_rows=upserted,
        failed_rows=len(rows) - upserted,
        errors=[],
        persisted=rows,
    )


def group_order_lines(
    records: Sequence[NormalizedOrderLineRecord],
) -> list[list[NormalizedOrderLineRecord]]:
    """Group lines by exact (customer_name, customer_email), first-seen order."""
    groups: dict[tuple[str, str], list[NormalizedOrderLineRecord]] = {}
    for record in records:
        groups.setdefault(record.customer_key, []).append(record)
    return list(groups.values())


def import_orders(
    records: Sequence[NormalizedOrderLineRecord], store: DataStore, context: ImportContext
) -> PersistenceOutcome:
    groups = group_order_lines(records)
    new_number = context.order_number_factory or generate_order_number
    errors: list[str] = []
    persisted: list[dict[str, Any]] = []

    with ProgressTracker(len(groups), description="Importing orders", unit="order") as progress:
        for items in groups:
            order = ConsolidatedOrder(order_number=new_number(), items=items)
            first_row = items[0].row_number
            progress.start(order.customer_name)

            try:
                order_id = store.insert_order(
                    order.to_order_row(source=context.order_source, created_by=context.created_by)
                )
            except StoreError as e:
                message = f"Error creating order for {order.customer_name}: {e}"
                errors.append(message)
                context.report(first_row, "ORDER_INSERT_ERROR", message)
                progress.finish(success=False)
                continue

            try:
                store.insert_order_items([item.to_item_row(order_id) for item in items])
            except StoreError as e:
                message = f"Error creating order items for {order.customer_name}: {e}"
                errors.append(message)
                context.report(first_row, "ORDER_ITEMS_INSERT_ERROR", message)
                logger.warning(
                    "order %s (id=%s) was created without items; header left in place",
                    order.order_number,
                    order_id,
                )
                progress.finish(success=False)
                continue

            persisted.append(
                {
                    "order_number": order.order_number,
                    "customer": order.customer_name,
                    "items_count": len(items),
                    "total_amount": order.subtotal,
                }
            )
            progress.finish(success=True)

    return PersistenceOutcome(
        successful_rows=len(persisted),
        failed_rows=len(groups) - len(persisted),
        errors=errors,
        persisted=persisted,
    )


def _require_all(records: Sequence[NormalizedRecord], record_type: type[T]) -> list[T]:
    for record in records:
        if not isinstance(record, record_type):
            raise TypeError(
                f"expected {record_type.__name__}, got {type(record).__name__} (row {record.row_number})"
            )
    return list(records)  # type: ignore[arg-type]


def import_records(
    records: Sequence[NormalizedRecord],
    kind: ImportRecordKind,
    store: DataStore,
    context: ImportContext | None = None,
) -> PersistenceOutcome:
    """Persist accepted records of one kind.

    Raises:
        TypeError: a record does not belong to the given kind
        ValueError: kind is UNKNOWN
    """
    context = context or ImportContext()
    if kind is ImportRecordKind.PRODUCTS:
        return import_products(_require_all(records, NormalizedProductRecord), store, context)
    if kind is ImportRecordKind.INVENTORY:
        return import_inventory(_require_all(records, NormalizedInventoryRecord), store, context)
    if kind is ImportRecordKind.ORDERS:
        return import_orders(_require_all(records, NormalizedOrderLineRecord), store, context)
    raise ValueError(f"cannot import records of kind '{kind.value}'")
