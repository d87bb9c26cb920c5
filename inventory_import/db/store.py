from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Protocol

import psycopg2
from psycopg2.extras import Json, RealDictCursor

from .batch_insert import UNIQUE_VIOLATION, BatchInsertError, BatchMetrics, batch_insert

"""Remote store adapter.

DataStore is the interface the import pipeline and the session loader talk
to. PostgresStore implements it on a psycopg2 connection; every method runs
in its own transaction (commit on success, rollback on failure) so a failed
call never leaves the connection in an aborted state and earlier calls stay
committed, which is how the hosted store behaves per request.
"""

__all__ = [
    "DataStore",
    "StoreError",
    "PostgresStore",
]

logger = logging.getLogger(__name__)

PRODUCT_COLUMNS = (
    "sku", "name", "description", "category_id",
    "selling_price", "cost_price", "weight_kg", "status",
)
INVENTORY_COLUMNS = ("product_id", "location_id", "quantity", "reorder_level")
INVENTORY_CONFLICT_KEY = ("product_id", "location_id")
ORDER_COLUMNS = (
    "order_number", "customer_details", "status", "subtotal",
    "total_amount", "notes", "source", "created_by",
)
ORDER_ITEM_COLUMNS = ("order_id", "product_id", "quantity", "unit_price", "total_price", "notes")


class StoreError(Exception):
    """A remote store call failed.

    duplicate_key is True when the failure was a unique constraint violation.
    """
    def __init__(self, message: str, duplicate_key: bool = False) -> None:
        super().__init__(message)
        self.duplicate_key = duplicate_key


class DataStore(Protocol):
    def fetch_categories(self) -> list[dict[str, Any]]: ...

    def fetch_products(self) -> list[dict[str, Any]]: ...

    def fetch_locations(self) -> list[dict[str, Any]]: ...

    def insert_products(self, rows: Sequence[dict[str, Any]]) -> int: ...

    def upsert_inventory(self, rows: Sequence[dict[str, Any]]) -> int: ...

    def insert_order(self, order: dict[str, Any]) -> Any: ...

    def insert_order_items(self, items: Sequence[dict[str, Any]]) -> int: ...

    def fetch_profile(self, user_id: str) -> dict[str, Any] | None: ...

    def fetch_permissions(self, user_id: str, tenant_id: str | None) -> list[dict[str, Any]]: ...


def _error_message(e: BaseException) -> str:
    # psycopg2 のメッセージは DETAIL / CONTEXT 行を含むので先頭行のみ
    text = str(e).strip()
    return text.splitlines()[0] if text else e.__class__.__name__


def _is_duplicate(e: BaseException) -> bool:
    if isinstance(e, BatchInsertError):
        return e.is_duplicate_key
    return getattr(e, "pgcode", None) == UNIQUE_VIOLATION or "duplicate key" in str(e)


def _log_metrics(table: str, m: BatchMetrics) -> None:
    logger.debug("%s rows=%d elapsed_sec=%.4f", table, m.batch_size, m.elapsed_seconds)


class PostgresStore:
    """DataStore on a psycopg2 connection (autocommit off, one txn per call)."""

    def __init__(self, conn: Any, *, page_size: int = 1000) -> None:
        self._conn = conn
        self._page_size = page_size

    def _fetch(self, sql: str, params: Sequence[Any] | None = None) -> list[dict[str, Any]]:
        try:
            with self._conn:
                with self._conn.cursor(cursor_factory=RealDictCursor) as cur:
                    cur.execute(sql, params)
                    return [dict(r) for r in cur.fetchall()]
        except psycopg2.Error as e:
            raise StoreError(_error_message(e)) from e

    def _insert_many(
        self,
        table: str,
        columns: Sequence[str],
        rows: Sequence[dict[str, Any]],
        on_conflict: Sequence[str] | None = None,
        update_columns: Sequence[str] | None = None,
    ) -> int:
        values = [[row.get(c) for c in columns] for row in rows]
        try:
            with self._conn:
                with self._conn.cursor() as cur:
                    result = batch_insert(
                        cur,
                        table=table,
                        columns=columns,
                        rows=values,
                        returning="id",
                        page_size=self._page_size,
                        on_conflict=on_conflict,
                        update_columns=update_columns,
                        metrics_callback=lambda m: _log_metrics(table, m),
                    )
        except (BatchInsertError, psycopg2.Error) as e:
            raise StoreError(_error_message(e), duplicate_key=_is_duplicate(e)) from e
        return result.inserted_rows

    def fetch_categories(self) -> list[dict[str, Any]]:
        return self._fetch("SELECT id, name FROM categories")

    def fetch_products(self) -> list[dict[str, Any]]:
        return self._fetch("SELECT id, sku, selling_price FROM products")

    def fetch_locations(self) -> list[dict[str, Any]]:
        return self._fetch("SELECT id, name FROM locations")

    def insert_products(self, rows: Sequence[dict[str, Any]]) -> int:
        return self._insert_many("products", PRODUCT_COLUMNS, rows)

    def upsert_inventory(self, rows: Sequence[dict[str, Any]]) -> int:
        return self._insert_many(
            "inventory",
            INVENTORY_COLUMNS,
            rows,
            on_conflict=INVENTORY_CONFLICT_KEY,
            update_columns=("quantity", "reorder_level"),
        )

    def insert_order(self, order: dict[str, Any]) -> Any:
        cols_sql = ",".join(f'"{c}"' for c in ORDER_COLUMNS)
        placeholders = ",".join(["%s"] * len(ORDER_COLUMNS))
        values = [
            Json(order.get(c)) if c == "customer_details" else order.get(c)
            for c in ORDER_COLUMNS
        ]
        try:
            with self._conn:
                with self._conn.cursor() as cur:
                    cur.execute(
                        f"INSERT INTO orders ({cols_sql}) VALUES ({placeholders}) RETURNING id",
                        values,
                    )
                    row = cur.fetchone()
        except psycopg2.Error as e:
            raise StoreError(_error_message(e), duplicate_key=_is_duplicate(e)) from e
        if row is None:
            raise StoreError("order insert returned no id")
        return row[0]

    def insert_order_items(self, items: Sequence[dict[str, Any]]) -> int:
        return self._insert_many("order_items", ORDER_ITEM_COLUMNS, items)

    def fetch_profile(self, user_id: str) -> dict[str, Any] | None:
        rows = self._fetch("SELECT id, email, role FROM profiles WHERE id = %s", (user_id,))
        return rows[0] if rows else None

    def fetch_permissions(self, user_id: str, tenant_id: str | None) -> list[dict[str, Any]]:
        return self._fetch(
            "SELECT resource, action, granted FROM user_permissions "
            "WHERE user_id = %s AND tenant_id IS NOT DISTINCT FROM %s",
            (user_id, tenant_id),
        )
