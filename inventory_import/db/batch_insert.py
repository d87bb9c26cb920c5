from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from psycopg2.extras import execute_values

"""Batched INSERT / UPSERT helper on top of psycopg2.extras.execute_values.

Column and table names are trusted identifiers supplied by the store adapter,
never taken from CSV input. Values always go through placeholders.
"""

UNIQUE_VIOLATION = "23505"


class BatchInsertError(Exception):
    def __init__(self, message: str, pgcode: str | None = None) -> None:
        super().__init__(message)
        self.pgcode = pgcode

    @property
    def is_duplicate_key(self) -> bool:
        return self.pgcode == UNIQUE_VIOLATION or "duplicate key" in str(self)


@dataclass(frozen=True)
class BatchMetrics:
    """Timing of a single execute_values call."""
    batch_size: int
    elapsed_seconds: float
    start_time: float
    end_time: float


@dataclass(frozen=True)
class InsertResult:
    inserted_rows: int
    returned_values: list[tuple[Any, ...]] | None = None


def build_insert_sql(
    table: str,
    columns: Sequence[str],
    returning: str | None = None,
    on_conflict: Sequence[str] | None = None,
    update_columns: Sequence[str] | None = None,
) -> str:
    """Build the INSERT statement consumed by execute_values ("VALUES %s").

    on_conflict + update_columns turn the insert into an upsert that updates
    the listed columns of the existing row in place.
    """
    cols_sql = ",".join(f'"{c}"' for c in columns)
    sql = f"INSERT INTO {table} ({cols_sql}) VALUES %s"
    if on_conflict:
        target = ",".join(f'"{c}"' for c in on_conflict)
        if update_columns:
            assignments = ",".join(f'"{c}" = EXCLUDED."{c}"' for c in update_columns)
            sql += f" ON CONFLICT ({target}) DO UPDATE SET {assignments}"
        else:
            sql += f" ON CONFLICT ({target}) DO NOTHING"
    if returning:
        sql += f" RETURNING {returning}"
    return sql


def batch_insert(
    cursor: Any,
    table: str,
    columns: Sequence[str],
    rows: Iterable[Sequence[Any]],
    returning: str | None = None,
    page_size: int = 1000,
    metrics_callback: Callable[[BatchMetrics], None] | None = None,
    on_conflict: Sequence[str] | None = None,
    update_columns: Sequence[str] | None = None,
) -> InsertResult:
    """Perform a batched INSERT (or upsert) using execute_values.

    Parameters
    ----------
    cursor: psycopg2 cursor
    table: target table name
    columns: inserted columns, in the order of each row sequence
    rows: row sequences
    returning: column list for a RETURNING clause (e.g. "id"). When given,
        the returned tuples of all pages are collected and inserted_rows is
        their count, as reported by the database.
    page_size: execute_values page size
    metrics_callback: receives one BatchMetrics per call. Not invoked when
        rows is empty (the function returns early).
    on_conflict / update_columns: see build_insert_sql
    """
    rows_list = list(rows)
    if not rows_list:
        return InsertResult(inserted_rows=0, returned_values=[] if returning else None)

    sql = build_insert_sql(table, columns, returning, on_conflict, update_columns)

    start_time = time.time()
    try:
        fetched = execute_values(
            cursor, sql, rows_list, page_size=page_size, fetch=bool(returning)
        )
    except Exception as e:
        raise BatchInsertError(str(e), getattr(e, "pgcode", None)) from e
    finally:
        end_time = time.time()
        if metrics_callback is not None:
            metrics_callback(
                BatchMetrics(
                    batch_size=len(rows_list),
                    elapsed_seconds=end_time - start_time,
                    start_time=start_time,
                    end_time=end_time,
                )
            )

    if returning:
        returned = list(fetched or [])
        return InsertResult(inserted_rows=len(returned), returned_values=returned)
    return InsertResult(inserted_rows=len(rows_list), returned_values=None)
