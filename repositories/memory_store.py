"""
In-memory RecordStore.

Behaves like the hosted store for everything the repositories rely on:
generated ids and timestamps, equality/membership/null filters, substring
search, ordering, pagination, unique columns, and an atomic conditional
update. Used by the test-suite and for running the API locally without a
database (STORE_BACKEND=memory).
"""

from __future__ import annotations

import copy
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple
from uuid import uuid4

from repositories.record_store import (
    DuplicateRecordError,
    Filters,
    RecordQuery,
    RecordStore,
    Row,
    plain_row,
    plain_value,
)


def _matches(row: Mapping[str, Any], filters: Filters) -> bool:
    for column, expected in filters.items():
        actual = row.get(column)
        if expected is None:
            if actual is not None:
                return False
        elif isinstance(expected, (tuple, list, set, frozenset)):
            if actual not in plain_value(expected):
                return False
        elif actual != plain_value(expected):
            return False
    return True


def _sort_key(value: Any) -> Tuple[int, Any]:
    # Nulls sort last in ascending order, like PostgreSQL.
    return (1, "") if value is None else (0, value)


class InMemoryRecordStore(RecordStore):
    """
    Thread-safe dict-of-tables store.

    unique_columns maps a table name to columns that must be unique across
    its rows (e.g. {"seller_profiles": ("email",)}).
    """

    def __init__(self, unique_columns: Optional[Mapping[str, Tuple[str, ...]]] = None) -> None:
        self._tables: Dict[str, Dict[str, Row]] = {}
        self._unique_columns = dict(unique_columns or {})
        self._lock = threading.Lock()

    def _table(self, name: str) -> Dict[str, Row]:
        return self._tables.setdefault(name, {})

    def _check_unique(self, table: str, row: Mapping[str, Any], ignore_id: Optional[str] = None) -> None:
        for column in self._unique_columns.get(table, ()):
            value = row.get(column)
            if value is None:
                continue
            for other in self._table(table).values():
                if other["id"] != ignore_id and other.get(column) == value:
                    raise DuplicateRecordError(f"Duplicate record in {table}: {column}={value}")

    def select(self, table: str, query: Optional[RecordQuery] = None) -> List[Row]:
        query = query or RecordQuery()
        with self._lock:
            rows = [row for row in self._table(table).values() if _matches(row, query.filters)]

            if query.search_term and query.search_columns:
                needle = query.search_term.lower()
                rows = [
                    row for row in rows
                    if any(needle in str(row.get(col) or "").lower() for col in query.search_columns)
                ]

            if query.order_by:
                rows.sort(key=lambda r: _sort_key(r.get(query.order_by)), reverse=query.descending)

            if query.limit is not None:
                rows = rows[query.offset:query.offset + query.limit]

            return copy.deepcopy(rows)

    def insert(self, table: str, fields: Mapping[str, Any]) -> Row:
        now = datetime.now(timezone.utc).isoformat()
        row: Row = {"id": str(uuid4()), "created_at": now, "updated_at": now}
        row.update(plain_row(fields))
        with self._lock:
            self._check_unique(table, row)
            self._table(table)[row["id"]] = row
            return copy.deepcopy(row)

    def upsert(self, table: str, fields: Mapping[str, Any], *, on_conflict: str) -> Row:
        values = plain_row(fields)
        with self._lock:
            existing = next(
                (row for row in self._table(table).values() if row.get(on_conflict) == values.get(on_conflict)),
                None,
            )
            if existing is not None:
                existing.update(values)
                existing["updated_at"] = datetime.now(timezone.utc).isoformat()
                return copy.deepcopy(existing)

        return self.insert(table, values)

    def update(self, table: str, changes: Mapping[str, Any], filters: Filters) -> List[Row]:
        if not filters:
            raise ValueError("Refusing to update without filters")
        values = plain_row(changes)
        now = datetime.now(timezone.utc).isoformat()
        with self._lock:
            affected = [row for row in self._table(table).values() if _matches(row, filters)]
            for row in affected:
                self._check_unique(table, {**row, **values}, ignore_id=row["id"])
            for row in affected:
                row.update(values)
                row["updated_at"] = now
            return copy.deepcopy(affected)

    def delete(self, table: str, filters: Filters) -> int:
        if not filters:
            raise ValueError("Refusing to delete without filters")
        with self._lock:
            rows = self._table(table)
            doomed = [row_id for row_id, row in rows.items() if _matches(row, filters)]
            for row_id in doomed:
                del rows[row_id]
            return len(doomed)

    def seed(self, table: str, row: Mapping[str, Any]) -> Row:
        """Insert a row verbatim (including id and timestamps)."""

        stored = plain_row(row)
        stored.setdefault("id", str(uuid4()))
        stored.setdefault("created_at", datetime.now(timezone.utc).isoformat())
        with self._lock:
            self._table(table)[stored["id"]] = stored
            return copy.deepcopy(stored)

    def get(self, table: str, record_id: str) -> Optional[Row]:
        with self._lock:
            row = self._table(table).get(record_id)
            return copy.deepcopy(row) if row is not None else None


__all__ = ["InMemoryRecordStore"]
