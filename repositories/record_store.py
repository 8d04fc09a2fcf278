"""
Record store abstraction (persistence boundary).

Every repository talks to the hosted database through a RecordStore: generic
per-table CRUD plus one concurrency primitive, compare_and_swap(). There are
no transactions; the conditional update is the only guard against concurrent
writers.

Filters are plain mappings of column -> expected value:
- a scalar means "column = value"
- a tuple, list, set or frozenset means "column IN (...)"
- None means "column IS NULL"

"No matching row" is always an empty result or None, never an exception.
Store failures raise UpstreamError; unique-constraint violations raise
DuplicateRecordError.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from postgrest.exceptions import APIError
from supabase import Client  # type: ignore[import-not-found]

from domain.errors import ConflictError, UpstreamError

logger = logging.getLogger(__name__)

Row = Dict[str, Any]
Filters = Mapping[str, Any]

_MULTI_VALUE_TYPES = (tuple, list, set, frozenset)

# PostgreSQL unique_violation.
_UNIQUE_VIOLATION = "23505"


class DuplicateRecordError(ConflictError):
    """Insert or upsert collided with a unique constraint."""


@dataclass(frozen=True, slots=True)
class RecordQuery:
    """
    Read query for RecordStore.select().

    search_term is matched case-insensitively as a substring against any of
    search_columns.
    """

    filters: Filters = field(default_factory=dict)
    search_term: Optional[str] = None
    search_columns: Tuple[str, ...] = ()
    order_by: Optional[str] = "created_at"
    descending: bool = True
    limit: Optional[int] = None
    offset: int = 0


def plain_value(value: Any) -> Any:
    """Enum members are stored by value."""

    if isinstance(value, Enum):
        return value.value
    if isinstance(value, _MULTI_VALUE_TYPES):
        return [plain_value(v) for v in value]
    return value


def plain_row(fields: Mapping[str, Any]) -> Row:
    return {key: plain_value(value) for key, value in fields.items()}


class RecordStore(ABC):
    """Generic table access used by all repositories."""

    @abstractmethod
    def select(self, table: str, query: Optional[RecordQuery] = None) -> List[Row]:
        ...

    @abstractmethod
    def insert(self, table: str, fields: Mapping[str, Any]) -> Row:
        ...

    @abstractmethod
    def upsert(self, table: str, fields: Mapping[str, Any], *, on_conflict: str) -> Row:
        ...

    @abstractmethod
    def update(self, table: str, changes: Mapping[str, Any], filters: Filters) -> List[Row]:
        """Apply changes to every row matching filters; returns the rows affected."""

    @abstractmethod
    def delete(self, table: str, filters: Filters) -> int:
        ...

    def select_one(self, table: str, filters: Filters) -> Optional[Row]:
        rows = self.select(table, RecordQuery(filters=filters, order_by=None, limit=1))
        return rows[0] if rows else None

    def compare_and_swap(
        self,
        table: str,
        record_id: str,
        expected: Filters,
        changes: Mapping[str, Any],
    ) -> Optional[Row]:
        """
        Update row record_id only if its current values match expected.

        Returns the updated row, or None when the row is missing or no longer
        in the expected state (zero rows affected). A lost race is therefore
        a normal return value, not an exception.

        Example:
            row = store.compare_and_swap(
                "listings", listing_id, {"status": "active"}, {"status": "reserved"}
            )
            if row is None:
                ...  # someone else reserved it first
        """

        filters: Dict[str, Any] = dict(expected)
        filters["id"] = record_id
        rows = self.update(table, changes, filters)
        return rows[0] if rows else None


class SupabaseRecordStore(RecordStore):
    """RecordStore backed by the Supabase PostgREST client."""

    def __init__(self, client: Client) -> None:
        self._client = client

    @staticmethod
    def _apply_filters(builder: Any, filters: Filters) -> Any:
        for column, value in filters.items():
            if value is None:
                builder = builder.is_(column, "null")
            elif isinstance(value, _MULTI_VALUE_TYPES):
                builder = builder.in_(column, plain_value(value))
            else:
                builder = builder.eq(column, plain_value(value))
        return builder

    @staticmethod
    def _execute(builder: Any, action: str, table: str) -> List[Row]:
        try:
            response = builder.execute()
        except APIError as e:
            if getattr(e, "code", None) == _UNIQUE_VIOLATION:
                raise DuplicateRecordError(f"Duplicate record in {table}: {e.message}") from e
            logger.error("Store %s on %s failed: %s", action, table, e.message)
            raise UpstreamError(f"Failed to {action} {table}: {e.message}") from e

        error = getattr(response, "error", None)
        if error:
            raise UpstreamError(f"Failed to {action} {table}: {error}")

        return list(getattr(response, "data", None) or [])

    def select(self, table: str, query: Optional[RecordQuery] = None) -> List[Row]:
        query = query or RecordQuery()
        builder = self._apply_filters(self._client.table(table).select("*"), query.filters)

        if query.search_term and query.search_columns:
            term = query.search_term
            builder = builder.or_(",".join(f"{col}.ilike.%{term}%" for col in query.search_columns))
        if query.order_by:
            builder = builder.order(query.order_by, desc=query.descending)
        if query.limit is not None:
            builder = builder.range(query.offset, query.offset + query.limit - 1)

        return self._execute(builder, "select", table)

    def insert(self, table: str, fields: Mapping[str, Any]) -> Row:
        rows = self._execute(self._client.table(table).insert(plain_row(fields)), "insert", table)
        if not rows:
            raise UpstreamError(f"Failed to insert {table}: no row returned")
        return rows[0]

    def upsert(self, table: str, fields: Mapping[str, Any], *, on_conflict: str) -> Row:
        builder = self._client.table(table).upsert(plain_row(fields), on_conflict=on_conflict)
        rows = self._execute(builder, "upsert", table)
        if not rows:
            raise UpstreamError(f"Failed to upsert {table}: no row returned")
        return rows[0]

    def update(self, table: str, changes: Mapping[str, Any], filters: Filters) -> List[Row]:
        if not filters:
            raise ValueError("Refusing to update without filters")
        builder = self._apply_filters(self._client.table(table).update(plain_row(changes)), filters)
        return self._execute(builder, "update", table)

    def delete(self, table: str, filters: Filters) -> int:
        if not filters:
            raise ValueError("Refusing to delete without filters")
        builder = self._apply_filters(self._client.table(table).delete(), filters)
        return len(self._execute(builder, "delete", table))


__all__ = [
    "Row",
    "Filters",
    "RecordQuery",
    "RecordStore",
    "SupabaseRecordStore",
    "DuplicateRecordError",
    "plain_row",
]
