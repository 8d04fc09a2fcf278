"""
Wishlist and saved-search repository (persistence).

Both tables are owned by a customer; every read and delete is scoped by
customer_id so one customer can never touch another's rows.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional

from domain.saved_search import SavedSearch, SortKey, WishlistItem
from domain.time import parse_utc_datetime
from repositories.record_store import RecordQuery, RecordStore

_WISHLIST_TABLE: str = "wishlist_items"
_SAVED_SEARCHES_TABLE: str = "saved_searches"


def _row_to_item(row: Mapping[str, Any]) -> WishlistItem:
    return WishlistItem(
        item_id=str(row["id"]),
        customer_id=str(row["customer_id"]),
        listing_id=str(row["listing_id"]),
        created_at=parse_utc_datetime(row.get("created_at")),
    )


def _row_to_saved_search(row: Mapping[str, Any]) -> SavedSearch:
    min_price = row.get("min_price_cents")
    max_price = row.get("max_price_cents")
    return SavedSearch(
        saved_search_id=str(row["id"]),
        customer_id=str(row["customer_id"]),
        sort_key=SortKey(str(row.get("sort_key") or SortKey.NEWEST.value)),
        notify_email=bool(row.get("notify_email", True)),
        search_query=row.get("search_query"),
        brand=row.get("brand"),
        size=row.get("size"),
        condition=row.get("condition"),
        min_price_cents=None if min_price is None else int(min_price),
        max_price_cents=None if max_price is None else int(max_price),
        created_at=parse_utc_datetime(row.get("created_at")),
    )


class WishlistRepository:
    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def list_for_customer(self, customer_id: str) -> List[WishlistItem]:
        query = RecordQuery(filters={"customer_id": customer_id}, order_by="created_at", descending=True)
        return [_row_to_item(row) for row in self._store.select(_WISHLIST_TABLE, query)]

    def find(self, customer_id: str, listing_id: str) -> Optional[WishlistItem]:
        row = self._store.select_one(_WISHLIST_TABLE, {"customer_id": customer_id, "listing_id": listing_id})
        return _row_to_item(row) if row else None

    def add(self, customer_id: str, listing_id: str) -> WishlistItem:
        row = self._store.insert(_WISHLIST_TABLE, {"customer_id": customer_id, "listing_id": listing_id})
        return _row_to_item(row)

    def remove(self, customer_id: str, listing_id: str) -> int:
        return self._store.delete(_WISHLIST_TABLE, {"customer_id": customer_id, "listing_id": listing_id})


class SavedSearchRepository:
    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def list_for_customer(self, customer_id: str, *, limit: int, offset: int) -> List[SavedSearch]:
        query = RecordQuery(
            filters={"customer_id": customer_id},
            order_by="created_at",
            descending=True,
            limit=limit,
            offset=offset,
        )
        return [_row_to_saved_search(row) for row in self._store.select(_SAVED_SEARCHES_TABLE, query)]

    def create(self, customer_id: str, fields: Mapping[str, Any]) -> SavedSearch:
        payload = dict(fields)
        payload["customer_id"] = customer_id
        return _row_to_saved_search(self._store.insert(_SAVED_SEARCHES_TABLE, payload))

    def remove(self, customer_id: str, saved_search_id: str) -> int:
        return self._store.delete(_SAVED_SEARCHES_TABLE, {"id": saved_search_id, "customer_id": customer_id})


__all__ = ["WishlistRepository", "SavedSearchRepository"]
