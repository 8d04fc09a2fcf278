"""
Listing repository (persistence).

Persistence operations for the Listing domain entity. Lifecycle rules live in
domain.listing; this module only performs the writes, each one conditioned on
the state the caller observed (compare-and-swap), and normalizes stored media
columns into the canonical tuple type.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from domain.listing import (
    Listing,
    ListingStatus,
    ModerationStatus,
    SELLABLE_STATUSES,
    release_changes,
    reservation_changes,
    sold_changes,
)
from domain.media import normalize_media_urls
from domain.money import normalize_currency
from domain.time import parse_utc_datetime
from repositories.record_store import RecordQuery, RecordStore

# Keep this aligned with your database schema.
_LISTINGS_TABLE: str = "listings"


def _row_to_listing(row: Mapping[str, Any]) -> Listing:
    """Convert a stored row into a Listing."""

    return Listing(
        listing_id=str(row["id"]),
        seller_id=str(row["seller_id"]),
        title=str(row.get("title") or ""),
        brand=str(row.get("brand") or ""),
        price_cents=int(row["price_cents"]),
        currency=normalize_currency(row.get("currency")),
        status=ListingStatus(str(row.get("status") or ListingStatus.ACTIVE.value)),
        moderation_status=ModerationStatus(str(row.get("moderation_status") or ModerationStatus.PENDING.value)),
        description=row.get("description"),
        size=row.get("size"),
        condition=row.get("condition"),
        is_new=bool(row.get("is_new", False)),
        image_url=row.get("image_url"),
        video_url=row.get("video_url"),
        media_urls=normalize_media_urls(row.get("media_urls")),
        approved_media_urls=normalize_media_urls(row.get("approved_media_urls")),
        moderation_reason=row.get("moderation_reason"),
        moderated_at=parse_utc_datetime(row.get("moderated_at")),
        checkout_session_id=row.get("checkout_session_id"),
        reserved_at=parse_utc_datetime(row.get("reserved_at")),
        sold_at=parse_utc_datetime(row.get("sold_at")),
        created_at=parse_utc_datetime(row.get("created_at")),
    )


def _releasable_sessions(session_id: Optional[str]) -> Tuple[Optional[str], ...]:
    return (session_id, None) if session_id else (None,)


def _session_target(session_id: str, listing_id: Optional[str]) -> Dict[str, Any]:
    """Target by listing id when known, else by the attached session id."""

    if listing_id:
        return {"id": listing_id}
    return {"checkout_session_id": session_id}


class ListingRepository:
    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def get(self, listing_id: str) -> Optional[Listing]:
        row = self._store.select_one(_LISTINGS_TABLE, {"id": listing_id})
        return _row_to_listing(row) if row else None

    def get_many(self, listing_ids: Iterable[str]) -> Dict[str, Listing]:
        ids = sorted({lid for lid in listing_ids if lid})
        if not ids:
            return {}
        rows = self._store.select(_LISTINGS_TABLE, RecordQuery(filters={"id": ids}, order_by=None))
        return {str(row["id"]): _row_to_listing(row) for row in rows}

    def search(
        self,
        *,
        filters: Mapping[str, Any],
        search_term: Optional[str] = None,
        limit: int,
        offset: int,
    ) -> List[Listing]:
        query = RecordQuery(
            filters=filters,
            search_term=search_term or None,
            search_columns=("title", "brand"),
            order_by="created_at",
            descending=True,
            limit=limit,
            offset=offset,
        )
        return [_row_to_listing(row) for row in self._store.select(_LISTINGS_TABLE, query)]

    def create(self, fields: Mapping[str, Any]) -> Listing:
        return _row_to_listing(self._store.insert(_LISTINGS_TABLE, fields))

    def apply_changes(self, listing: Listing, changes: Mapping[str, Any]) -> Optional[Listing]:
        """
        Write changes planned from `listing`, only if its status and
        moderation status are still what the plan saw.

        Returns None when another writer got there first.
        """

        row = self._store.compare_and_swap(
            _LISTINGS_TABLE,
            listing.listing_id,
            {"status": listing.status, "moderation_status": listing.moderation_status},
            changes,
        )
        return _row_to_listing(row) if row else None

    def reserve(self, listing_id: str, now: datetime) -> Optional[Listing]:
        """ACTIVE -> RESERVED. None means the listing was no longer ACTIVE."""

        row = self._store.compare_and_swap(
            _LISTINGS_TABLE, listing_id, {"status": ListingStatus.ACTIVE}, reservation_changes(now)
        )
        return _row_to_listing(row) if row else None

    def attach_checkout_session(self, listing_id: str, session_id: str) -> Optional[Listing]:
        """Record the payment session on a listing that is still RESERVED with no session."""

        row = self._store.compare_and_swap(
            _LISTINGS_TABLE,
            listing_id,
            {"status": ListingStatus.RESERVED, "checkout_session_id": None},
            {"status": ListingStatus.RESERVED, "checkout_session_id": session_id},
        )
        return _row_to_listing(row) if row else None

    def release_reservation(self, listing_id: str, *, session_id: Optional[str] = None) -> Optional[Listing]:
        """
        RESERVED -> ACTIVE, unless another checkout session is attached.

        With session_id the listing may carry that session or none; without
        it, no session may be attached.
        """

        for attached in _releasable_sessions(session_id):
            row = self._store.compare_and_swap(
                _LISTINGS_TABLE,
                listing_id,
                {"status": ListingStatus.RESERVED, "checkout_session_id": attached},
                release_changes(),
            )
            if row:
                return _row_to_listing(row)
        return None

    def mark_sold_by_session(self, session_id: str, now: datetime, listing_id: Optional[str] = None) -> List[Listing]:
        """ACTIVE/RESERVED -> SOLD. Already-sold listings are left untouched."""

        filters = _session_target(session_id, listing_id)
        filters["status"] = tuple(SELLABLE_STATUSES)
        rows = self._store.update(_LISTINGS_TABLE, sold_changes(session_id, now), filters)
        return [_row_to_listing(row) for row in rows]

    def release_by_session(self, session_id: str, listing_id: Optional[str] = None) -> List[Listing]:
        """
        Release reservations held by an expired or failed session.

        A listing already reserved under a different session is left alone,
        so a late redelivery cannot free a newer checkout's reservation.
        """

        if not listing_id:
            filters: Dict[str, Any] = {"checkout_session_id": session_id, "status": ListingStatus.RESERVED}
            rows = self._store.update(_LISTINGS_TABLE, release_changes(), filters)
            return [_row_to_listing(row) for row in rows]

        released = self.release_reservation(listing_id, session_id=session_id or None)
        return [released] if released else []

    def list_reserved_without_session(self) -> List[Listing]:
        query = RecordQuery(
            filters={"status": ListingStatus.RESERVED, "checkout_session_id": None},
            order_by="reserved_at",
            descending=False,
        )
        return [_row_to_listing(row) for row in self._store.select(_LISTINGS_TABLE, query)]


__all__ = ["ListingRepository"]
