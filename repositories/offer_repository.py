"""
Offer repository (persistence).

Persistence operations for the Offer domain entity. Negotiation rules live in
domain.offer; updates here are compare-and-swap on the status and counter
amount the caller observed, so two concurrent actions on one offer cannot
both win.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional

from domain.money import normalize_currency
from domain.offer import OPEN_STATUSES, Offer, OfferStatus
from domain.time import parse_utc_datetime
from repositories.record_store import RecordQuery, RecordStore

# Keep this aligned with your database schema.
_OFFERS_TABLE: str = "offers"


def _optional_int(value: Any) -> Optional[int]:
    return None if value is None else int(value)


def _row_to_offer(row: Mapping[str, Any]) -> Offer:
    """Convert a stored row into an Offer."""

    return Offer(
        offer_id=str(row["id"]),
        listing_id=str(row["listing_id"]),
        seller_id=str(row["seller_id"]),
        customer_id=str(row["customer_id"]),
        currency=normalize_currency(row.get("currency")),
        amount_cents=int(row["amount_cents"]),
        status=OfferStatus(str(row["status"])),
        counter_amount_cents=_optional_int(row.get("counter_amount_cents")),
        final_amount_cents=_optional_int(row.get("final_amount_cents")),
        buyer_message=row.get("buyer_message"),
        seller_message=row.get("seller_message"),
        created_at=parse_utc_datetime(row.get("created_at")),
        updated_at=parse_utc_datetime(row.get("updated_at")),
        resolved_at=parse_utc_datetime(row.get("resolved_at")),
    )


class OfferRepository:
    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def get(self, offer_id: str) -> Optional[Offer]:
        row = self._store.select_one(_OFFERS_TABLE, {"id": offer_id})
        return _row_to_offer(row) if row else None

    def find_open_offer(self, listing_id: str, customer_id: str) -> Optional[Offer]:
        row = self._store.select_one(
            _OFFERS_TABLE,
            {"listing_id": listing_id, "customer_id": customer_id, "status": tuple(OPEN_STATUSES)},
        )
        return _row_to_offer(row) if row else None

    def search(self, *, filters: Mapping[str, Any], limit: int, offset: int) -> List[Offer]:
        query = RecordQuery(filters=filters, order_by="created_at", descending=True, limit=limit, offset=offset)
        return [_row_to_offer(row) for row in self._store.select(_OFFERS_TABLE, query)]

    def create(
        self,
        *,
        listing_id: str,
        seller_id: str,
        customer_id: str,
        currency: str,
        amount_cents: int,
        buyer_message: Optional[str],
    ) -> Offer:
        row = self._store.insert(
            _OFFERS_TABLE,
            {
                "listing_id": listing_id,
                "seller_id": seller_id,
                "customer_id": customer_id,
                "currency": currency,
                "amount_cents": amount_cents,
                "counter_amount_cents": None,
                "final_amount_cents": None,
                "status": OfferStatus.PENDING,
                "buyer_message": buyer_message,
                "seller_message": None,
                "resolved_at": None,
            },
        )
        return _row_to_offer(row)

    def apply_changes(self, offer: Offer, changes: Mapping[str, Any]) -> Optional[Offer]:
        """
        Write changes planned from `offer` if its status and counter amount
        are unchanged, so an accept cannot land on a newer counter.

        Returns None when a concurrent action already moved the offer.
        """

        row = self._store.compare_and_swap(
            _OFFERS_TABLE,
            offer.offer_id,
            {"status": offer.status, "counter_amount_cents": offer.counter_amount_cents},
            changes,
        )
        return _row_to_offer(row) if row else None


__all__ = ["OfferRepository"]
