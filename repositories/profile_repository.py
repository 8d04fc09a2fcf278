"""
Seller and customer profile repository (persistence).

Profiles are keyed by lowercase email. Lookups return None when no profile
exists; callers decide whether that is a 404 or an empty result.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Optional

from domain.profiles import CustomerProfile, SellerProfile
from domain.time import parse_utc_datetime
from repositories.record_store import RecordQuery, RecordStore

_SELLERS_TABLE: str = "seller_profiles"
_CUSTOMERS_TABLE: str = "customer_profiles"


def _row_to_seller(row: Mapping[str, Any]) -> SellerProfile:
    return SellerProfile(
        seller_id=str(row["id"]),
        email=str(row["email"]),
        stripe_account_id=row.get("stripe_account_id") or None,
        onboarding_complete=bool(row.get("onboarding_complete", False)),
    )


def _row_to_customer(row: Mapping[str, Any]) -> CustomerProfile:
    return CustomerProfile(
        customer_id=str(row["id"]),
        email=str(row["email"]),
        phone=row.get("phone"),
        full_name=row.get("full_name"),
        marketing_opt_in=bool(row.get("marketing_opt_in", False)),
        created_at=parse_utc_datetime(row.get("created_at")),
        updated_at=parse_utc_datetime(row.get("updated_at")),
    )


def _emails_by_id(store: RecordStore, table: str, ids: Iterable[str]) -> Dict[str, str]:
    unique_ids = sorted({i for i in ids if i})
    if not unique_ids:
        return {}
    rows = store.select(table, RecordQuery(filters={"id": unique_ids}, order_by=None))
    return {str(row["id"]): str(row["email"]) for row in rows}


class SellerRepository:
    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def get(self, seller_id: str) -> Optional[SellerProfile]:
        row = self._store.select_one(_SELLERS_TABLE, {"id": seller_id})
        return _row_to_seller(row) if row else None

    def get_by_email(self, email: str) -> Optional[SellerProfile]:
        row = self._store.select_one(_SELLERS_TABLE, {"email": email})
        return _row_to_seller(row) if row else None

    def get_by_stripe_account(self, stripe_account_id: str) -> Optional[SellerProfile]:
        row = self._store.select_one(_SELLERS_TABLE, {"stripe_account_id": stripe_account_id})
        return _row_to_seller(row) if row else None

    def emails_by_id(self, seller_ids: Iterable[str]) -> Dict[str, str]:
        return _emails_by_id(self._store, _SELLERS_TABLE, seller_ids)

    def upsert_account(self, email: str, stripe_account_id: str) -> SellerProfile:
        row = self._store.upsert(
            _SELLERS_TABLE,
            {"email": email, "stripe_account_id": stripe_account_id},
            on_conflict="email",
        )
        return _row_to_seller(row)

    def set_onboarding_complete(self, seller_id: str, complete: bool) -> None:
        self._store.update(_SELLERS_TABLE, {"onboarding_complete": complete}, {"id": seller_id})


class CustomerRepository:
    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def get_by_email(self, email: str) -> Optional[CustomerProfile]:
        row = self._store.select_one(_CUSTOMERS_TABLE, {"email": email})
        return _row_to_customer(row) if row else None

    def emails_by_id(self, customer_ids: Iterable[str]) -> Dict[str, str]:
        return _emails_by_id(self._store, _CUSTOMERS_TABLE, customer_ids)

    def upsert(
        self,
        *,
        email: str,
        phone: str,
        full_name: Optional[str],
        marketing_opt_in: bool,
    ) -> CustomerProfile:
        row = self._store.upsert(
            _CUSTOMERS_TABLE,
            {
                "email": email,
                "phone": phone,
                "full_name": full_name,
                "marketing_opt_in": marketing_opt_in,
            },
            on_conflict="email",
        )
        return _row_to_customer(row)


__all__ = ["SellerRepository", "CustomerRepository"]
