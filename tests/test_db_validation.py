"""
Database validation tests.

This module tests the Supabase connection and verifies that:
1. Connection credentials work
2. Required tables exist
3. The conditional update used for reservations behaves as expected

Run this first to validate database setup before running the API against
Supabase. Skipped when SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY are unset.
"""

from __future__ import annotations

import os
from pathlib import Path
from uuid import uuid4

import pytest
from dotenv import load_dotenv

# Load .env file before anything else
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

pytestmark = pytest.mark.skipif(
    not os.getenv("SUPABASE_URL") or not (os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_KEY")),
    reason="Supabase credentials not configured",
)

REQUIRED_TABLES = (
    "listings",
    "offers",
    "seller_profiles",
    "customer_profiles",
    "wishlist_items",
    "saved_searches",
)


@pytest.fixture(scope="module")
def supabase_store():
    from repositories.record_store import SupabaseRecordStore
    from repositories.client import create_supabase_client
    from services.settings import Settings

    return SupabaseRecordStore(create_supabase_client(Settings.from_env()))


def test_supabase_url_format() -> None:
    """Verify SUPABASE_URL looks like a project URL."""

    assert os.getenv("SUPABASE_URL", "").startswith("https://"), "SUPABASE_URL should start with https://"


@pytest.mark.parametrize("table", REQUIRED_TABLES)
def test_table_exists(supabase_store, table) -> None:
    """Verify each table the repositories use exists and can be queried."""

    from repositories.record_store import RecordQuery

    try:
        supabase_store.select(table, RecordQuery(order_by=None, limit=1))
    except Exception as e:
        pytest.fail(
            f"'{table}' table does not exist or cannot be accessed: {e}\n"
            f"You need to create this table in Supabase."
        )


def test_listing_reservation_compare_and_swap(supabase_store) -> None:
    """Reserve a throwaway listing twice; only the first conditional update applies."""

    seller = supabase_store.upsert(
        "seller_profiles",
        {"email": f"db-check-{uuid4().hex[:8]}@example.com", "stripe_account_id": None},
        on_conflict="email",
    )
    listing = None
    try:
        listing = supabase_store.insert(
            "listings",
            {
                "seller_id": seller["id"],
                "title": "DB validation",
                "brand": "Test",
                "price_cents": 100,
                "currency": "eur",
                "status": "active",
                "moderation_status": "pending",
            },
        )

        first = supabase_store.compare_and_swap("listings", listing["id"], {"status": "active"}, {"status": "reserved"})
        second = supabase_store.compare_and_swap("listings", listing["id"], {"status": "active"}, {"status": "reserved"})

        assert first is not None and first["status"] == "reserved"
        assert second is None
    finally:
        if listing is not None:
            supabase_store.delete("listings", {"id": listing["id"]})
        supabase_store.delete("seller_profiles", {"id": seller["id"]})
