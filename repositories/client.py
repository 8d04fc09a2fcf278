"""
Record store construction.

This module contains *only* the database connection setup. The entry point
(api.main or a script) calls build_record_store() once and passes the result
to the repositories; nothing here is a module-level singleton.

Environment variables required for the Supabase backend:
- SUPABASE_URL: Your Supabase project URL
- SUPABASE_SERVICE_ROLE_KEY (or SUPABASE_KEY): server-side key only
"""

from __future__ import annotations

# The dependency is `supabase` (supabase-py). If your editor can't resolve it,
# install it in your environment: `pip install supabase`.
from supabase import Client, create_client  # type: ignore[import-not-found]

from repositories.memory_store import InMemoryRecordStore
from repositories.record_store import RecordStore, SupabaseRecordStore
from services.settings import Settings

# Columns that are unique in the hosted schema.
UNIQUE_COLUMNS = {
    "seller_profiles": ("email",),
    "customer_profiles": ("email",),
}

# Partial unique index in the hosted schema (not modelled by the memory store):
#   create unique index offers_one_open_per_customer on offers (listing_id, customer_id)
#     where status in ('pending', 'countered');
# The offer service turns a collision on it into the same 409 as its own check.


def create_supabase_client(settings: Settings) -> Client:
    """
    Official Supabase Python client for the configured project.

    Raises:
        RuntimeError: SUPABASE_URL or the service key is missing
    """

    url = settings.require("supabase_url", "SUPABASE_URL")
    key = settings.require("supabase_key", "SUPABASE_SERVICE_ROLE_KEY")
    return create_client(url, key)


def build_record_store(settings: Settings) -> RecordStore:
    if settings.store_backend == "memory":
        return InMemoryRecordStore(unique_columns=UNIQUE_COLUMNS)
    return SupabaseRecordStore(create_supabase_client(settings))


__all__ = ["create_supabase_client", "build_record_store", "UNIQUE_COLUMNS"]
