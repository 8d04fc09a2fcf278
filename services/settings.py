"""
Runtime configuration.

All settings come from environment variables, optionally loaded from a .env
file in the project root. Credentials are only required by the collaborator
that uses them (see require()), so the API can start and serve read-only
endpoints with a partial configuration.

Environment variables:
- SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY (or SUPABASE_KEY): hosted database
- STRIPE_SECRET_KEY: Stripe API key (server-side)
- STRIPE_WEBHOOK_SECRET: signing secret for /stripe-webhook
- PUBLIC_ORIGIN: public site origin used for redirect URLs
- PLATFORM_FEE_PERCENT: application fee percent (default 15, clamped to 1..30)
- PLATFORM_NAME: tag stored in checkout metadata (default archive-sur-mer)
- MARKETPLACE_ADMIN_TOKEN (or ADMIN_TOKEN): shared moderation token
- CORS_ALLOW_ORIGIN: allowed browser origin (default *)
- RESERVATION_GRACE_MINUTES: age after which a reservation without a
  checkout session is released by the sweep (default 15)
- STORE_BACKEND: "supabase" (default) or "memory"
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from domain.money import clamp_fee_percent
from domain.validation import normalize_origin, parse_int

DEFAULT_PLATFORM_NAME: str = "archive-sur-mer"
DEFAULT_GRACE_MINUTES: int = 15


def _env(name: str, *fallbacks: str) -> Optional[str]:
    for key in (name, *fallbacks):
        value = os.getenv(key)
        if value:
            return value
    return None


@dataclass(frozen=True, slots=True)
class Settings:
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    public_origin: Optional[str] = None
    platform_fee_percent: float = 15.0
    platform_name: str = DEFAULT_PLATFORM_NAME
    admin_token: Optional[str] = None
    cors_allow_origin: str = "*"
    reservation_grace_minutes: int = DEFAULT_GRACE_MINUTES
    store_backend: str = "supabase"

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "Settings":
        """
        Read settings from the environment.

        Values already present in the environment win over the .env file.
        """

        env_path = env_file or Path(__file__).parent.parent / ".env"
        load_dotenv(dotenv_path=env_path)

        return cls(
            supabase_url=_env("SUPABASE_URL"),
            supabase_key=_env("SUPABASE_SERVICE_ROLE_KEY", "SUPABASE_KEY"),
            stripe_secret_key=_env("STRIPE_SECRET_KEY"),
            stripe_webhook_secret=_env("STRIPE_WEBHOOK_SECRET"),
            public_origin=normalize_origin(_env("PUBLIC_ORIGIN")),
            platform_fee_percent=clamp_fee_percent(_env("PLATFORM_FEE_PERCENT")),
            platform_name=_env("PLATFORM_NAME") or DEFAULT_PLATFORM_NAME,
            admin_token=_env("MARKETPLACE_ADMIN_TOKEN", "ADMIN_TOKEN"),
            cors_allow_origin=_env("CORS_ALLOW_ORIGIN") or "*",
            reservation_grace_minutes=max(
                1, parse_int(_env("RESERVATION_GRACE_MINUTES"), DEFAULT_GRACE_MINUTES)
            ),
            store_backend=(_env("STORE_BACKEND") or "supabase").strip().lower(),
        )

    def require(self, attribute: str, env_name: str) -> str:
        """
        Return a configured value or fail loudly naming the variable.

        Raises:
            RuntimeError: the value is not configured
        """

        value = getattr(self, attribute)
        if not value:
            raise RuntimeError(f"Missing environment variable: {env_name}.")
        return value


__all__ = ["Settings"]
