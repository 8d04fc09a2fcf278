"""
Domain: error taxonomy.

Every expected failure of a marketplace operation is one of these exceptions.
Each carries the HTTP status the API layer responds with; services and domain
code never build HTTP responses themselves.
"""

from __future__ import annotations


class MarketplaceError(Exception):
    """Base class for expected, user-facing failures."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(MarketplaceError):
    """Malformed or missing input."""

    status_code = 400


class PreconditionError(MarketplaceError):
    """A required related record is incomplete (e.g. seller has no payout account)."""

    status_code = 400


class WebhookSignatureError(MarketplaceError):
    """Webhook payload could not be authenticated against the shared secret."""

    status_code = 400


class AuthenticationError(MarketplaceError):
    """Admin token missing or wrong."""

    status_code = 401


class AuthorizationError(MarketplaceError):
    """The acting email does not own the entity."""

    status_code = 403


class NotFoundError(MarketplaceError):
    status_code = 404


class ConflictError(MarketplaceError):
    """A state guard failed: not purchasable, offer terminal, reservation race lost."""

    status_code = 409


class UpstreamError(MarketplaceError):
    """The payment provider or the record store failed."""

    status_code = 500


class ConfigurationError(MarketplaceError):
    """Required server configuration is missing."""

    status_code = 500


__all__ = [
    "MarketplaceError",
    "ValidationError",
    "PreconditionError",
    "WebhookSignatureError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "UpstreamError",
    "ConfigurationError",
]
