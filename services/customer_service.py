"""
Customer accounts.

Signup is an upsert keyed by email, so submitting the form twice updates the
existing profile instead of failing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from domain.errors import NotFoundError, ValidationError
from domain.profiles import CustomerProfile
from domain.validation import is_valid_email, is_valid_phone, normalize_phone, sanitize_email, sanitize_text
from repositories.profile_repository import CustomerRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SignupResult:
    customer: CustomerProfile
    created: bool

    def to_public_dict(self) -> dict:
        return {
            "created": self.created,
            "customer": self.customer.to_public_dict(),
            "message": "Customer account created." if self.created else "Customer profile updated.",
        }


def resolve_customer(customers: CustomerRepository, email: Any) -> Optional[CustomerProfile]:
    """
    Look up a customer by a request-supplied email.

    Raises:
        ValidationError: email is malformed
    """

    customer_email = sanitize_email(email)
    if not is_valid_email(customer_email):
        raise ValidationError("Valid customer_email is required.")
    return customers.get_by_email(customer_email)


def require_customer(customers: CustomerRepository, email: Any) -> CustomerProfile:
    customer = resolve_customer(customers, email)
    if customer is None:
        raise NotFoundError("Customer account not found. Create your customer account first.")
    return customer


class CustomerService:
    def __init__(self, customers: CustomerRepository) -> None:
        self._customers = customers

    def signup(
        self,
        *,
        email: Optional[str],
        phone: Optional[str],
        full_name: Optional[str] = None,
        marketing_opt_in: bool = False,
    ) -> SignupResult:
        """
        Create or update a customer profile.

        Raises:
            ValidationError: invalid email, or a phone number that is not
                '+' followed by 7-18 digits after normalization
        """

        customer_email = sanitize_email(email)
        normalized_phone = normalize_phone(phone)

        if not is_valid_email(customer_email):
            raise ValidationError("Please provide a valid email address.")
        if not is_valid_phone(normalized_phone):
            raise ValidationError("Please provide a valid phone number in international format.")

        existing = self._customers.get_by_email(customer_email)
        customer = self._customers.upsert(
            email=customer_email,
            phone=normalized_phone,
            full_name=sanitize_text(full_name, 120) or None,
            marketing_opt_in=bool(marketing_opt_in),
        )
        created = existing is None
        logger.info("Customer %s %s", customer.customer_id, "created" if created else "updated")
        return SignupResult(customer=customer, created=created)


__all__ = ["CustomerService", "SignupResult", "resolve_customer", "require_customer"]
