"""Stripe implementation of the billing provider interface."""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from ...config import CONFIG
from ..events import VerifiedEvent
from ..plans import CatalogEntry
from ..stripe_service import StripeBillingService
from ..verifier import verify_event
from .base import BillingProvider, ProviderNotConfiguredError


class StripeBillingProvider(BillingProvider):
    key = "stripe"

    def __init__(self) -> None:
        self._service: Optional[StripeBillingService] = None

    def is_configured(self) -> bool:
        return bool(getattr(CONFIG, "stripe_secret_key", None))

    def _ensure_service(self) -> StripeBillingService:
        if not self.is_configured():
            raise ProviderNotConfiguredError("Stripe billing is not configured")
        if self._service is None:
            self._service = StripeBillingService(
                CONFIG.stripe_secret_key,
                customer_description=getattr(CONFIG, "billing_customer_description", None),
            )
        return self._service

    def find_or_create_customer(self, email: str) -> str:
        return self._ensure_service().find_or_create_customer(email)

    def create_checkout_session(
        self,
        *,
        entry: CatalogEntry,
        success_url: str,
        cancel_url: str,
        customer_email: Optional[str],
    ) -> Tuple[Dict[str, Any], Optional[str]]:
        service = self._ensure_service()
        return service.create_checkout_session(
            entry=entry,
            success_url=success_url,
            cancel_url=cancel_url,
            customer_email=customer_email,
        )

    def get_customer_email(self, customer_id: str) -> Optional[str]:
        return self._ensure_service().retrieve_customer_email(customer_id)

    def get_subscription_interval(self, subscription_id: str) -> Tuple[Optional[str], Optional[int]]:
        return self._ensure_service().retrieve_subscription_interval(subscription_id)

    def get_active_subscription(self, customer_id: str) -> Optional[Dict[str, Any]]:
        return self._ensure_service().get_active_subscription(customer_id)

    def parse_event(self, payload: bytes, signature: Optional[str]) -> VerifiedEvent:
        # Signature checks only need the webhook secret, not the API key.
        return verify_event(
            payload,
            signature,
            getattr(CONFIG, "stripe_webhook_secret", None),
            tolerance=getattr(CONFIG, "stripe_webhook_tolerance", 300),
        )


__all__ = ["StripeBillingProvider"]
