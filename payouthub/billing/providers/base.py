"""Provider abstraction for handling billing operations."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

from ...exceptions import ProviderNotConfiguredError
from ..events import VerifiedEvent
from ..plans import CatalogEntry


class BillingProvider(ABC):
    """Interface for payment providers the reconciler and API talk to."""

    key: str

    @abstractmethod
    def is_configured(self) -> bool:
        """Return True when the provider has the secrets it needs."""

    @abstractmethod
    def find_or_create_customer(self, email: str) -> str:
        """Return the provider customer id for ``email``."""

    @abstractmethod
    def create_checkout_session(
        self,
        *,
        entry: CatalogEntry,
        success_url: str,
        cancel_url: str,
        customer_email: Optional[str],
    ) -> Tuple[Dict[str, Any], Optional[str]]:
        """Create a hosted purchase session for a catalog entry."""

    @abstractmethod
    def get_customer_email(self, customer_id: str) -> Optional[str]:
        """Resolve a provider customer id to its email address."""

    @abstractmethod
    def get_subscription_interval(self, subscription_id: str) -> Tuple[Optional[str], Optional[int]]:
        """Return the billing interval unit and count of a subscription."""

    @abstractmethod
    def get_active_subscription(self, customer_id: str) -> Optional[Dict[str, Any]]:
        """Summarise the customer's active subscription, if any."""

    @abstractmethod
    def parse_event(self, payload: bytes, signature: Optional[str]) -> VerifiedEvent:
        """Validate and decode webhook payloads for the provider."""


__all__ = ["BillingProvider", "ProviderNotConfiguredError"]
