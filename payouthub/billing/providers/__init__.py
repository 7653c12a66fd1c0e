"""Billing provider lookup."""

from __future__ import annotations

from typing import Dict, Optional

from ...config import CONFIG
from .base import BillingProvider, ProviderNotConfiguredError
from .stripe_provider import StripeBillingProvider

# One long-lived instance per key; providers read CONFIG lazily.
_PROVIDERS: Dict[str, BillingProvider] = {}


def get_billing_provider(provider_key: Optional[str] = None) -> BillingProvider:
    key = (provider_key or getattr(CONFIG, "billing_default_provider", "stripe")).strip().lower()
    if key != StripeBillingProvider.key:
        raise KeyError(f"Unknown billing provider: {key}")
    if key not in _PROVIDERS:
        _PROVIDERS[key] = StripeBillingProvider()
    return _PROVIDERS[key]


__all__ = [
    "BillingProvider",
    "ProviderNotConfiguredError",
    "StripeBillingProvider",
    "get_billing_provider",
]
