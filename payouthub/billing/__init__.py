"""Billing module: Stripe integration, plan resolution and webhook reconciliation."""

from .events import CheckoutCompleted, InvoicePaid, OtherEvent, SubscriptionCanceled, VerifiedEvent, decode_event
from .plans import CatalogEntry, PlanInterval, ResolvedPlan, resolve, resolve_by_catalog_id
from .providers import BillingProvider, ProviderNotConfiguredError, get_billing_provider
from .reconciler import EventReconciler, ReconcileOutcome
from .stripe_service import StripeBillingService
from .verifier import verify_event

__all__ = [
    "BillingProvider",
    "CatalogEntry",
    "CheckoutCompleted",
    "EventReconciler",
    "InvoicePaid",
    "OtherEvent",
    "PlanInterval",
    "ProviderNotConfiguredError",
    "ReconcileOutcome",
    "ResolvedPlan",
    "StripeBillingService",
    "SubscriptionCanceled",
    "VerifiedEvent",
    "decode_event",
    "get_billing_provider",
    "resolve",
    "resolve_by_catalog_id",
    "verify_event",
]
