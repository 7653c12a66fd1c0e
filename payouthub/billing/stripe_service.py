"""Thin wrapper around the Stripe SDK used for customers, checkout and subscriptions."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional, Tuple

import stripe

from ..exceptions import UpstreamError
from .plans import CatalogEntry

logger = logging.getLogger(__name__)


class StripeBillingService:
    """Handles the Stripe interactions the billing API and reconciler need."""

    def __init__(self, secret_key: str, *, customer_description: Optional[str] = None):
        if not secret_key:
            raise ValueError("Stripe secret key is required")
        stripe.api_key = secret_key
        self._customer_description = customer_description

    # ------------------------------------------------------------------
    # Customers
    # ------------------------------------------------------------------
    def find_or_create_customer(self, email: str) -> str:
        """Return the id of the first customer with ``email``, creating one if needed."""

        existing = _call("list customers", stripe.Customer.list, email=email, limit=1)
        data = _field(existing, "data") or []
        if data:
            customer_id = _field(data[0], "id")
            logger.info("Existing Stripe customer found: %s", customer_id)
            return customer_id

        customer = _call(
            "create customer",
            stripe.Customer.create,
            email=email,
            description=self._customer_description,
        )
        customer_id = _field(customer, "id")
        logger.info("New Stripe customer created: %s", customer_id)
        return customer_id

    def retrieve_customer_email(self, customer_id: str) -> Optional[str]:
        customer = _call("retrieve customer", stripe.Customer.retrieve, customer_id)
        if _field(customer, "deleted"):
            return None
        return _field(customer, "email")

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------
    def create_checkout_session(
        self,
        *,
        entry: CatalogEntry,
        success_url: str,
        cancel_url: str,
        customer_email: Optional[str] = None,
    ) -> Tuple[Dict[str, Any], Optional[str]]:
        """Create a product/price pair for the catalog entry and a subscription checkout."""

        product = _call(
            "create product",
            stripe.Product.create,
            name=entry.display_name,
            description=f"Assinatura {entry.display_name} do PayoutHub",
        )
        price = _call(
            "create price",
            stripe.Price.create,
            product=_field(product, "id"),
            unit_amount=entry.price_amount_minor_units,
            currency=entry.currency,
            recurring=entry.recurring(),
        )

        params: Dict[str, Any] = {
            "mode": "subscription",
            "line_items": [{"price": _field(price, "id"), "quantity": 1}],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": {"plan": entry.display_name},
        }
        customer_id: Optional[str] = None
        if customer_email:
            customer_id = self.find_or_create_customer(customer_email)
            params["customer"] = customer_id

        session = _call("create checkout session", stripe.checkout.Session.create, **params)
        return {"id": _field(session, "id"), "url": _field(session, "url")}, customer_id

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------
    def retrieve_subscription_interval(self, subscription_id: str) -> Tuple[Optional[str], Optional[int]]:
        """Return ``(interval, interval_count)`` of the subscription's first item."""

        subscription = _call("retrieve subscription", stripe.Subscription.retrieve, subscription_id)
        return _item_interval(subscription)

    def get_active_subscription(self, customer_id: str) -> Optional[Dict[str, Any]]:
        result = _call(
            "list subscriptions",
            stripe.Subscription.list,
            customer=customer_id,
            status="active",
            limit=1,
        )
        data = _field(result, "data") or []
        if not data:
            return None
        subscription = data[0]

        plan_name: Optional[str] = None
        product_id = _item_product(subscription)
        if product_id:
            product = _call("retrieve product", stripe.Product.retrieve, product_id)
            plan_name = _field(product, "name")

        return {
            "id": _field(subscription, "id"),
            "status": _field(subscription, "status"),
            "plan": plan_name,
            "current_period_start": _period_bound(subscription, "current_period_start"),
            "current_period_end": _period_bound(subscription, "current_period_end"),
            "cancel_at_period_end": bool(_field(subscription, "cancel_at_period_end")),
        }


def _call(action: str, func: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Any:
    try:
        return func(*args, **kwargs)
    except stripe.StripeError as exc:
        message = getattr(exc, "user_message", None) or str(exc)
        logger.error("Stripe %s failed: %s", action, message)
        raise UpstreamError(message) from exc


def _field(obj: Any, key: str, default: Any = None) -> Any:
    if obj is None:
        return default
    if isinstance(obj, dict):
        return obj.get(key, default)
    try:
        return obj[key]
    except (KeyError, TypeError, AttributeError):
        return getattr(obj, key, default)


def _first_item(subscription: Any) -> Any:
    items = _field(subscription, "items")
    data = _field(items, "data") or []
    return data[0] if data else None


def _item_interval(subscription: Any) -> Tuple[Optional[str], Optional[int]]:
    item = _first_item(subscription)
    if item is None:
        return None, None
    price = _field(item, "price")
    recurring = _field(price, "recurring")
    source = recurring if recurring is not None else _field(item, "plan")
    interval = _field(source, "interval")
    count = _field(source, "interval_count")
    return interval, int(count) if count is not None else None


def _item_product(subscription: Any) -> Optional[str]:
    item = _first_item(subscription)
    if item is None:
        return None
    for key in ("price", "plan"):
        product = _field(_field(item, key), "product")
        if product:
            return product if isinstance(product, str) else _field(product, "id")
    return None


def _period_bound(subscription: Any, key: str) -> Optional[int]:
    value = _field(subscription, key)
    if value is None:
        # Newer API versions only report billing periods on subscription items.
        value = _field(_first_item(subscription), key)
    return value


__all__ = ["StripeBillingService"]
