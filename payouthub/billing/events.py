"""Typed webhook events decoded from raw Stripe payloads."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

CHECKOUT_COMPLETED = "checkout.session.completed"
INVOICE_PAID = "invoice.paid"
SUBSCRIPTION_DELETED = "customer.subscription.deleted"

UNKNOWN_PLAN_LABEL = "desconhecido"


@dataclass(frozen=True)
class CheckoutCompleted:
    event_id: Optional[str]
    email: Optional[str]
    external_customer_id: Optional[str]
    plan_label: str = UNKNOWN_PLAN_LABEL

    kind = CHECKOUT_COMPLETED


@dataclass(frozen=True)
class InvoicePaid:
    event_id: Optional[str]
    external_customer_id: Optional[str]
    subscription_id: Optional[str]
    plan_interval: Optional[str] = None
    plan_interval_count: Optional[int] = None

    kind = INVOICE_PAID


@dataclass(frozen=True)
class SubscriptionCanceled:
    event_id: Optional[str]
    external_customer_id: Optional[str]

    kind = SUBSCRIPTION_DELETED


@dataclass(frozen=True)
class OtherEvent:
    event_id: Optional[str]
    kind: str


VerifiedEvent = Union[CheckoutCompleted, InvoicePaid, SubscriptionCanceled, OtherEvent]


def decode_event(payload: Dict[str, Any]) -> VerifiedEvent:
    """Project a Stripe event body onto the fields reconciliation needs."""

    event_id = _as_str(payload.get("id"))
    event_type = _as_str(payload.get("type")) or "unknown"
    data = payload.get("data") if isinstance(payload.get("data"), dict) else {}
    obj = data.get("object") if isinstance(data.get("object"), dict) else {}

    if event_type == CHECKOUT_COMPLETED:
        details = obj.get("customer_details") if isinstance(obj.get("customer_details"), dict) else {}
        metadata = obj.get("metadata") if isinstance(obj.get("metadata"), dict) else {}
        return CheckoutCompleted(
            event_id=event_id,
            email=_as_str(details.get("email")) or _as_str(obj.get("customer_email")),
            external_customer_id=_object_id(obj.get("customer")),
            plan_label=_as_str(metadata.get("plan")) or UNKNOWN_PLAN_LABEL,
        )

    if event_type == INVOICE_PAID:
        interval, interval_count = _invoice_interval(obj)
        return InvoicePaid(
            event_id=event_id,
            external_customer_id=_object_id(obj.get("customer")),
            subscription_id=_invoice_subscription_id(obj),
            plan_interval=interval,
            plan_interval_count=interval_count,
        )

    if event_type == SUBSCRIPTION_DELETED:
        return SubscriptionCanceled(
            event_id=event_id,
            external_customer_id=_object_id(obj.get("customer")),
        )

    return OtherEvent(event_id=event_id, kind=event_type)


def _invoice_subscription_id(invoice: Dict[str, Any]) -> Optional[str]:
    direct = _object_id(invoice.get("subscription"))
    if direct:
        return direct
    # API versions from 2025-03-31 nest the subscription under ``parent``.
    parent = invoice.get("parent")
    if isinstance(parent, dict):
        details = parent.get("subscription_details")
        if isinstance(details, dict):
            return _object_id(details.get("subscription"))
    return None


def _invoice_interval(invoice: Dict[str, Any]) -> tuple[Optional[str], Optional[int]]:
    lines = invoice.get("lines")
    if not isinstance(lines, dict):
        return None, None
    for line in lines.get("data") or []:
        if not isinstance(line, dict):
            continue
        for key in ("plan", "price"):
            source = line.get(key)
            if not isinstance(source, dict):
                continue
            recurring = source.get("recurring") if isinstance(source.get("recurring"), dict) else source
            interval = _as_str(recurring.get("interval"))
            if interval:
                return interval, _as_int(recurring.get("interval_count"))
    return None, None


def _object_id(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        return _as_str(value.get("id"))
    return _as_str(value)


def _as_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_int(value: Any) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


__all__ = [
    "CHECKOUT_COMPLETED",
    "INVOICE_PAID",
    "SUBSCRIPTION_DELETED",
    "CheckoutCompleted",
    "InvoicePaid",
    "OtherEvent",
    "SubscriptionCanceled",
    "VerifiedEvent",
    "decode_event",
]
