"""Billing endpoints backed by Stripe (public key, customers, checkout, subscription)."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, status

from ...billing import BillingProvider, resolve_by_catalog_id
from ...config import CONFIG
from ...exceptions import InvalidPlanError, ValidationError
from ...logger import log
from ..dependencies import get_provider
from ..schemas import (
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    ConfigResponse,
    CreateCustomerResponse,
    EmailRequest,
    SubscriptionResponse,
    SubscriptionSummary,
)

logger = logging.getLogger(__name__)

router = APIRouter()

CHECKOUT_SUCCESS_PATH = "/checkout-success?session_id={CHECKOUT_SESSION_ID}"


def _checkout_urls(request: Request) -> tuple[str, str]:
    """Configured redirect URLs, falling back to the host serving this request."""

    base_url = str(request.base_url).rstrip("/")
    success_url = getattr(CONFIG, "stripe_checkout_success_url", None) or f"{base_url}{CHECKOUT_SUCCESS_PATH}"
    cancel_url = getattr(CONFIG, "stripe_checkout_cancel_url", None) or f"{base_url}/"
    return success_url, cancel_url


@router.get("/api/config", response_model=ConfigResponse, status_code=status.HTTP_200_OK)
def get_public_config() -> ConfigResponse:
    return ConfigResponse(stripe_public_key=getattr(CONFIG, "stripe_publishable_key", None))


@router.post("/api/create-customer", response_model=CreateCustomerResponse, status_code=status.HTTP_200_OK)
def create_customer(
    payload: EmailRequest,
    provider: BillingProvider = Depends(get_provider),
) -> CreateCustomerResponse:
    if not payload.email:
        raise ValidationError("Email não fornecido")

    customer_id = provider.find_or_create_customer(payload.email)
    log("Stripe customer resolved", email=payload.email, customer=customer_id)
    return CreateCustomerResponse(customer_id=customer_id)


@router.get(
    "/api/subscription/{customer_id}",
    response_model=SubscriptionResponse,
    status_code=status.HTTP_200_OK,
)
def get_subscription(
    customer_id: str,
    provider: BillingProvider = Depends(get_provider),
) -> SubscriptionResponse:
    customer_id = customer_id.strip()
    if not customer_id:
        raise ValidationError("ID do cliente não fornecido")

    subscription = provider.get_active_subscription(customer_id)
    if subscription is None:
        return SubscriptionResponse(subscription=None)
    return SubscriptionResponse(subscription=SubscriptionSummary(**subscription))


@router.post(
    "/api/create-checkout-session",
    response_model=CheckoutSessionResponse,
    status_code=status.HTTP_200_OK,
)
def create_checkout_session(
    payload: CheckoutSessionRequest,
    request: Request,
    provider: BillingProvider = Depends(get_provider),
) -> CheckoutSessionResponse:
    if not payload.plan_id:
        raise ValidationError("Plano não especificado")
    try:
        entry = resolve_by_catalog_id(payload.plan_id)
    except InvalidPlanError as exc:
        raise InvalidPlanError("Plano inválido") from exc

    success_url, cancel_url = _checkout_urls(request)
    session, customer_id = provider.create_checkout_session(
        entry=entry,
        success_url=success_url,
        cancel_url=cancel_url,
        customer_email=payload.email,
    )
    log(
        "Checkout session created",
        plan=entry.plan_id,
        session=session["id"],
        customer=customer_id or "-",
    )
    return CheckoutSessionResponse(session_id=session["id"])


__all__ = ["router"]
