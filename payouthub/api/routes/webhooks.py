"""Stripe webhook receiver."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool

from ...billing import BillingProvider, EventReconciler
from ...config import CONFIG
from ...db import DatabaseClient
from ..dependencies import get_database, get_provider
from ..schemas import WebhookAck

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhook-stripe", response_model=WebhookAck, status_code=status.HTTP_200_OK)
async def stripe_webhook(
    request: Request,
    db: DatabaseClient = Depends(get_database),
    provider: BillingProvider = Depends(get_provider),
) -> WebhookAck:
    payload = await request.body()
    signature = request.headers.get("Stripe-Signature")

    # VerificationError propagates to the 400 handler before anything is written.
    event = provider.parse_event(payload, signature)

    # Blocking Supabase and Stripe I/O.
    outcome = await run_in_threadpool(EventReconciler(db, provider).handle, event)
    if outcome.failed:
        logger.error("Webhook %s (%s) was not applied: %s", outcome.event_id, outcome.kind, outcome.error)
        if getattr(CONFIG, "billing_webhook_strict", False):
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Webhook handling failed: {outcome.error}",
            )
    return WebhookAck()


__all__ = ["router"]
