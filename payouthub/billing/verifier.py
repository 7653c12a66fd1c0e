"""Stripe webhook signature verification."""

from __future__ import annotations

import json
import logging
import time
from typing import Optional

import stripe

from ..exceptions import VerificationError
from .events import VerifiedEvent, decode_event

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = stripe.Webhook.DEFAULT_TOLERANCE


def verify_event(
    raw_payload: bytes,
    signature_header: Optional[str],
    secret: Optional[str],
    *,
    tolerance: int = DEFAULT_TOLERANCE,
) -> VerifiedEvent:
    """Check the ``Stripe-Signature`` header over the raw body and decode it.

    The payload must be the exact request bytes; re-serialised JSON will not
    match the signature.
    """

    if not secret:
        raise VerificationError(VerificationError.BAD_SIGNATURE, "Webhook secret is not configured")
    if not signature_header:
        raise VerificationError(VerificationError.BAD_SIGNATURE, "Missing Stripe-Signature header")

    try:
        payload_text = raw_payload.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise VerificationError(VerificationError.BAD_SIGNATURE, "Payload is not valid UTF-8") from exc

    try:
        stripe.WebhookSignature.verify_header(payload_text, signature_header, secret, tolerance)
    except stripe.SignatureVerificationError as exc:
        message = str(getattr(exc, "user_message", None) or exc)
        reason = _failure_reason(payload_text, signature_header, secret, tolerance)
        logger.warning("Rejected webhook signature (%s): %s", reason, message)
        raise VerificationError(reason, message) from exc

    try:
        body = json.loads(payload_text)
    except ValueError as exc:
        raise VerificationError(VerificationError.BAD_SIGNATURE, "Payload is not valid JSON") from exc
    if not isinstance(body, dict):
        raise VerificationError(VerificationError.BAD_SIGNATURE, "Payload is not a JSON object")

    return decode_event(body)


def _header_timestamp(signature_header: str) -> Optional[int]:
    for part in signature_header.split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            try:
                return int(value)
            except ValueError:
                return None
    return None


def _failure_reason(payload_text: str, signature_header: str, secret: str, tolerance: int) -> str:
    """Stale only when the signature matches and the timestamp is too old."""

    timestamp = _header_timestamp(signature_header)
    if timestamp is None or not tolerance or timestamp >= time.time() - tolerance:
        return VerificationError.BAD_SIGNATURE
    try:
        stripe.WebhookSignature.verify_header(payload_text, signature_header, secret, None)
    except stripe.SignatureVerificationError:
        return VerificationError.BAD_SIGNATURE
    return VerificationError.STALE


__all__ = ["DEFAULT_TOLERANCE", "verify_event"]
