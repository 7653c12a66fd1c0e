"""Apply verified Stripe events to the local billing user record."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable, Optional

from ..auth.tokens import issue_access_token
from ..db import DatabaseClient, ProcessedEvent, UserRecord, UserStatus
from ..exceptions import DuplicateRecordError, RecordNotFoundError, StorageError
from ..logger import log
from .events import CheckoutCompleted, InvoicePaid, OtherEvent, SubscriptionCanceled, VerifiedEvent
from .plans import checkout_renewal, resolve
from .providers import BillingProvider

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ReconcileOutcome:
    """What a single event did to the store."""

    kind: str
    event_id: Optional[str] = None
    email: Optional[str] = None
    applied: bool = False
    created: bool = False
    duplicate: bool = False
    detail: Optional[str] = None
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class EventReconciler:
    """State machine over one ``UserRecord`` per email.

    Every transition is a deterministic overwrite of the record's fields, so
    replaying an event (Stripe delivers at least once) converges on the same
    state apart from the time-based columns.
    """

    def __init__(
        self,
        db: DatabaseClient,
        provider: BillingProvider,
        *,
        clock: Callable[[], datetime] = utcnow,
        token_issuer: Callable[[], str] = issue_access_token,
    ):
        self._db = db
        self._provider = provider
        self._clock = clock
        self._issue_token = token_issuer

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------
    def handle(self, event: VerifiedEvent) -> ReconcileOutcome:
        """Apply ``event`` and record it, logging instead of raising on failure."""

        try:
            if event.event_id and self._db.has_processed_event(event.event_id):
                log("Skipping already processed event", event=event.kind, event_id=event.event_id)
                return ReconcileOutcome(kind=event.kind, event_id=event.event_id, duplicate=True)

            outcome = self.apply(event)

            if outcome.applied and event.event_id:
                self._db.record_processed_event(
                    ProcessedEvent(
                        stripe_event_id=event.event_id,
                        event_type=event.kind,
                        email=outcome.email,
                        processed_at=self._clock(),
                    )
                )
            return outcome
        except Exception as exc:
            logger.exception("Failed to reconcile %s event %s", event.kind, event.event_id)
            return ReconcileOutcome(kind=event.kind, event_id=event.event_id, error=str(exc) or type(exc).__name__)

    def apply(self, event: VerifiedEvent) -> ReconcileOutcome:
        if isinstance(event, CheckoutCompleted):
            return self._checkout_completed(event)
        if isinstance(event, InvoicePaid):
            return self._invoice_paid(event)
        if isinstance(event, SubscriptionCanceled):
            return self._subscription_canceled(event)
        return self._ignore(event)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def _checkout_completed(self, event: CheckoutCompleted) -> ReconcileOutcome:
        if not event.email:
            # Stripe occasionally omits customer details on the session.
            log("Checkout session has no customer email; nothing to do", event_id=event.event_id)
            return ReconcileOutcome(kind=event.kind, event_id=event.event_id, detail="missing_email")

        email = event.email
        now = self._clock()
        renews_at = checkout_renewal(now)

        existing = self._db.get_user_by_email(email)
        if existing is None:
            record = UserRecord(
                email=email,
                external_customer_id=event.external_customer_id,
                status=UserStatus.ACTIVE,
                plan=event.plan_label,
                access_token=self._issue_token(),
                created_at=now,
                subscribed_at=now,
                renews_at=renews_at,
            )
            try:
                self._db.create_user(record)
            except DuplicateRecordError:
                # A concurrent delivery created the row first; update it instead.
                log("User created concurrently; updating existing record", email=email)
                existing = self._db.get_user_by_email(email)
                if existing is None:
                    raise StorageError(f"User {email} vanished after a duplicate insert")
            else:
                log("User created after checkout", email=email, plan=event.plan_label)
                return ReconcileOutcome(
                    kind=event.kind,
                    event_id=event.event_id,
                    email=email,
                    applied=True,
                    created=True,
                )

        token = existing.access_token or self._ensure_access_token(email)
        updated = replace(
            existing,
            external_customer_id=event.external_customer_id or existing.external_customer_id,
            status=UserStatus.ACTIVE,
            plan=event.plan_label,
            access_token=token,
            subscribed_at=now,
            renews_at=renews_at,
            modified_at=now,
        )
        self._db.upsert_user(updated)
        log("User updated after checkout", email=email, plan=event.plan_label)
        return ReconcileOutcome(kind=event.kind, event_id=event.event_id, email=email, applied=True)

    def _invoice_paid(self, event: InvoicePaid) -> ReconcileOutcome:
        if not event.external_customer_id or not event.subscription_id:
            log("Invoice is not tied to a subscription; nothing to do", event_id=event.event_id)
            return ReconcileOutcome(kind=event.kind, event_id=event.event_id, detail="missing_subscription")

        email = self._provider.get_customer_email(event.external_customer_id)
        if not email:
            raise RecordNotFoundError(f"Stripe customer {event.external_customer_id} has no email")

        interval, interval_count = event.plan_interval, event.plan_interval_count
        if not interval:
            interval, interval_count = self._provider.get_subscription_interval(event.subscription_id)
        plan = resolve(interval, interval_count)

        if self._db.get_user_by_email(email) is None:
            raise RecordNotFoundError(f"No billing user for {email} (customer {event.external_customer_id})")

        now = self._clock()
        self._db.update_user(
            email,
            {
                "status": UserStatus.ACTIVE,
                "plan": plan.plan_name,
                "renews_at": plan.renewal_rule(now),
                "modified_at": now,
            },
        )
        log("User updated after invoice payment", email=email, plan=plan.plan_name)
        return ReconcileOutcome(kind=event.kind, event_id=event.event_id, email=email, applied=True)

    def _subscription_canceled(self, event: SubscriptionCanceled) -> ReconcileOutcome:
        if not event.external_customer_id:
            log("Canceled subscription has no customer; nothing to do", event_id=event.event_id)
            return ReconcileOutcome(kind=event.kind, event_id=event.event_id, detail="missing_customer")

        email = self._provider.get_customer_email(event.external_customer_id)
        if not email or self._db.get_user_by_email(email) is None:
            log(
                "Canceled subscription has no local user; nothing to do",
                customer=event.external_customer_id,
                event_id=event.event_id,
            )
            return ReconcileOutcome(kind=event.kind, event_id=event.event_id, email=email, detail="unknown_user")

        # Plan and renewal date stay as history.
        self._db.update_user(email, {"status": UserStatus.INACTIVE, "modified_at": self._clock()})
        log("Subscription canceled", email=email)
        return ReconcileOutcome(kind=event.kind, event_id=event.event_id, email=email, applied=True)

    def _ignore(self, event: OtherEvent) -> ReconcileOutcome:
        log("Unhandled event type", event=event.kind, event_id=event.event_id)
        return ReconcileOutcome(kind=event.kind, event_id=event.event_id, detail="ignored")

    def _ensure_access_token(self, email: str) -> str:
        candidate = self._issue_token()
        stored = self._db.assign_access_token(email, candidate)
        return stored or candidate


__all__ = ["EventReconciler", "ReconcileOutcome", "utcnow"]
