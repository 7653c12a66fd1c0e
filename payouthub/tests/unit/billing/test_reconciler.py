"""Tests for applying verified events to billing user records."""

from __future__ import annotations

from datetime import datetime, timezone
from itertools import count

import pytest

from payouthub.billing.events import CheckoutCompleted, InvoicePaid, OtherEvent, SubscriptionCanceled
from payouthub.billing.reconciler import EventReconciler
from payouthub.db import UserRecord, UserStatus
from payouthub.exceptions import StorageError

NOW = datetime(2025, 1, 31, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def tokens():
    sequence = count(1)
    return lambda: f"token-{next(sequence)}"


@pytest.fixture
def reconciler(db, provider, clock, tokens) -> EventReconciler:
    return EventReconciler(db, provider, clock=clock, token_issuer=tokens)


def _checkout(event_id="evt_checkout", email="ana@example.com", customer="cus_1", plan="Plano Trimestral"):
    return CheckoutCompleted(event_id=event_id, email=email, external_customer_id=customer, plan_label=plan)


def test_checkout_creates_active_user_with_token(reconciler, db) -> None:
    outcome = reconciler.handle(_checkout())

    record = db.get_user_by_email("ana@example.com")
    assert outcome.applied and outcome.created
    assert record.status == UserStatus.ACTIVE
    assert record.plan == "Plano Trimestral"
    assert record.external_customer_id == "cus_1"
    assert record.access_token == "token-1"
    assert record.created_at == NOW
    assert record.subscribed_at == NOW
    assert record.renews_at == datetime(2025, 4, 30, 12, 0, tzinfo=timezone.utc)
    assert "evt_checkout" in db.events


def test_checkout_for_existing_user_keeps_token(reconciler, db) -> None:
    db.add_user(
        UserRecord(
            email="ana@example.com",
            name="Ana",
            external_customer_id="cus_old",
            status=UserStatus.INACTIVE,
            plan="Plano Anual",
            access_token="existing-token",
            created_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
        )
    )

    outcome = reconciler.handle(_checkout(customer="cus_new"))

    record = db.get_user_by_email("ana@example.com")
    assert outcome.applied and not outcome.created
    assert record.access_token == "existing-token"
    assert record.name == "Ana"
    assert record.external_customer_id == "cus_new"
    assert record.status == UserStatus.ACTIVE
    assert record.plan == "Plano Trimestral"
    assert record.created_at == datetime(2024, 5, 1, tzinfo=timezone.utc)
    assert record.modified_at == NOW


def test_checkout_for_existing_user_without_token_issues_one(reconciler, db) -> None:
    db.add_user(UserRecord(email="ana@example.com"))

    reconciler.handle(_checkout())

    assert db.get_user_by_email("ana@example.com").access_token == "token-1"


def test_checkout_missing_customer_keeps_previous_customer_id(reconciler, db) -> None:
    db.add_user(UserRecord(email="ana@example.com", external_customer_id="cus_old", access_token="t"))

    reconciler.handle(_checkout(customer=None))

    assert db.get_user_by_email("ana@example.com").external_customer_id == "cus_old"


def test_checkout_without_email_is_a_no_op(reconciler, db) -> None:
    outcome = reconciler.handle(_checkout(email=None))

    assert not outcome.applied
    assert outcome.detail == "missing_email"
    assert db.users == {}
    assert db.events == {}


def test_replayed_checkout_is_skipped(reconciler, db) -> None:
    reconciler.handle(_checkout())
    first = db.get_user_by_email("ana@example.com")

    outcome = reconciler.handle(_checkout())

    assert outcome.duplicate
    assert db.get_user_by_email("ana@example.com") == first
    assert db.writes == [("create", "ana@example.com")]


def test_replay_without_event_id_converges(reconciler, db) -> None:
    reconciler.handle(_checkout(event_id=None))
    first = db.get_user_by_email("ana@example.com")

    reconciler.handle(_checkout(event_id=None))

    second = db.get_user_by_email("ana@example.com")
    assert second.access_token == first.access_token
    assert (second.status, second.plan, second.renews_at) == (first.status, first.plan, first.renews_at)


def test_concurrent_insert_falls_back_to_update(reconciler, db) -> None:
    db.concurrent_insert = UserRecord(email="ana@example.com", access_token="winner-token")

    outcome = reconciler.handle(_checkout())

    record = db.get_user_by_email("ana@example.com")
    assert outcome.applied and not outcome.created
    assert record.access_token == "winner-token"
    assert record.status == UserStatus.ACTIVE


def test_invoice_paid_sets_plan_from_event_interval(reconciler, db, provider) -> None:
    provider.customers["cus_1"] = "ana@example.com"
    db.add_user(UserRecord(email="ana@example.com", plan="desconhecido", access_token="t"))

    outcome = reconciler.handle(
        InvoicePaid(
            event_id="evt_invoice",
            external_customer_id="cus_1",
            subscription_id="sub_1",
            plan_interval="year",
            plan_interval_count=1,
        )
    )

    record = db.get_user_by_email("ana@example.com")
    assert outcome.applied
    assert record.status == UserStatus.ACTIVE
    assert record.plan == "Plano Anual"
    assert record.renews_at == datetime(2026, 1, 31, 12, 0, tzinfo=timezone.utc)
    assert record.modified_at == NOW


def test_invoice_paid_falls_back_to_subscription_lookup(reconciler, db, provider) -> None:
    provider.customers["cus_1"] = "ana@example.com"
    provider.intervals["sub_1"] = ("month", 1)
    db.add_user(UserRecord(email="ana@example.com"))

    reconciler.handle(InvoicePaid(event_id="evt_invoice", external_customer_id="cus_1", subscription_id="sub_1"))

    record = db.get_user_by_email("ana@example.com")
    assert record.plan == "Plano Personalizado"
    assert record.renews_at == datetime(2025, 2, 28, 12, 0, tzinfo=timezone.utc)


def test_invoice_paid_for_unknown_user_reports_error(reconciler, db, provider) -> None:
    provider.customers["cus_1"] = "ghost@example.com"

    outcome = reconciler.handle(
        InvoicePaid(
            event_id="evt_invoice",
            external_customer_id="cus_1",
            subscription_id="sub_1",
            plan_interval="month",
            plan_interval_count=3,
        )
    )

    assert outcome.failed
    assert "ghost@example.com" in outcome.error
    assert db.users == {}
    assert "evt_invoice" not in db.events


def test_invoice_with_unsupported_interval_changes_nothing(reconciler, db, provider) -> None:
    provider.customers["cus_1"] = "ana@example.com"
    original = db.add_user(UserRecord(email="ana@example.com", plan="Plano Anual"))

    outcome = reconciler.handle(
        InvoicePaid(
            event_id="evt_invoice",
            external_customer_id="cus_1",
            subscription_id="sub_1",
            plan_interval="fortnight",
            plan_interval_count=1,
        )
    )

    assert outcome.failed
    assert db.get_user_by_email("ana@example.com") == original


def test_invoice_without_subscription_is_ignored(reconciler, db, provider) -> None:
    outcome = reconciler.handle(InvoicePaid(event_id="evt_invoice", external_customer_id="cus_1", subscription_id=None))

    assert outcome.detail == "missing_subscription"
    assert provider.customer_lookups == []


def test_cancel_deactivates_but_keeps_history(reconciler, db, provider) -> None:
    provider.customers["cus_1"] = "ana@example.com"
    renews_at = datetime(2025, 4, 30, tzinfo=timezone.utc)
    db.add_user(
        UserRecord(
            email="ana@example.com",
            status=UserStatus.ACTIVE,
            plan="Plano Trimestral",
            access_token="t",
            renews_at=renews_at,
        )
    )

    outcome = reconciler.handle(SubscriptionCanceled(event_id="evt_cancel", external_customer_id="cus_1"))

    record = db.get_user_by_email("ana@example.com")
    assert outcome.applied
    assert record.status == UserStatus.INACTIVE
    assert record.plan == "Plano Trimestral"
    assert record.renews_at == renews_at
    assert record.access_token == "t"


def test_cancel_for_unknown_user_creates_nothing(reconciler, db, provider) -> None:
    provider.customers["cus_1"] = "ghost@example.com"

    outcome = reconciler.handle(SubscriptionCanceled(event_id="evt_cancel", external_customer_id="cus_1"))

    assert not outcome.applied
    assert not outcome.failed
    assert outcome.detail == "unknown_user"
    assert db.users == {}


def test_other_events_are_ignored(reconciler, db) -> None:
    outcome = reconciler.handle(OtherEvent(event_id="evt_other", kind="customer.created"))

    assert outcome.detail == "ignored"
    assert db.writes == []
    assert db.events == {}


def test_storage_failure_is_reported_not_raised(db, provider, clock) -> None:
    class FailingDatabase(type(db)):
        def create_user(self, record):
            raise StorageError("connection reset")

    outcome = EventReconciler(FailingDatabase(), provider, clock=clock).handle(_checkout())

    assert outcome.failed
    assert outcome.error == "connection reset"


def test_subscription_lifecycle(db, provider, tokens) -> None:
    times = iter(
        [
            datetime(2025, 3, 1, tzinfo=timezone.utc),
            datetime(2025, 3, 1, 0, 5, tzinfo=timezone.utc),
            datetime(2025, 3, 1, 0, 5, tzinfo=timezone.utc),
            datetime(2025, 6, 1, tzinfo=timezone.utc),
        ]
    )
    now = {"value": None}

    def clock():
        now["value"] = next(times, now["value"])
        return now["value"]

    reconciler = EventReconciler(db, provider, clock=clock, token_issuer=tokens)
    provider.customers["cus_1"] = "ana@example.com"

    reconciler.handle(_checkout(event_id="evt_1", plan="Plano Anual"))
    token = db.get_user_by_email("ana@example.com").access_token
    reconciler.handle(
        InvoicePaid(
            event_id="evt_2",
            external_customer_id="cus_1",
            subscription_id="sub_1",
            plan_interval="year",
            plan_interval_count=1,
        )
    )
    reconciler.handle(SubscriptionCanceled(event_id="evt_3", external_customer_id="cus_1"))

    record = db.get_user_by_email("ana@example.com")
    assert record.status == UserStatus.INACTIVE
    assert record.plan == "Plano Anual"
    assert record.renews_at == datetime(2026, 3, 1, 0, 5, tzinfo=timezone.utc)
    assert record.access_token == token
    assert set(db.events) == {"evt_1", "evt_2", "evt_3"}
