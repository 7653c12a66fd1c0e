"""Shared stubs for the billing tests: an in-memory user store and a fake provider."""

from __future__ import annotations

import hashlib
import hmac
import json
import time
from dataclasses import fields, replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from payouthub.billing.providers.base import BillingProvider
from payouthub.billing.verifier import verify_event
from payouthub.db import ProcessedEvent, UserRecord
from payouthub.exceptions import DuplicateRecordError

WEBHOOK_SECRET = "whsec_test_secret"
FIXED_NOW = datetime(2025, 1, 31, 12, 0, tzinfo=timezone.utc)

_RECORD_FIELDS = {field.name for field in fields(UserRecord)}


class InMemoryDatabase:
    """Mirrors the Supabase client's contract over a dict keyed by email."""

    def __init__(self) -> None:
        self.users: Dict[str, UserRecord] = {}
        self.events: Dict[str, ProcessedEvent] = {}
        self.writes: List[Tuple[str, str]] = []
        # Row another writer inserts between our read and our insert.
        self.concurrent_insert: Optional[UserRecord] = None
        self.closed = False

    def add_user(self, record: UserRecord) -> UserRecord:
        self.users[record.email] = record
        return record

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        return self.users.get(email)

    def get_user_by_access_token(self, token: str) -> Optional[UserRecord]:
        return next((user for user in self.users.values() if user.access_token == token), None)

    def create_user(self, record: UserRecord) -> UserRecord:
        if self.concurrent_insert is not None:
            self.users[self.concurrent_insert.email] = self.concurrent_insert
            self.concurrent_insert = None
        if record.email in self.users:
            raise DuplicateRecordError(f"duplicate key value violates unique constraint for {record.email}")
        self.users[record.email] = record
        self.writes.append(("create", record.email))
        return record

    def update_user(self, email: str, updates: Dict[str, Any]) -> Optional[UserRecord]:
        current = self.users.get(email)
        if current is None:
            return None
        unknown = set(updates) - _RECORD_FIELDS
        assert not unknown, f"unexpected columns {unknown}"
        self.users[email] = replace(current, **updates)
        self.writes.append(("update", email))
        return self.users[email]

    def assign_access_token(self, email: str, token: str) -> Optional[str]:
        current = self.users.get(email)
        if current is None:
            return None
        if not current.access_token:
            self.users[email] = replace(current, access_token=token)
        return self.users[email].access_token

    def upsert_user(self, record: UserRecord) -> UserRecord:
        self.users[record.email] = record
        self.writes.append(("upsert", record.email))
        return record

    def has_processed_event(self, stripe_event_id: str) -> bool:
        return stripe_event_id in self.events

    def record_processed_event(self, event: ProcessedEvent) -> None:
        self.events[event.stripe_event_id] = event

    def close(self) -> None:
        self.closed = True


class StubProvider(BillingProvider):
    """Billing provider backed by dictionaries; signatures are checked for real."""

    key = "stub"

    def __init__(self) -> None:
        self.customers: Dict[str, str] = {}
        self.intervals: Dict[str, Tuple[Optional[str], Optional[int]]] = {}
        self.subscriptions: Dict[str, Dict[str, Any]] = {}
        self.checkout_calls: List[Dict[str, Any]] = []
        self.customer_lookups: List[str] = []

    def is_configured(self) -> bool:
        return True

    def find_or_create_customer(self, email: str) -> str:
        for customer_id, customer_email in self.customers.items():
            if customer_email == email:
                return customer_id
        customer_id = f"cus_{len(self.customers) + 1}"
        self.customers[customer_id] = email
        return customer_id

    def create_checkout_session(self, *, entry, success_url, cancel_url, customer_email):
        self.checkout_calls.append(
            {
                "entry": entry,
                "success_url": success_url,
                "cancel_url": cancel_url,
                "customer_email": customer_email,
            }
        )
        customer_id = self.find_or_create_customer(customer_email) if customer_email else None
        return {"id": "cs_test_1", "url": "https://checkout.stripe.test/cs_test_1"}, customer_id

    def get_customer_email(self, customer_id: str) -> Optional[str]:
        self.customer_lookups.append(customer_id)
        return self.customers.get(customer_id)

    def get_subscription_interval(self, subscription_id: str):
        return self.intervals.get(subscription_id, (None, None))

    def get_active_subscription(self, customer_id: str):
        return self.subscriptions.get(customer_id)

    def parse_event(self, payload: bytes, signature: Optional[str]):
        return verify_event(payload, signature, WEBHOOK_SECRET, tolerance=300)


def sign(payload: bytes, *, secret: str = WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    """Build a ``Stripe-Signature`` header the way Stripe does."""

    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.".encode("utf-8") + payload
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def event_payload(event_id: str, event_type: str, obj: Dict[str, Any]) -> bytes:
    return json.dumps(
        {"id": event_id, "object": "event", "type": event_type, "data": {"object": obj}}
    ).encode("utf-8")


@pytest.fixture
def db() -> InMemoryDatabase:
    return InMemoryDatabase()


@pytest.fixture
def provider() -> StubProvider:
    return StubProvider()


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def signer() -> Callable[..., str]:
    return sign


@pytest.fixture
def make_event() -> Callable[[str, str, Dict[str, Any]], bytes]:
    return event_payload
