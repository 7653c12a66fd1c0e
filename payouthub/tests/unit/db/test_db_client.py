"""Tests for the Supabase-backed billing store using a fake PostgREST chain."""

from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest

from payouthub.db import ProcessedEvent, UserRecord, UserStatus
from payouthub.db import client as client_module
from payouthub.exceptions import DuplicateRecordError, StorageError


class FakeQuery:
    def __init__(self, backend: "FakeSupabase", table: str) -> None:
        self.backend = backend
        self.table = table
        self.ops: List[tuple] = []

    def __getattr__(self, name: str):
        if name not in {"select", "eq", "is_", "limit", "insert", "update", "upsert"}:
            raise AttributeError(name)

        def _op(*args: Any, **kwargs: Any) -> "FakeQuery":
            self.ops.append((name, args, kwargs))
            return self

        return _op

    def execute(self) -> SimpleNamespace:
        self.backend.queries.append((self.table, self.ops))
        if self.backend.error is not None:
            raise self.backend.error
        return SimpleNamespace(data=self.backend.responses.pop(0) if self.backend.responses else [])


class FakeSupabase:
    def __init__(self) -> None:
        self.queries: List[tuple] = []
        self.responses: List[Any] = []
        self.error: Optional[Exception] = None

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)


@pytest.fixture
def fake(monkeypatch: pytest.MonkeyPatch) -> FakeSupabase:
    backend = FakeSupabase()
    monkeypatch.setattr(client_module, "create_client", lambda url, key: backend)
    return backend


def _ops(query) -> Dict[str, tuple]:
    return {name: args for name, args, _ in query[1]}


def test_client_requires_credentials(monkeypatch: pytest.MonkeyPatch, fake) -> None:
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    from payouthub.config import reload_config

    reload_config()

    with pytest.raises(ValueError):
        client_module.SupabaseDatabaseClient()


def test_get_user_by_email_maps_row(fake) -> None:
    fake.responses.append([{"email": "ana@example.com", "status": "active", "plan": "Plano Anual"}])
    db = client_module.create_database_client()

    record = db.get_user_by_email("ana@example.com")

    assert record.plan == "Plano Anual"
    table, _ = fake.queries[0]
    assert table == "billing_users"
    assert _ops(fake.queries[0])["eq"] == ("email", "ana@example.com")


def test_missing_user_returns_none(fake) -> None:
    db = client_module.create_database_client()

    assert db.get_user_by_email("ghost@example.com") is None
    assert db.get_user_by_access_token("") is None


def test_duplicate_insert_raises_duplicate_record_error(fake) -> None:
    fake.error = Exception({"code": "23505", "message": "duplicate key value violates unique constraint"})
    db = client_module.create_database_client()

    with pytest.raises(DuplicateRecordError):
        db.create_user(UserRecord(email="ana@example.com"))


def test_other_failures_raise_storage_error(fake) -> None:
    fake.error = RuntimeError("connection refused")
    db = client_module.create_database_client()

    with pytest.raises(StorageError) as excinfo:
        db.update_user("ana@example.com", {"status": UserStatus.INACTIVE})

    assert not isinstance(excinfo.value, DuplicateRecordError)


def test_update_user_serialises_enums_and_datetimes(fake) -> None:
    db = client_module.create_database_client()
    now = datetime(2025, 1, 31, tzinfo=timezone.utc)

    db.update_user("ana@example.com", {"status": UserStatus.ACTIVE, "modified_at": now})

    assert _ops(fake.queries[0])["update"] == ({"status": "active", "modified_at": "2025-01-31T00:00:00+00:00"},)


def test_assign_access_token_only_fills_empty_column(fake) -> None:
    fake.responses.extend([[], [{"email": "ana@example.com", "access_token": "first-token"}]])
    db = client_module.create_database_client()

    stored = db.assign_access_token("ana@example.com", "second-token")

    assert stored == "first-token"
    assert _ops(fake.queries[0])["is_"] == ("access_token", "null")


def test_processed_event_ledger(fake) -> None:
    fake.responses.append([{"stripe_event_id": "evt_1"}])
    db = client_module.create_database_client()

    assert db.has_processed_event("evt_1") is True
    db.record_processed_event(ProcessedEvent(stripe_event_id="evt_2", event_type="invoice.paid"))

    table, ops = fake.queries[-1]
    assert table == "billing_events"
    upsert = next(kwargs for name, _, kwargs in ops if name == "upsert")
    assert upsert == {"on_conflict": "stripe_event_id"}
