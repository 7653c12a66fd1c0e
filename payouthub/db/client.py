"""
Database client for the billing user store.
Handles user records keyed by email and the processed-event ledger.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from supabase import Client, create_client

from ..exceptions import DuplicateRecordError, StorageError
from ..config import CONFIG
from .models import ProcessedEvent, UserRecord

logger = logging.getLogger(__name__)


def _is_duplicate_key_error(exc: Exception) -> bool:
    code = str(getattr(exc, "code", "") or "")
    return code == "23505" or "duplicate key" in str(exc).lower()


def _first_row(result: Any) -> Optional[Dict[str, Any]]:
    data = getattr(result, "data", None)
    if isinstance(data, list):
        return data[0] if data else None
    if isinstance(data, dict):
        return data
    return None


class SupabaseDatabaseClient:
    """Database client for Supabase operations."""

    def __init__(
        self,
        url: Optional[str] = None,
        key: Optional[str] = None,
        *,
        users_table: Optional[str] = None,
        events_table: Optional[str] = None,
    ):
        self.supabase_url = url or CONFIG.supabase_url
        # Prefer the service role key; the billing tables are server-side only.
        self.supabase_key = key or CONFIG.supabase_service_role_key or CONFIG.supabase_anon_key
        if not self.supabase_url or not self.supabase_key:
            raise ValueError(
                "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY (or SUPABASE_ANON_KEY) environment variables are required"
            )
        self.users_table = users_table or CONFIG.billing_users_table
        self.events_table = events_table or CONFIG.billing_events_table
        self.client: Client = create_client(self.supabase_url, self.supabase_key)

    # ------------------------------------------------------------------
    # User records
    # ------------------------------------------------------------------
    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        try:
            result = (
                self.client.table(self.users_table)
                .select("*")
                .eq("email", email)
                .limit(1)
                .execute()
            )
        except Exception as exc:
            raise StorageError(f"Failed to load user {email}: {exc}") from exc
        row = _first_row(result)
        return UserRecord.from_row(row) if row else None

    def get_user_by_access_token(self, token: str) -> Optional[UserRecord]:
        if not token:
            return None
        try:
            result = (
                self.client.table(self.users_table)
                .select("*")
                .eq("access_token", token)
                .limit(1)
                .execute()
            )
        except Exception as exc:
            raise StorageError(f"Failed to resolve access token: {exc}") from exc
        row = _first_row(result)
        return UserRecord.from_row(row) if row else None

    def create_user(self, record: UserRecord) -> UserRecord:
        """Insert a new record; the unique email constraint rejects duplicates."""
        if record.created_at is None:
            record.created_at = datetime.now(timezone.utc)
        row = {key: value for key, value in record.to_row().items() if value is not None}
        try:
            result = self.client.table(self.users_table).insert(row).execute()
        except Exception as exc:
            if _is_duplicate_key_error(exc):
                raise DuplicateRecordError(f"User {record.email} already exists") from exc
            raise StorageError(f"Failed to create user {record.email}: {exc}") from exc
        created = _first_row(result)
        return UserRecord.from_row(created) if created else record

    def update_user(self, email: str, updates: Dict[str, Any]) -> Optional[UserRecord]:
        payload = {key: _serialize(value) for key, value in updates.items()}
        try:
            result = (
                self.client.table(self.users_table)
                .update(payload)
                .eq("email", email)
                .execute()
            )
        except Exception as exc:
            raise StorageError(f"Failed to update user {email}: {exc}") from exc
        row = _first_row(result)
        return UserRecord.from_row(row) if row else None

    def assign_access_token(self, email: str, token: str) -> Optional[str]:
        """Set the token only while the column is still empty; return the stored token."""
        try:
            (
                self.client.table(self.users_table)
                .update({"access_token": token})
                .eq("email", email)
                .is_("access_token", "null")
                .execute()
            )
        except Exception as exc:
            raise StorageError(f"Failed to assign access token for {email}: {exc}") from exc
        current = self.get_user_by_email(email)
        return current.access_token if current else None

    def upsert_user(self, record: UserRecord) -> UserRecord:
        row = {key: value for key, value in record.to_row().items() if value is not None}
        try:
            result = (
                self.client.table(self.users_table)
                .upsert(row, on_conflict="email")
                .execute()
            )
        except Exception as exc:
            raise StorageError(f"Failed to upsert user {record.email}: {exc}") from exc
        stored = _first_row(result)
        return UserRecord.from_row(stored) if stored else record

    # ------------------------------------------------------------------
    # Processed-event ledger
    # ------------------------------------------------------------------
    def has_processed_event(self, stripe_event_id: str) -> bool:
        try:
            result = (
                self.client.table(self.events_table)
                .select("stripe_event_id")
                .eq("stripe_event_id", stripe_event_id)
                .limit(1)
                .execute()
            )
        except Exception as exc:
            raise StorageError(f"Failed to check event {stripe_event_id}: {exc}") from exc
        return _first_row(result) is not None

    def record_processed_event(self, event: ProcessedEvent) -> None:
        if event.processed_at is None:
            event.processed_at = datetime.now(timezone.utc)
        try:
            (
                self.client.table(self.events_table)
                .upsert(event.to_row(), on_conflict="stripe_event_id")
                .execute()
            )
        except Exception as exc:
            raise StorageError(f"Failed to record event {event.stripe_event_id}: {exc}") from exc

    def close(self) -> None:
        """Release the underlying HTTP session, if the client exposes one."""
        postgrest = getattr(self.client, "postgrest", None)
        session = getattr(postgrest, "session", None)
        if session is not None and hasattr(session, "close"):
            try:
                session.close()
            except Exception as exc:
                logger.warning("Error closing Supabase session: %s", exc)


def _serialize(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


# Simple alias for readability
DatabaseClient = SupabaseDatabaseClient


def create_database_client() -> SupabaseDatabaseClient:
    """Open a client from the current configuration; the caller owns its lifecycle."""
    return SupabaseDatabaseClient()
