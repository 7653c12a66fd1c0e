"""
Database models for the billing user store.

Rows come back from Supabase as plain dictionaries; these dataclasses give
the billing core a typed view of them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class UserStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


@dataclass
class UserRecord:
    """One billing user, keyed by email."""
    email: str
    name: Optional[str] = None
    external_customer_id: Optional[str] = None
    status: UserStatus = UserStatus.INACTIVE
    plan: Optional[str] = None
    access_token: Optional[str] = None
    created_at: Optional[datetime] = None
    subscribed_at: Optional[datetime] = None
    renews_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE

    @property
    def display_name(self) -> str:
        return self.name or self.email.split("@")[0]

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "UserRecord":
        return cls(
            email=str(row["email"]),
            name=row.get("name"),
            external_customer_id=row.get("stripe_customer_id"),
            status=_parse_status(row.get("status")),
            plan=row.get("plan"),
            access_token=row.get("access_token"),
            created_at=parse_timestamp(row.get("created_at")),
            subscribed_at=parse_timestamp(row.get("subscribed_at")),
            renews_at=parse_timestamp(row.get("renews_at")),
            modified_at=parse_timestamp(row.get("modified_at")),
        )

    def to_row(self) -> Dict[str, Any]:
        return {
            "email": self.email,
            "name": self.name,
            "stripe_customer_id": self.external_customer_id,
            "status": self.status.value,
            "plan": self.plan,
            "access_token": self.access_token,
            "created_at": _to_iso(self.created_at),
            "subscribed_at": _to_iso(self.subscribed_at),
            "renews_at": _to_iso(self.renews_at),
            "modified_at": _to_iso(self.modified_at),
        }


@dataclass
class ProcessedEvent:
    """Ledger entry for a Stripe event that has already been reconciled."""
    stripe_event_id: str
    event_type: str
    email: Optional[str] = None
    processed_at: Optional[datetime] = None

    def to_row(self) -> Dict[str, Any]:
        return {
            "stripe_event_id": self.stripe_event_id,
            "event_type": self.event_type,
            "email": self.email,
            "processed_at": _to_iso(self.processed_at),
        }


def _parse_status(value: Any) -> UserStatus:
    if isinstance(value, UserStatus):
        return value
    normalised = str(value or "").strip().lower()
    if normalised in {"active", "ativo"}:
        return UserStatus.ACTIVE
    return UserStatus.INACTIVE


def parse_timestamp(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    raw = str(value).strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _to_iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()
