"""FastAPI dependencies shared across the public API."""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status

from ..auth import AccessTokenAuthManager
from ..billing import BillingProvider, get_billing_provider
from ..db import DatabaseClient, UserRecord


def get_database(request: Request) -> DatabaseClient:
    """Return the database client opened by the application lifespan."""

    db = getattr(request.app.state, "db", None)
    if db is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database is not available",
        )
    return db


def get_provider() -> BillingProvider:
    """Return the configured billing provider or fail with 503."""

    try:
        provider = get_billing_provider()
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Billing provider is not available",
        ) from exc
    if not provider.is_configured():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Billing provider is not configured",
        )
    return provider


def get_authenticated_user(
    authorization: Optional[str] = Header(None),
    db: DatabaseClient = Depends(get_database),
) -> UserRecord:
    """Resolve ``Authorization: Bearer <access token>`` to a billing user."""

    return AccessTokenAuthManager(db).require_user(authorization)
