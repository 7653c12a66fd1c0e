"""
Bearer authentication against the billing user store.

Access tokens are opaque strings issued by the reconciler; a request is
authenticated by looking its token up in the ``billing_users`` table.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import HTTPException, status

from ..db import DatabaseClient, UserRecord

logger = logging.getLogger(__name__)


class AccessTokenAuthManager:
    """Resolves ``Authorization: Bearer <token>`` headers to user records."""

    def __init__(self, db: DatabaseClient):
        self._db = db

    @staticmethod
    def extract_token(authorization: Optional[str]) -> Optional[str]:
        if not authorization:
            return None
        scheme, _, token = authorization.strip().partition(" ")
        if scheme.lower() != "bearer":
            return None
        token = token.strip()
        return token or None

    def get_user_from_token(self, token: str) -> Optional[UserRecord]:
        if not token:
            logger.debug("get_user_from_token received empty token")
            return None
        return self._db.get_user_by_access_token(token)

    def require_user(self, authorization: Optional[str]) -> UserRecord:
        """Return the authenticated record or raise a 401."""

        token = self.extract_token(authorization)
        if not token:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="API key não fornecida",
                headers={"WWW-Authenticate": "Bearer"},
            )
        user = self.get_user_from_token(token)
        if user is None:
            logger.warning("Rejected request with unknown access token")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="API key inválida",
                headers={"WWW-Authenticate": "Bearer"},
            )
        return user


__all__ = ["AccessTokenAuthManager"]
