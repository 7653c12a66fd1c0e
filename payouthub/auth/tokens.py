"""Opaque access tokens handed to billing users."""

from __future__ import annotations

import secrets

TOKEN_BYTES = 32


def issue_access_token() -> str:
    """Return a URL-safe bearer token carrying 256 bits of randomness."""

    return secrets.token_urlsafe(TOKEN_BYTES)


__all__ = ["TOKEN_BYTES", "issue_access_token"]
