"""
Authentication helpers.

This module provides:
- Access token issuing for billing users
- Bearer token validation against the user store
"""

from .manager import AccessTokenAuthManager
from .tokens import issue_access_token

__all__ = [
    "AccessTokenAuthManager",
    "issue_access_token",
]
