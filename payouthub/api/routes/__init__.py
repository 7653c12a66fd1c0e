"""Route modules for the public API."""

from . import billing, users, webhooks

__all__ = ["billing", "users", "webhooks"]
