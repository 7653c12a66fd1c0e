"""
Database module for the billing backend.

This module provides:
- Supabase client for the billing user table
- Typed user and processed-event records
"""

from .client import DatabaseClient, SupabaseDatabaseClient, create_database_client
from .models import ProcessedEvent, UserRecord, UserStatus

__all__ = [
    "DatabaseClient",
    "SupabaseDatabaseClient",
    "create_database_client",
    "ProcessedEvent",
    "UserRecord",
    "UserStatus",
]
