"""Error taxonomy shared by the billing core and the HTTP layer."""

from __future__ import annotations


class BillingError(Exception):
    """Base class for every error raised by the billing package."""


class ValidationError(BillingError):
    """A required input field is missing or malformed."""


class InvalidPlanError(BillingError):
    """The requested plan or interval is not supported."""


class VerificationError(BillingError):
    """A webhook payload failed signature verification."""

    BAD_SIGNATURE = "bad_signature"
    STALE = "stale"

    def __init__(self, reason: str, message: str = "") -> None:
        self.reason = reason
        super().__init__(message or reason)


class UpstreamError(BillingError):
    """A call to the payment provider failed."""


class ProviderNotConfiguredError(UpstreamError):
    """Raised when a billing provider is missing required configuration."""


class StorageError(BillingError):
    """A read or write against the user record store failed."""


class DuplicateRecordError(StorageError):
    """An insert collided with an existing row for the same key."""


class RecordNotFoundError(BillingError):
    """A reconciliation step expected a user record that does not exist."""


__all__ = [
    "BillingError",
    "ValidationError",
    "InvalidPlanError",
    "VerificationError",
    "UpstreamError",
    "ProviderNotConfiguredError",
    "StorageError",
    "DuplicateRecordError",
    "RecordNotFoundError",
]
