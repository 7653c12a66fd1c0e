"""Environment-driven runtime settings for the billing service."""

from __future__ import annotations

import os
from types import SimpleNamespace
from typing import Optional, Sequence, Tuple


def _env_str(
    name: str,
    default: Optional[str] = None,
    *,
    alias: Optional[str] = None,
    empty_to_none: bool = True,
) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None and alias:
        raw = os.getenv(alias)
    if raw is None:
        return default
    value = raw.strip()
    if not value and empty_to_none:
        return None if default is None else default
    return value if value else default


def _env_bool(name: str, default: bool, *, alias: Optional[str] = None) -> bool:
    raw = os.getenv(name)
    if raw is None and alias:
        raw = os.getenv(alias)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_tuple(name: str, default: Sequence[str]) -> Tuple[str, ...]:
    raw = os.getenv(name)
    if not raw:
        return tuple(default)
    items = tuple(part.strip() for part in raw.split(",") if part.strip())
    return items or tuple(default)


class Settings(SimpleNamespace):
    """Simple attribute container used throughout the codebase."""

CONFIG = Settings()


def _compute_values() -> dict[str, object]:
    # -----------------------------------------------------------------------
    # RUNTIME ENVIRONMENT
    # -----------------------------------------------------------------------
    environment = _env_str("ENV", "prod", empty_to_none=False).lower()
    if environment not in {"dev", "test", "prod"}:
        environment = "prod"
    is_development = environment == "dev"
    log_level = _env_str("LOG_LEVEL", "INFO", empty_to_none=False).upper()
    cors_origins = _env_tuple("API_CORS_ORIGINS", ())

    # -----------------------------------------------------------------------
    # SUPABASE (USER RECORD STORE)
    # -----------------------------------------------------------------------
    supabase_url = _env_str("SUPABASE_URL", None)
    supabase_anon_key = _env_str("SUPABASE_ANON_KEY", None)
    supabase_service_role_key = _env_str("SUPABASE_SERVICE_ROLE_KEY", None)
    billing_users_table = _env_str("BILLING_USERS_TABLE", "billing_users", empty_to_none=False)
    billing_events_table = _env_str("BILLING_EVENTS_TABLE", "billing_events", empty_to_none=False)

    # -----------------------------------------------------------------------
    # BILLING / STRIPE
    # -----------------------------------------------------------------------
    stripe_secret_key = _env_str("STRIPE_SECRET_KEY", None)
    stripe_publishable_key = _env_str("STRIPE_PUBLISHABLE_KEY", None)
    stripe_webhook_secret = _env_str("STRIPE_WEBHOOK_SECRET", None)
    stripe_webhook_tolerance = _env_int("STRIPE_WEBHOOK_TOLERANCE", 300)
    if stripe_webhook_tolerance <= 0:
        stripe_webhook_tolerance = 300
    stripe_checkout_success_url = _env_str("STRIPE_CHECKOUT_SUCCESS_URL", None)
    stripe_checkout_cancel_url = _env_str("STRIPE_CHECKOUT_CANCEL_URL", None)
    billing_default_provider = _env_str("BILLING_PROVIDER_DEFAULT", "stripe", empty_to_none=False).lower()
    billing_customer_description = _env_str(
        "BILLING_CUSTOMER_DESCRIPTION",
        "Cliente PayoutHub",
        empty_to_none=False,
    )
    # Strict mode answers 500 on reconciliation failures so Stripe redelivers.
    billing_webhook_strict = _env_bool("BILLING_WEBHOOK_STRICT", False)

    return {
        "environment": environment,
        "is_development": is_development,
        "log_level": log_level,
        "cors_origins": cors_origins,
        "supabase_url": supabase_url,
        "supabase_anon_key": supabase_anon_key,
        "supabase_service_role_key": supabase_service_role_key,
        "billing_users_table": billing_users_table,
        "billing_events_table": billing_events_table,
        "stripe_secret_key": stripe_secret_key,
        "stripe_publishable_key": stripe_publishable_key,
        "stripe_webhook_secret": stripe_webhook_secret,
        "stripe_webhook_tolerance": stripe_webhook_tolerance,
        "stripe_checkout_success_url": stripe_checkout_success_url,
        "stripe_checkout_cancel_url": stripe_checkout_cancel_url,
        "stripe_configured": bool(stripe_secret_key),
        "billing_default_provider": billing_default_provider,
        "billing_customer_description": billing_customer_description,
        "billing_webhook_strict": billing_webhook_strict,
    }


def reload_config() -> None:
    CONFIG.__dict__.update(_compute_values())


def load_envs(env_file: Optional[str] = None) -> None:
    """Load variables from a ``.env`` file and refresh ``CONFIG``."""
    from dotenv import load_dotenv

    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()
    reload_config()


# Load once on import so downstream modules can use CONFIG immediately.
reload_config()
