"""Utility to inspect a billing user record and its live Stripe subscription.

Run with:

    python -m scripts.inspect_billing_user --email <address> [--stripe]

Requires SUPABASE_URL/SUPABASE_SERVICE_ROLE_KEY environment variables, and
STRIPE_SECRET_KEY when ``--stripe`` is passed.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Dict, Optional


def get_database():
    from payouthub.config import load_envs
    from payouthub.db import create_database_client  # Lazy import to ensure env is loaded

    load_envs()
    return create_database_client()


def dump(obj: Dict[str, Any]) -> str:
    return json.dumps(obj, indent=2, sort_keys=True, default=str)


def inspect_user(email: str, *, with_stripe: bool = False, db: Optional[Any] = None, provider: Optional[Any] = None) -> int:
    db = db or get_database()
    record = db.get_user_by_email(email)
    if record is None:
        print("No billing user found", file=sys.stderr)
        return 1

    row = record.to_row()
    # Never print the full token.
    if row.get("access_token"):
        row["access_token"] = row["access_token"][:6] + "..."
    print("Billing user:\n" + dump(row))

    if not with_stripe:
        return 0

    if not record.external_customer_id:
        print("\nNo Stripe customer linked")
        return 0

    if provider is None:
        from payouthub.billing import get_billing_provider

        provider = get_billing_provider()
    subscription = provider.get_active_subscription(record.external_customer_id)
    if subscription:
        print("\nActive Stripe subscription:\n" + dump(subscription))
    else:
        print("\nNo active Stripe subscription")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Inspect a billing user from the database")
    parser.add_argument("--email", required=True, help="Customer email address")
    parser.add_argument("--stripe", action="store_true", help="Also fetch the live Stripe subscription")
    args = parser.parse_args()

    return inspect_user(args.email.strip(), with_stripe=args.stripe)


if __name__ == "__main__":
    raise SystemExit(main())
