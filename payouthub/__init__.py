"""
PayoutHub billing backend.

This package contains:
- api: FastAPI application, routes and request/response schemas
- auth: access token issuing and bearer authentication
- billing: Stripe integration, plan resolution and webhook reconciliation
- db: user record store backed by Supabase
"""
