"""FastAPI application exposing the billing JSON API and the Stripe webhook."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..config import CONFIG, reload_config
from ..db import create_database_client
from ..logger import configure_logging
from .errors import register_exception_handlers
from .routes import billing, users, webhooks

load_dotenv()
reload_config()
configure_logging(CONFIG.log_level)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(api_app: FastAPI) -> AsyncIterator[None]:
    # Tests install their own store on app.state before startup.
    owns_db = getattr(api_app.state, "db", None) is None
    if owns_db:
        api_app.state.db = create_database_client()
        logger.info("Billing store connected (%s)", CONFIG.billing_users_table)
    try:
        yield
    finally:
        if owns_db:
            api_app.state.db.close()
            api_app.state.db = None


app = FastAPI(
    title=os.getenv("API_TITLE", "PayoutHub Billing API"),
    version=os.getenv("API_VERSION", "1.0.0"),
    description=(
        "Stripe subscription checkout, webhook reconciliation and access-token "
        "lookups for PayoutHub customers."
    ),
    lifespan=lifespan,
)


def _configure_cors(api_app: FastAPI) -> None:
    origins = list(CONFIG.cors_origins)
    if not origins:
        return

    api_app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


_configure_cors(app)
register_exception_handlers(app)


@app.get("/health", tags=["health"])
def healthcheck() -> dict[str, str]:
    """Simple health endpoint for load balancers and smoke tests."""

    return {"status": "ok"}


app.include_router(billing.router, tags=["billing"])
app.include_router(users.router, tags=["users"])
app.include_router(webhooks.router, tags=["webhooks"])
