"""Lightweight logging helpers shared by the API and the billing core."""

from __future__ import annotations

import logging
from typing import Any, Optional

_LOGGER = logging.getLogger("payouthub")


def _coerce(parts: tuple[object, ...]) -> str:
    rendered = " ".join(str(part) for part in parts if part is not None)
    return rendered.strip()


def configure_logging(level: Optional[str] = None) -> None:
    """Install a basic handler once; later calls only adjust the level."""

    resolved = logging.getLevelName((level or "INFO").upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=resolved,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    _LOGGER.setLevel(resolved)


def log(*parts: object, level: int = logging.INFO, **metadata: Any) -> None:
    """
    Emit a log message with optional key-value context.

    Billing code passes identifiers such as ``email`` or ``event_id`` as
    keyword arguments; they are appended to the message so every line can be
    correlated with the Stripe event that produced it.
    """

    message = _coerce(parts)
    if metadata:
        rendered = " ".join(f"{key}={value}" for key, value in metadata.items())
        message = f"{message} | {rendered}"

    if not logging.getLogger().handlers and not _LOGGER.handlers:
        logging.basicConfig(level=logging.INFO)

    _LOGGER.log(level, message)


__all__ = ["configure_logging", "log"]
