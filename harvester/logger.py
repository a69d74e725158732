"""Lightweight logging helper shared by the service, worker and CLI."""

from __future__ import annotations

import logging
from typing import Any, Optional

_LOGGER = logging.getLogger("harvester")


def _coerce(parts: tuple[object, ...]) -> str:
    rendered = " ".join(str(part) for part in parts if part is not None)
    return rendered.strip()


def mask_secret(value: Optional[str], visible: int = 10) -> str:
    """Return a log-safe preview of a secret such as an Apify token."""

    if not value:
        return ""
    if len(value) <= visible:
        return "*" * len(value)
    return f"{value[:visible]}..."


def log(*parts: object, **metadata: Any) -> None:
    """
    Emit an info-level log message.

    Keyword arguments are appended to the message so call sites can attach
    identifiers (``job_id``, ``user_id``) without building strings by hand.
    """

    message = _coerce(parts)
    if metadata:
        message = f"{message} | {metadata}"

    if not _LOGGER.handlers:
        logging.basicConfig(level=logging.INFO)

    _LOGGER.info(message)


__all__ = ["log", "mask_secret"]
