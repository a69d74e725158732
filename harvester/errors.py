"""Exception types shared across the harvester packages."""

from __future__ import annotations

from typing import Optional


class HarvesterError(Exception):
    """Base class for all errors raised by the service layer."""


class ConfigurationError(HarvesterError):
    """Required external-service credentials are missing."""


class StoreError(HarvesterError):
    """A Supabase query failed for a reason other than "no rows"."""

    def __init__(self, message: str, *, operation: str = "", code: Optional[str] = None):
        super().__init__(message)
        self.operation = operation
        self.code = code


class DuplicateRecordError(StoreError):
    """A unique constraint rejected the write."""


class ScrapeError(HarvesterError):
    """The Apify API rejected or failed a scraping request."""


class ValidationError(HarvesterError):
    """User input was rejected before any external call was made."""


class AuthenticationError(HarvesterError):
    """The caller is not signed in or has no usable API key selected."""


class JobTransitionError(HarvesterError):
    """A job status change would leave a terminal state or skip a step."""


__all__ = [
    "HarvesterError",
    "ConfigurationError",
    "StoreError",
    "DuplicateRecordError",
    "ScrapeError",
    "ValidationError",
    "AuthenticationError",
    "JobTransitionError",
]
