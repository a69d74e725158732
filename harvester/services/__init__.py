"""Shared service exports."""

from .api_keys import ApiKeyManager, choose_default_key, validate_key_input
from .apify import ApifyScrapingService, create_apify_service
from .jobs import JobTracker
from .profile_fetcher import FetchResult, InflightRegistry, ProfileFetcher

__all__ = [
    "ApiKeyManager",
    "ApifyScrapingService",
    "FetchResult",
    "InflightRegistry",
    "JobTracker",
    "ProfileFetcher",
    "choose_default_key",
    "create_apify_service",
    "validate_key_input",
]
