"""Apify-backed scraping client.

Two actor runs are supported: extracting the comments of one LinkedIn post
and extracting profile details for a batch of profile URLs. Each run returns
a dataset id (the job handle) which :meth:`ApifyScrapingService.get_dataset_items`
resolves into the scraped items.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from apify_client import ApifyClient

from ..config import CONFIG
from ..errors import ScrapeError, ValidationError


logger = logging.getLogger(__name__)

SUCCEEDED = "SUCCEEDED"


class ApifyScrapingService:
    """Thin wrapper over :class:`apify_client.ApifyClient`."""

    def __init__(
        self,
        api_token: str,
        *,
        comments_actor: Optional[str] = None,
        profiles_actor: Optional[str] = None,
        comments_limit: Optional[int] = None,
        client: Optional[ApifyClient] = None,
    ):
        if not api_token and client is None:
            raise ValidationError("An Apify API token is required")
        self.comments_actor = comments_actor or CONFIG.apify_comments_actor
        self.profiles_actor = profiles_actor or CONFIG.apify_profiles_actor
        self.comments_limit = comments_limit or CONFIG.apify_comments_limit
        self.client = client or ApifyClient(api_token)

    def _run_actor(self, actor_id: str, run_input: Dict[str, Any]) -> str:
        try:
            run = self.client.actor(actor_id).call(run_input=run_input)
        except Exception as exc:
            logger.error("Apify actor %s failed to run: %s", actor_id, exc)
            raise ScrapeError(f"Apify actor {actor_id} failed: {exc}") from exc

        if not run:
            raise ScrapeError(f"Apify actor {actor_id} returned no run")

        status = str(run.get("status") or "")
        if status and status != SUCCEEDED:
            message = run.get("statusMessage") or status
            raise ScrapeError(f"Apify actor {actor_id} finished with status {status}: {message}")

        dataset_id = run.get("defaultDatasetId")
        if not dataset_id:
            raise ScrapeError(f"Apify actor {actor_id} did not produce a dataset")

        logger.info("Apify actor %s finished, dataset %s", actor_id, dataset_id)
        return str(dataset_id)

    def scrape_post_comments(self, post_url: str) -> str:
        """Start comment extraction for a post; returns the dataset handle."""
        post_url = (post_url or "").strip()
        if not post_url:
            raise ValidationError("A LinkedIn post URL is required")
        return self._run_actor(
            self.comments_actor,
            {"posts": [post_url], "maxItems": self.comments_limit},
        )

    def scrape_profiles(self, profile_urls: Sequence[str]) -> str:
        """Start profile extraction for a batch of URLs; returns the dataset handle."""
        urls = [url.strip() for url in profile_urls if url and url.strip()]
        if not urls:
            raise ValidationError("At least one LinkedIn profile URL is required")
        return self._run_actor(self.profiles_actor, {"profileUrls": urls})

    def get_dataset_items(self, dataset_id: str) -> List[Dict[str, Any]]:
        try:
            page = self.client.dataset(dataset_id).list_items()
        except Exception as exc:
            logger.error("Failed to read Apify dataset %s: %s", dataset_id, exc)
            raise ScrapeError(f"Failed to read Apify dataset {dataset_id}: {exc}") from exc
        items = getattr(page, "items", None) or []
        return [item for item in items if isinstance(item, dict)]


def create_apify_service(api_token: str) -> ApifyScrapingService:
    return ApifyScrapingService(api_token)


__all__ = ["ApifyScrapingService", "create_apify_service"]
