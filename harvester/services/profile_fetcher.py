"""Profile fetching that reuses stored profiles before paying for a scrape.

Requested URLs are split into the ones already stored in ``linkedin_profiles``
and the ones that are missing. Only the missing URLs are sent to Apify, in a
single batch, and every returned profile is upserted by its URL before being
merged with the stored ones.

Within one process, a URL that another fetch is currently scraping is not
scraped twice: the second fetch waits for the first to finish and then reads
the stored copy. Fetches in different processes can still race; the unique
key on ``linkedin_url`` makes the last writer win.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from ..config import CONFIG


logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, str], None]

PROFILE_URL_KEYS = ("linkedinUrl", "linkedin_url", "profileUrl", "url")


def extract_profile_url(item: Dict[str, Any]) -> Optional[str]:
    """Return the profile URL carried by a scraped item, if any."""
    for key in PROFILE_URL_KEYS:
        value = item.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def normalize_urls(urls: Iterable[str]) -> List[str]:
    seen: set[str] = set()
    ordered: List[str] = []
    for url in urls:
        if not isinstance(url, str):
            continue
        candidate = url.strip()
        if candidate and candidate not in seen:
            seen.add(candidate)
            ordered.append(candidate)
    return ordered


@dataclass
class FetchResult:
    profiles: List[Dict[str, Any]] = field(default_factory=list)
    requested: int = 0
    saved_calls: int = 0
    fetched: int = 0
    dropped: int = 0
    scraped_urls: List[str] = field(default_factory=list)


class InflightRegistry:
    """Tracks which profile URLs are being scraped right now in this process."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._events: Dict[str, threading.Event] = {}

    def claim_all(self, urls: List[str]) -> Tuple[bool, Dict[str, threading.Event]]:
        """Claim every URL, or none of them.

        Returns ``(True, {})`` on success. When any URL is already claimed,
        nothing is claimed and the events of the busy URLs are returned so the
        caller can wait on them without holding claims of its own.
        """
        with self._lock:
            busy = {url: self._events[url] for url in urls if url in self._events}
            if busy:
                return False, busy
            for url in urls:
                self._events[url] = threading.Event()
            return True, {}

    def release(self, urls: Iterable[str]) -> None:
        with self._lock:
            for url in urls:
                event = self._events.pop(url, None)
                if event is not None:
                    event.set()

    def in_flight(self) -> set[str]:
        with self._lock:
            return set(self._events)


_default_registry = InflightRegistry()


class ProfileFetcher:
    def __init__(
        self,
        db,
        scraper,
        *,
        registry: Optional[InflightRegistry] = None,
        wait_seconds: Optional[float] = None,
        progress: Optional[ProgressCallback] = None,
    ):
        self.db = db
        self.scraper = scraper
        self.registry = registry or _default_registry
        self.wait_seconds = CONFIG.inflight_wait_seconds if wait_seconds is None else wait_seconds
        self.progress = progress

    def _report(self, percent: int, message: str) -> None:
        if self.progress is not None:
            self.progress(percent, message)

    def _lookup(self, url: str) -> Optional[Dict[str, Any]]:
        record = self.db.get_profile_by_url(url)
        if not record:
            return None
        payload = record.get("profile_data")
        return payload if isinstance(payload, dict) else {}

    def _acquire(self, missing: List[str]) -> Tuple[List[str], List[Dict[str, Any]], bool]:
        """Claim ``missing`` for scraping, waiting out concurrent scrapes.

        Returns the URLs still to scrape, payloads that became available while
        waiting, and whether the URLs are claimed (and must be released).
        """
        pending = list(missing)
        resolved: List[Dict[str, Any]] = []
        deadline = time.monotonic() + self.wait_seconds

        while pending:
            claimed, busy = self.registry.claim_all(pending)
            if claimed:
                return pending, resolved, True

            for url, event in busy.items():
                remaining = deadline - time.monotonic()
                if remaining <= 0 or not event.wait(remaining):
                    logger.warning("Timed out waiting for concurrent scrape of %s; scraping anyway", url)
                    return pending, resolved, False

            still_missing: List[str] = []
            for url in pending:
                payload = self._lookup(url) if url in busy else None
                if payload is not None:
                    resolved.append(payload)
                else:
                    still_missing.append(url)
            pending = still_missing

        return [], resolved, False

    def fetch(self, urls: Iterable[str], owner_id: str, *, force: bool = False) -> FetchResult:
        """Return one payload per requested URL, scraping only what is not stored.

        ``force`` skips the stored lookup so every URL is scraped again.
        Raises :class:`~harvester.errors.ScrapeError` when the batch scrape
        fails; in that case nothing from the batch is written.
        """
        ordered = normalize_urls(urls)
        result = FetchResult(requested=len(ordered))

        self._report(30, "Checking database for existing profiles...")
        missing: List[str] = []
        for url in ordered:
            payload = None if force else self._lookup(url)
            if payload is not None:
                result.profiles.append(payload)
            else:
                missing.append(url)
        result.saved_calls = len(result.profiles)

        if not missing:
            self._report(90, f"Completed! Saved {result.saved_calls} API calls by using cached profiles.")
            return result

        to_scrape, resolved_while_waiting, claimed = self._acquire(missing)
        result.profiles.extend(resolved_while_waiting)
        result.saved_calls += len(resolved_while_waiting)

        try:
            if to_scrape:
                self._report(
                    50,
                    f"Scraping {len(to_scrape)} new profiles (saved {result.saved_calls} API calls)...",
                )
                handle = self.scraper.scrape_profiles(to_scrape)
                items = self.scraper.get_dataset_items(handle)
                result.scraped_urls = list(to_scrape)

                self._report(70, "Saving new profiles to database...")
                for item in items:
                    profile_url = extract_profile_url(item)
                    if not profile_url:
                        result.dropped += 1
                        continue
                    self.db.upsert_profile(owner_id, profile_url, item)
                    result.profiles.append(item)
                    result.fetched += 1
        finally:
            if claimed:
                self.registry.release(to_scrape)

        if result.dropped:
            logger.info("Dropped %s scraped items without a profile URL", result.dropped)
        self._report(90, f"Completed! Saved {result.saved_calls} API calls by using cached profiles.")
        return result


__all__ = [
    "FetchResult",
    "InflightRegistry",
    "ProfileFetcher",
    "extract_profile_url",
    "normalize_urls",
]
