"""Tests for the deduplicating profile fetcher."""

from __future__ import annotations

import threading

import pytest

from conftest import StubScraper
from harvester.errors import ScrapeError
from harvester.services.profile_fetcher import (
    InflightRegistry,
    ProfileFetcher,
    extract_profile_url,
    normalize_urls,
)

ADA = "https://www.linkedin.com/in/ada"
GRACE = "https://www.linkedin.com/in/grace"


def _fetcher(db, scraper, **kwargs) -> ProfileFetcher:
    return ProfileFetcher(db, scraper, registry=InflightRegistry(), **kwargs)


def test_only_missing_urls_are_scraped(stub_db, stub_scraper) -> None:
    stub_db.add_profile("user-0", ADA, {"linkedinUrl": ADA, "fullName": "Ada"})

    result = _fetcher(stub_db, stub_scraper).fetch([ADA, GRACE], "user-1")

    assert stub_scraper.profile_calls == [[GRACE]]
    assert result.saved_calls == 1
    assert result.fetched == 1
    assert len(result.profiles) == 2
    assert stub_db.profiles[GRACE]["user_id"] == "user-1"
    # The stored profile keeps its original owner.
    assert stub_db.profiles[ADA]["user_id"] == "user-0"


def test_fully_stored_batch_makes_no_scrape_call(stub_db, stub_scraper) -> None:
    stub_db.add_profile("user-0", ADA, {"linkedinUrl": ADA})
    stub_db.add_profile("user-0", GRACE, {"linkedinUrl": GRACE})

    result = _fetcher(stub_db, stub_scraper).fetch([ADA, GRACE], "user-1")

    assert stub_scraper.profile_calls == []
    assert result.saved_calls == 2
    assert result.fetched == 0


def test_duplicate_inputs_are_requested_once(stub_db, stub_scraper) -> None:
    result = _fetcher(stub_db, stub_scraper).fetch([ADA, f" {ADA} ", GRACE], "user-1")

    assert stub_scraper.profile_calls == [[ADA, GRACE]]
    assert result.requested == 2


def test_items_without_url_are_dropped(stub_db) -> None:
    scraper = StubScraper(profiles=[{"linkedinUrl": ADA}, {"fullName": "No Url"}])

    result = _fetcher(stub_db, scraper).fetch([ADA, GRACE], "user-1")

    assert result.fetched == 1
    assert result.dropped == 1
    assert list(stub_db.profiles) == [ADA]


def test_scrape_failure_writes_nothing_and_releases_claims(stub_db) -> None:
    registry = InflightRegistry()
    scraper = StubScraper(error=ScrapeError("actor failed"))
    fetcher = ProfileFetcher(stub_db, scraper, registry=registry)

    with pytest.raises(ScrapeError):
        fetcher.fetch([ADA], "user-1")

    assert stub_db.profiles == {}
    assert registry.in_flight() == set()


def test_force_rescrapes_stored_profiles_and_keeps_tags(stub_db, stub_scraper) -> None:
    stub_db.add_profile("user-0", ADA, {"linkedinUrl": ADA, "fullName": "Old"}, ["vip"])

    result = _fetcher(stub_db, stub_scraper).fetch([ADA], "user-1", force=True)

    assert stub_scraper.profile_calls == [[ADA]]
    assert result.saved_calls == 0
    assert stub_db.profiles[ADA]["profile_data"]["fullName"] == "ada"
    assert stub_db.profiles[ADA]["tags"] == ["vip"]


def test_progress_is_reported(stub_db, stub_scraper) -> None:
    updates = []

    _fetcher(stub_db, stub_scraper, progress=lambda p, m: updates.append(p)).fetch([ADA], "user-1")

    assert updates == [30, 50, 70, 90]


def test_waits_for_concurrent_scrape_and_reuses_result(stub_db, stub_scraper) -> None:
    registry = InflightRegistry()
    claimed, _ = registry.claim_all([ADA])
    assert claimed

    def finish_other_scrape() -> None:
        stub_db.add_profile("user-0", ADA, {"linkedinUrl": ADA, "fullName": "Ada"})
        registry.release([ADA])

    timer = threading.Timer(0.05, finish_other_scrape)
    timer.start()
    try:
        result = ProfileFetcher(stub_db, stub_scraper, registry=registry, wait_seconds=2).fetch([ADA], "user-1")
    finally:
        timer.join()

    assert stub_scraper.profile_calls == []
    assert result.saved_calls == 1
    assert result.profiles == [{"linkedinUrl": ADA, "fullName": "Ada"}]


def test_registry_claims_all_or_nothing() -> None:
    registry = InflightRegistry()

    assert registry.claim_all([ADA]) == (True, {})
    claimed, busy = registry.claim_all([ADA, GRACE])

    assert claimed is False
    assert set(busy) == {ADA}
    assert registry.in_flight() == {ADA}

    registry.release([ADA])
    assert busy[ADA].is_set()
    assert registry.in_flight() == set()


def test_extract_profile_url_and_normalize() -> None:
    assert extract_profile_url({"profileUrl": f" {ADA} "}) == ADA
    assert extract_profile_url({"url": ""}) is None
    assert normalize_urls([ADA, "", None, ADA, GRACE]) == [ADA, GRACE]


def test_wait_timeout_scrapes_without_touching_foreign_claim(stub_db, stub_scraper) -> None:
    registry = InflightRegistry()
    registry.claim_all([ADA])

    result = ProfileFetcher(stub_db, stub_scraper, registry=registry, wait_seconds=0.05).fetch([ADA], "user-1")

    assert stub_scraper.profile_calls == [[ADA]]
    assert result.fetched == 1
    assert registry.in_flight() == {ADA}
