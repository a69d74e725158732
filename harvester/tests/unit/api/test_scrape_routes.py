"""Tests for the scraping, key, profile and job routes."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from fastapi import HTTPException

from conftest import StubScraper
from harvester.api.routes import jobs as jobs_routes
from harvester.api.routes import keys as keys_routes
from harvester.api.routes import profiles as profiles_routes
from harvester.api.routes import scrape as scrape_routes
from harvester.api.routes import state as state_routes
from harvester.api.schemas import (
    ApiKeyCreateRequest,
    DeleteProfilesRequest,
    ScrapeRequest,
    StoreProfilesRequest,
    TabRequest,
)
from harvester.core.orchestrator import ScrapeOrchestrator
from harvester.core.state import StateStore
from harvester.errors import ScrapeError
from harvester.services.profile_fetcher import InflightRegistry

POST = "https://www.linkedin.com/posts/someone_activity-1"
ADA = "https://www.linkedin.com/in/ada"


def _orchestrator(stub_db, scraper=None, *, with_key: bool = True) -> ScrapeOrchestrator:
    scraper = scraper or StubScraper()
    orchestrator = ScrapeOrchestrator(
        stub_db,
        StateStore(),
        scraper_factory=lambda token: scraper,
        registry=InflightRegistry(),
    )
    orchestrator.sign_in({"id": "auth-1", "email": "ada@example.com"})
    if with_key:
        orchestrator.create_key("main", "apify_api_1234567890")
    return orchestrator


def test_create_key_returns_masked_preview(stub_db) -> None:
    orchestrator = _orchestrator(stub_db, with_key=False)

    result = keys_routes.create_key(ApiKeyCreateRequest(key_name="main", api_key="apify_api_1234567890"), orchestrator)

    assert result.api_key_preview == "apify_api_..."
    assert result.selected is True


def test_create_key_rejects_short_key(stub_db) -> None:
    orchestrator = _orchestrator(stub_db, with_key=False)

    with pytest.raises(HTTPException) as exc:
        keys_routes.create_key(ApiKeyCreateRequest(key_name="main", api_key="short"), orchestrator)

    assert exc.value.status_code == 400


def test_delete_key_reports_new_selection(stub_db) -> None:
    orchestrator = _orchestrator(stub_db)
    key_id = orchestrator.store.state.selected_key_id

    result = keys_routes.delete_key(key_id, orchestrator)

    assert result == {"deleted": key_id, "selected_key_id": None}


def test_inline_scrape_returns_results(stub_db) -> None:
    scraper = StubScraper(comments=[{"text": "hi", "actor": {"linkedinUrl": ADA}}])
    orchestrator = _orchestrator(stub_db, scraper)

    response = scrape_routes.scrape(ScrapeRequest(job_type="post_comments", url=POST), orchestrator)

    assert response.job.status == "completed"
    assert response.job.results_count == 1
    assert response.summary is None


def test_inline_scrape_failure_maps_to_bad_gateway(stub_db) -> None:
    orchestrator = _orchestrator(stub_db, StubScraper(error=ScrapeError("actor failed")))

    with pytest.raises(HTTPException) as exc:
        scrape_routes.scrape(ScrapeRequest(job_type="mixed", url=POST), orchestrator)

    assert exc.value.status_code == 502
    (job,) = stub_db.jobs.values()
    assert job["status"] == "failed"


def test_background_scrape_enqueues_task(stub_db, monkeypatch: pytest.MonkeyPatch) -> None:
    orchestrator = _orchestrator(stub_db)
    calls = []
    monkeypatch.setattr(
        scrape_routes,
        "run_scrape_job",
        SimpleNamespace(apply_async=lambda args, queue: calls.append((args, queue))),
    )

    response = scrape_routes.scrape(ScrapeRequest(job_type="post_comments", url=POST, background=True), orchestrator)

    (job_id,) = stub_db.jobs
    assert response.status_code == 202
    assert calls == [([job_id, "auth-1"], "scrapes")]
    assert stub_db.jobs[job_id]["status"] == "running"


def test_background_enqueue_failure_fails_job(stub_db, monkeypatch: pytest.MonkeyPatch) -> None:
    orchestrator = _orchestrator(stub_db)

    def broken_apply_async(args, queue):
        raise ConnectionError("broker unreachable")

    monkeypatch.setattr(scrape_routes, "run_scrape_job", SimpleNamespace(apply_async=broken_apply_async))

    with pytest.raises(HTTPException) as exc:
        scrape_routes.scrape(ScrapeRequest(job_type="post_comments", url=POST, background=True), orchestrator)

    assert exc.value.status_code == 503
    (job,) = stub_db.jobs.values()
    assert job["status"] == "failed"
    assert "broker unreachable" in job["error_message"]


def test_store_and_delete_profiles(stub_db) -> None:
    orchestrator = _orchestrator(stub_db)

    stored = profiles_routes.store_profiles(
        StoreProfilesRequest(profiles=[{"linkedinUrl": ADA}], tags="lead, vip"),
        orchestrator,
    )
    assert stored.stored == 1
    assert stored.tags == ["lead", "vip"]

    listed = profiles_routes.list_profiles("mine", orchestrator)
    assert [profile.linkedin_url for profile in listed] == [ADA]

    deleted = profiles_routes.delete_profiles(DeleteProfilesRequest(profile_ids=[listed[0].id]), orchestrator)
    assert deleted.deleted == 1


def test_job_routes(stub_db) -> None:
    orchestrator = _orchestrator(stub_db)
    scrape_routes.scrape(ScrapeRequest(job_type="post_comments", url=POST), orchestrator)

    listed = jobs_routes.list_jobs(50, orchestrator)
    assert len(listed) == 1
    assert jobs_routes.get_job(listed[0].id, orchestrator).status == "completed"

    with pytest.raises(HTTPException) as exc:
        jobs_routes.get_job("job-missing", orchestrator)
    assert exc.value.status_code == 404


def test_change_tab_returns_state(stub_db) -> None:
    orchestrator = _orchestrator(stub_db)

    result = state_routes.change_tab(TabRequest(tab="jobs"), orchestrator)

    assert result["active_tab"] == "jobs"
    assert result["user"]["auth_user_id"] == "auth-1"


def test_background_scrape_resets_session_progress(stub_db, monkeypatch: pytest.MonkeyPatch) -> None:
    orchestrator = _orchestrator(stub_db)
    monkeypatch.setattr(scrape_routes, "run_scrape_job", SimpleNamespace(apply_async=lambda args, queue: None))

    scrape_routes.scrape(ScrapeRequest(job_type="post_comments", url=POST, background=True), orchestrator)

    state = orchestrator.store.state
    assert state.is_scraping is False
    assert [row["status"] for row in state.jobs] == ["running"]


def test_background_enqueue_failure_updates_session(stub_db, monkeypatch: pytest.MonkeyPatch) -> None:
    orchestrator = _orchestrator(stub_db)

    def broken_apply_async(args, queue):
        raise ConnectionError("broker down")

    monkeypatch.setattr(scrape_routes, "run_scrape_job", SimpleNamespace(apply_async=broken_apply_async))

    with pytest.raises(HTTPException):
        scrape_routes.scrape(ScrapeRequest(job_type="post_comments", url=POST, background=True), orchestrator)

    state = orchestrator.store.state
    assert state.is_scraping is False
    assert state.progress.stage.value == "error"
    assert [row["status"] for row in state.jobs] == ["failed"]


def test_sign_out_route_forgets_session(stub_db) -> None:
    from harvester.api import dependencies

    auth_user = {"id": "auth-1", "email": "ada@example.com"}
    orchestrator = dependencies.get_orchestrator(auth_user, stub_db)

    assert state_routes.sign_out(orchestrator) == {"status": "signed_out"}
    assert dependencies.get_orchestrator(auth_user, stub_db).store is not orchestrator.store


def test_back_route_returns_form_view(stub_db) -> None:
    orchestrator = _orchestrator(stub_db)

    result = state_routes.back_to_form(orchestrator)

    assert result["current_view"] == "form"
