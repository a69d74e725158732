"""Scraping endpoints for the public API."""

from __future__ import annotations

import logging
from typing import Optional, Union

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from harvester.api.dependencies import get_orchestrator, to_http_exception
from harvester.api.schemas import (
    FetchSummary,
    JobResponse,
    ScrapeRequest,
    ScrapeResponse,
    SelectedProfilesRequest,
)
from harvester.config import CONFIG
from harvester.core import ScrapeOrchestrator, ScrapeOutcome
from harvester.db.models import JobType, ScrapingJob
from harvester.errors import HarvesterError
from harvester.worker.tasks import run_scrape_job


logger = logging.getLogger(__name__)

router = APIRouter()


def _to_response(outcome: ScrapeOutcome) -> ScrapeResponse:
    summary = None
    if outcome.fetch is not None:
        summary = FetchSummary(
            requested=outcome.fetch.requested,
            saved_calls=outcome.fetch.saved_calls,
            fetched=outcome.fetch.fetched,
            dropped=outcome.fetch.dropped,
        )
    return ScrapeResponse(
        job=JobResponse.from_job(outcome.job),
        comments=outcome.comments,
        profiles=outcome.profiles,
        summary=summary,
    )


@router.post("/scrape", response_model=ScrapeResponse, status_code=status.HTTP_200_OK)
def scrape(
    request: ScrapeRequest,
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
) -> Union[ScrapeResponse, JSONResponse]:
    """Run a scraping job inline, or queue it when ``background`` is set."""

    if request.background:
        return _enqueue(request, orchestrator)

    try:
        outcome = orchestrator.scrape(JobType(request.job_type), request.url)
    except HarvesterError as exc:
        raise to_http_exception(exc) from exc
    return _to_response(outcome)


def _submit(job: ScrapingJob, auth_user_id: Optional[str]) -> None:
    run_scrape_job.apply_async(args=[job.id, auth_user_id], queue=CONFIG.celery_default_queue)


def _enqueue(request: ScrapeRequest, orchestrator: ScrapeOrchestrator) -> JSONResponse:
    try:
        job = orchestrator.enqueue(JobType(request.job_type), request.url, _submit)
    except HarvesterError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:
        logger.error("Failed to enqueue scraping job: %s", exc)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Unable to enqueue job") from exc

    return JSONResponse(
        status_code=status.HTTP_202_ACCEPTED,
        content={"job": JobResponse.from_job(job).model_dump(mode="json")},
    )


@router.post("/scrape/selected", response_model=ScrapeResponse, status_code=status.HTTP_200_OK)
def scrape_selected(
    request: SelectedProfilesRequest,
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
) -> ScrapeResponse:
    """Scrape the profiles of commenters picked from a comments result."""

    try:
        outcome = orchestrator.scrape_selected_profiles(request.profile_urls)
    except HarvesterError as exc:
        raise to_http_exception(exc) from exc
    return _to_response(outcome)
