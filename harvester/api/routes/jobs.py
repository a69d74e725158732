"""Scraping job history endpoints."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from harvester.api.dependencies import get_orchestrator, to_http_exception
from harvester.api.schemas import JobResponse
from harvester.core import ScrapeOrchestrator
from harvester.errors import HarvesterError

router = APIRouter()


@router.get("/jobs", response_model=List[JobResponse], status_code=status.HTTP_200_OK)
def list_jobs(
    limit: int = Query(50, ge=1, le=200),
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
) -> List[JobResponse]:
    try:
        jobs = orchestrator.jobs.list_recent(orchestrator.user_id, limit=limit)
    except HarvesterError as exc:
        raise to_http_exception(exc) from exc
    return [JobResponse.from_job(job) for job in jobs]


@router.get("/jobs/{job_id}", response_model=JobResponse, status_code=status.HTTP_200_OK)
def get_job(
    job_id: str,
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
) -> JobResponse:
    try:
        job = orchestrator.jobs.get(job_id, orchestrator.user_id)
    except HarvesterError as exc:
        raise to_http_exception(exc) from exc
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    return JobResponse.from_job(job)
