"""Celery task definitions for background scraping.

The API creates the job record (status ``running``) before queueing, so a
task only has to execute it. Tasks are not retried: a failed scrape is
recorded on the job and the task returns.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from celery.utils.log import get_task_logger

from harvester.core import open_session
from harvester.db import JobStatus, get_database_client
from harvester.errors import HarvesterError
from harvester.services.jobs import JobTracker

from .celery_app import celery_app


logger = get_task_logger(__name__)


def _result(job_id: str, status: str, **extra: Any) -> Dict[str, Any]:
    return {"job_id": job_id, "status": status, **extra}


@celery_app.task(bind=True, name="scrape.run")
def run_scrape_job(self, job_id: str, auth_user_id: Optional[str]) -> Dict[str, Any]:
    """Execute a previously created scraping job for its owner."""

    db = get_database_client()
    logger.info("Starting scraping job %s", job_id)

    if not auth_user_id or not db.get_user_by_auth_id(auth_user_id):
        message = "Job owner could not be resolved"
        JobTracker(db).fail_quietly(job_id, message)
        return _result(job_id, JobStatus.FAILED.value, error=message)

    orchestrator = open_session({"id": auth_user_id}, db)
    job = orchestrator.jobs.get(job_id, orchestrator.user_id)
    if job is None:
        logger.warning("Scraping job %s not found for user %s", job_id, auth_user_id)
        return _result(job_id, "missing")
    if job.status != JobStatus.RUNNING:
        logger.info("Scraping job %s already %s; skipping", job_id, job.status.value)
        return _result(job_id, job.status.value)

    key = orchestrator.keys.get_key(orchestrator.user_id, job.apify_key_id) if job.apify_key_id else None
    if key is None:
        message = "Invalid API key selected"
        orchestrator.jobs.fail_quietly(job_id, message)
        return _result(job_id, JobStatus.FAILED.value, error=message)

    try:
        outcome = orchestrator.run_job(job, key.api_key)
    except HarvesterError as exc:
        logger.error("Scraping job %s failed: %s", job_id, exc)
        return _result(job_id, JobStatus.FAILED.value, error=str(exc))

    logger.info("Scraping job %s completed with %s results", job_id, outcome.results_count)
    return _result(job_id, outcome.job.status.value, results_count=outcome.results_count)
