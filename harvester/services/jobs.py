"""Scraping job lifecycle tracking."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, FrozenSet, List, Optional

from ..config import CONFIG
from ..db.models import JobStatus, JobType, ScrapingJob
from ..errors import JobTransitionError, StoreError


logger = logging.getLogger(__name__)

# pending is part of the schema but jobs are created directly in running.
ALLOWED_TRANSITIONS: Dict[JobStatus, FrozenSet[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.RUNNING, JobStatus.FAILED}),
    JobStatus.RUNNING: frozenset({JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def can_transition(current: JobStatus, target: JobStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


class JobTracker:
    """Creates jobs and moves them through ``running -> completed | failed``."""

    def __init__(self, db):
        self.db = db

    def start(
        self,
        user_id: str,
        job_type: JobType,
        input_url: str,
        apify_key_id: Optional[str] = None,
    ) -> ScrapingJob:
        record = {
            "user_id": user_id,
            "apify_key_id": apify_key_id or None,
            "job_type": JobType(job_type).value,
            "input_url": input_url,
            "status": JobStatus.RUNNING.value,
            "results_count": 0,
        }
        job = ScrapingJob.from_record(self.db.create_job(record))
        logger.info("Scraping job %s created (%s)", job.id, job.job_type.value)
        return job

    def get(self, job_id: str, user_id: Optional[str] = None) -> Optional[ScrapingJob]:
        record = self.db.get_job(job_id, user_id)
        return ScrapingJob.from_record(record) if record else None

    def list_recent(self, user_id: str, limit: Optional[int] = None) -> List[ScrapingJob]:
        rows = self.db.list_jobs(user_id, limit=limit or CONFIG.job_list_limit)
        return [ScrapingJob.from_record(row) for row in rows]

    def _transition(self, job_id: str, target: JobStatus, updates: Dict[str, object]) -> ScrapingJob:
        current = self.get(job_id)
        if current is None:
            raise JobTransitionError(f"Job {job_id} does not exist")
        if not can_transition(current.status, target):
            raise JobTransitionError(
                f"Job {job_id} cannot move from {current.status.value} to {target.value}"
            )

        payload = {"status": target.value, **updates}
        updated = self.db.update_job(job_id, payload, expected_status=current.status.value)
        if updated is None:
            # The row changed status between our read and the guarded update.
            latest = self.get(job_id)
            latest_status = latest.status.value if latest else "missing"
            raise JobTransitionError(
                f"Job {job_id} was modified concurrently (now {latest_status})"
            )
        logger.info("Scraping job %s -> %s", job_id, target.value)
        return ScrapingJob.from_record(updated)

    def mark_running(self, job_id: str) -> ScrapingJob:
        return self._transition(job_id, JobStatus.RUNNING, {})

    def complete(self, job_id: str, results_count: int) -> ScrapingJob:
        return self._transition(
            job_id,
            JobStatus.COMPLETED,
            {"results_count": max(int(results_count), 0), "completed_at": _utcnow().isoformat()},
        )

    def fail(self, job_id: str, error_message: str) -> ScrapingJob:
        return self._transition(
            job_id,
            JobStatus.FAILED,
            {"error_message": error_message or "Unknown error occurred", "completed_at": _utcnow().isoformat()},
        )

    def fail_quietly(self, job_id: str, error_message: str) -> Optional[ScrapingJob]:
        """Mark a job failed from an error path without masking the original error."""
        try:
            return self.fail(job_id, error_message)
        except (JobTransitionError, StoreError) as exc:
            logger.error("Could not mark job %s failed: %s", job_id, exc)
            return None


__all__ = ["ALLOWED_TRANSITIONS", "JobTracker", "can_transition"]
