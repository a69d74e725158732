"""Background worker components for the harvester service."""

from .celery_app import celery_app
from .tasks import run_scrape_job

__all__ = ["celery_app", "run_scrape_job"]
