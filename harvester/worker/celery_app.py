"""Celery application instance used for background scraping jobs."""

from __future__ import annotations

import os
from pathlib import Path

from celery import Celery
from dotenv import load_dotenv

from harvester.config import CONFIG, reload_config


def _should_load_local_env() -> bool:
    env = (os.getenv("ENV") or os.getenv("ENVIRONMENT") or "").lower()
    if env and env != "dev":
        return False
    return Path(".env").is_file()


if _should_load_local_env():  # Only load .env for local development runs
    load_dotenv()
    reload_config()


celery_app = Celery(
    "linkedin-harvester",
    broker=CONFIG.celery_broker_url,
    backend=CONFIG.celery_result_backend,
    include=["harvester.worker.tasks"],
)

celery_app.conf.update(
    broker_connection_retry_on_startup=True,
    task_track_started=True,
    worker_prefetch_multiplier=int(os.getenv("CELERY_WORKER_PREFETCH", "1")),
    task_default_queue=CONFIG.celery_default_queue,
    timezone=os.getenv("CELERY_TIMEZONE", "UTC"),
    enable_utc=True,
)


__all__ = ["celery_app"]
