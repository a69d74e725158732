"""Environment-driven runtime settings for the harvester service."""

from __future__ import annotations

import os
from types import SimpleNamespace
from typing import Optional, Sequence, Tuple


def _env_str(
    name: str,
    default: Optional[str] = None,
    *,
    alias: Optional[str] = None,
    empty_to_none: bool = True,
) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None and alias:
        raw = os.getenv(alias)
    if raw is None:
        return default
    value = raw.strip()
    if not value and empty_to_none:
        return None if default is None else default
    return value if value else default


def _env_bool(name: str, default: bool, *, alias: Optional[str] = None) -> bool:
    raw = os.getenv(name)
    if raw is None and alias:
        raw = os.getenv(alias)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float, *, alias: Optional[str] = None) -> float:
    raw = os.getenv(name)
    if raw is None and alias:
        raw = os.getenv(alias)
    if raw is None:
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


def _env_tuple(name: str, default: Sequence[str]) -> Tuple[str, ...]:
    raw = os.getenv(name)
    if not raw:
        return tuple(default)
    items = tuple(part.strip() for part in raw.split(",") if part.strip())
    return items or tuple(default)


class Settings(SimpleNamespace):
    """Simple attribute container used throughout the codebase."""

CONFIG = Settings()


def _compute_values() -> tuple[dict[str, object], dict[str, object]]:
    # -----------------------------------------------------------------------
    # RUNTIME ENVIRONMENT
    # -----------------------------------------------------------------------
    environment = _env_str("ENV", "prod", empty_to_none=False).lower()
    if environment not in {"dev", "prod"}:
        environment = "prod"
    is_development = environment == "dev"

    # -----------------------------------------------------------------------
    # SUPABASE
    # -----------------------------------------------------------------------
    supabase_url = _env_str("SUPABASE_URL", None, alias="VITE_SUPABASE_URL")
    supabase_anon_key = _env_str("SUPABASE_ANON_KEY", None, alias="VITE_SUPABASE_ANON_KEY")
    supabase_service_role_key = _env_str("SUPABASE_SERVICE_ROLE_KEY", None)
    supabase_jwt_secret = _env_str("SUPABASE_JWT_SECRET", None)
    supabase_configured = bool(supabase_url) and bool(supabase_anon_key or supabase_service_role_key)

    # -----------------------------------------------------------------------
    # APIFY ACTORS
    # -----------------------------------------------------------------------
    apify_comments_actor = _env_str(
        "APIFY_COMMENTS_ACTOR",
        "harvestapi/linkedin-post-comments",
        empty_to_none=False,
    )
    apify_profiles_actor = _env_str(
        "APIFY_PROFILES_ACTOR",
        "dev_fusion/Linkedin-Profile-Scraper",
        empty_to_none=False,
    )
    apify_comments_limit = _env_int("APIFY_COMMENTS_LIMIT", 100)

    # -----------------------------------------------------------------------
    # SCRAPING BEHAVIOUR
    # -----------------------------------------------------------------------
    mixed_profile_limit = _env_int("HARVESTER_MIXED_PROFILE_LIMIT", 50)
    job_list_limit = _env_int("HARVESTER_JOB_LIST_LIMIT", 50)
    inflight_wait_seconds = _env_float("HARVESTER_INFLIGHT_WAIT_SECONDS", 300.0)
    key_preview_length = _env_int("HARVESTER_KEY_PREVIEW_LENGTH", 10)

    # -----------------------------------------------------------------------
    # PUBLIC API
    # -----------------------------------------------------------------------
    api_title = _env_str("API_TITLE", "LinkedIn Harvester API", empty_to_none=False)
    api_version = _env_str("API_VERSION", "1.0.0", empty_to_none=False)
    api_cors_origins = _env_tuple("API_CORS_ORIGINS", ())

    # -----------------------------------------------------------------------
    # BACKGROUND WORKER
    # -----------------------------------------------------------------------
    celery_broker_url = _env_str("CELERY_BROKER_URL", "redis://localhost:6379/0", empty_to_none=False)
    celery_result_backend = _env_str("CELERY_RESULT_BACKEND", celery_broker_url, empty_to_none=False)
    celery_default_queue = _env_str("CELERY_DEFAULT_QUEUE", "scrapes", empty_to_none=False)

    # -----------------------------------------------------------------------
    # LOGGING
    # -----------------------------------------------------------------------
    log_level = _env_str("LOG_LEVEL", "INFO", empty_to_none=False).upper()

    globals_map = {
        "ENVIRONMENT": environment,
        "IS_DEVELOPMENT": is_development,
        "SUPABASE_URL": supabase_url,
        "SUPABASE_ANON_KEY": supabase_anon_key,
        "SUPABASE_SERVICE_ROLE_KEY": supabase_service_role_key,
        "SUPABASE_JWT_SECRET": supabase_jwt_secret,
        "APIFY_COMMENTS_ACTOR": apify_comments_actor,
        "APIFY_PROFILES_ACTOR": apify_profiles_actor,
        "LOG_LEVEL": log_level,
    }

    config_map = {
        "environment": environment,
        "is_development": is_development,
        "supabase_url": supabase_url,
        "supabase_anon_key": supabase_anon_key,
        "supabase_service_role_key": supabase_service_role_key,
        "supabase_jwt_secret": supabase_jwt_secret,
        "supabase_configured": supabase_configured,
        "apify_comments_actor": apify_comments_actor,
        "apify_profiles_actor": apify_profiles_actor,
        "apify_comments_limit": apify_comments_limit,
        "mixed_profile_limit": mixed_profile_limit,
        "job_list_limit": job_list_limit,
        "inflight_wait_seconds": inflight_wait_seconds,
        "key_preview_length": key_preview_length,
        "api_title": api_title,
        "api_version": api_version,
        "api_cors_origins": api_cors_origins,
        "celery_broker_url": celery_broker_url,
        "celery_result_backend": celery_result_backend,
        "celery_default_queue": celery_default_queue,
        "log_level": log_level,
    }

    return globals_map, config_map


def reload_config() -> None:
    globals_map, config_map = _compute_values()
    globals().update(globals_map)
    CONFIG.__dict__.update(config_map)


def load_envs(global_dir: str) -> None:
    """Load environment variables from the project's .env file."""
    from dotenv import load_dotenv

    load_dotenv(os.path.join(global_dir, ".env"))
    reload_config()


# Load once on import so downstream modules can use CONFIG immediately.
reload_config()
