"""
Database models and schema definitions for the harvester tables.

Rows come back from Supabase as plain dicts; these dataclasses give them a
typed shape for the service layer and the API schemas.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


class JobType(str, enum.Enum):
    """Kinds of scraping job a user can start."""

    POST_COMMENTS = "post_comments"
    PROFILE_DETAILS = "profile_details"
    MIXED = "mixed"


class JobStatus(str, enum.Enum):
    """Status of a scraping job."""

    PENDING = "pending"  # declared by the schema, never assigned by the service
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


@dataclass
class UserRecord:
    """Row of the ``users`` table, linked to a Supabase auth user."""
    id: str
    auth_user_id: str
    username: str
    email: str
    full_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "UserRecord":
        return cls(
            id=str(record.get("id")),
            auth_user_id=str(record.get("auth_user_id") or ""),
            username=str(record.get("username") or ""),
            email=str(record.get("email") or ""),
            full_name=record.get("full_name"),
            created_at=_parse_datetime(record.get("created_at")),
            updated_at=_parse_datetime(record.get("updated_at")),
        )


@dataclass
class ApifyKey:
    """Stored Apify API token owned by a user."""
    id: str
    user_id: str
    key_name: str
    api_key: str
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "ApifyKey":
        return cls(
            id=str(record.get("id")),
            user_id=str(record.get("user_id") or ""),
            key_name=str(record.get("key_name") or ""),
            api_key=str(record.get("api_key") or ""),
            is_active=bool(record.get("is_active", True)),
            created_at=_parse_datetime(record.get("created_at")),
            updated_at=_parse_datetime(record.get("updated_at")),
        )


@dataclass
class LinkedInProfile:
    """Scraped profile, shared across users and keyed by ``linkedin_url``."""
    id: str
    user_id: str
    linkedin_url: str
    profile_data: Dict[str, Any] = field(default_factory=dict)
    tags: List[str] = field(default_factory=list)
    last_updated: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "LinkedInProfile":
        payload = record.get("profile_data")
        return cls(
            id=str(record.get("id")),
            user_id=str(record.get("user_id") or ""),
            linkedin_url=str(record.get("linkedin_url") or ""),
            profile_data=dict(payload) if isinstance(payload, dict) else {},
            tags=[str(tag) for tag in (record.get("tags") or [])],
            last_updated=_parse_datetime(record.get("last_updated")),
            created_at=_parse_datetime(record.get("created_at")),
        )


@dataclass
class ScrapingJob:
    """Scraping job tracking record."""
    id: str
    user_id: str
    job_type: JobType
    input_url: str
    status: JobStatus
    apify_key_id: Optional[str] = None
    results_count: int = 0
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "ScrapingJob":
        return cls(
            id=str(record.get("id")),
            user_id=str(record.get("user_id") or ""),
            job_type=JobType(record.get("job_type")),
            input_url=str(record.get("input_url") or ""),
            status=JobStatus(record.get("status") or JobStatus.PENDING.value),
            apify_key_id=record.get("apify_key_id"),
            results_count=int(record.get("results_count") or 0),
            error_message=record.get("error_message"),
            created_at=_parse_datetime(record.get("created_at")),
            completed_at=_parse_datetime(record.get("completed_at")),
        )


__all__ = [
    "JobType",
    "JobStatus",
    "UserRecord",
    "ApifyKey",
    "LinkedInProfile",
    "ScrapingJob",
]
