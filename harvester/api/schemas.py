"""Pydantic schemas for the public API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Literal

from pydantic import BaseModel, Field, field_validator

from ..db.models import ApifyKey, LinkedInProfile, ScrapingJob
from ..logger import mask_secret


JobTypeName = Literal["post_comments", "profile_details", "mixed"]
ProfileScope = Literal["mine", "all"]
TabName = Literal["scraper", "profiles", "jobs"]


class UserResponse(BaseModel):
    id: str
    auth_user_id: str
    username: str
    email: str
    full_name: Optional[str] = None
    created_at: Optional[datetime] = None


class ApiKeyCreateRequest(BaseModel):
    key_name: str
    api_key: str


class ApiKeyResponse(BaseModel):
    id: str
    key_name: str
    api_key_preview: str
    is_active: bool
    selected: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_key(cls, key: ApifyKey, selected_key_id: Optional[str] = None) -> "ApiKeyResponse":
        return cls(
            id=key.id,
            key_name=key.key_name,
            api_key_preview=mask_secret(key.api_key),
            is_active=key.is_active,
            selected=key.id == selected_key_id,
            created_at=key.created_at,
            updated_at=key.updated_at,
        )


class ScrapeRequest(BaseModel):
    job_type: JobTypeName
    url: str = Field(..., min_length=1)
    background: bool = False


class SelectedProfilesRequest(BaseModel):
    profile_urls: List[str] = Field(..., min_length=1)


class StoreProfilesRequest(BaseModel):
    profiles: List[Dict[str, Any]]
    tags: List[str] = Field(default_factory=list)

    @field_validator("tags", mode="before")
    @classmethod
    def split_tags(cls, value: Any) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value


class DeleteProfilesRequest(BaseModel):
    profile_ids: List[str] = Field(..., min_length=1)


class JobResponse(BaseModel):
    id: str
    job_type: JobTypeName
    input_url: str
    status: str
    apify_key_id: Optional[str] = None
    results_count: int = 0
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @classmethod
    def from_job(cls, job: ScrapingJob) -> "JobResponse":
        return cls(
            id=job.id,
            job_type=job.job_type.value,
            input_url=job.input_url,
            status=job.status.value,
            apify_key_id=job.apify_key_id,
            results_count=job.results_count,
            error_message=job.error_message,
            created_at=job.created_at,
            completed_at=job.completed_at,
        )


class ProfileResponse(BaseModel):
    id: str
    user_id: str
    linkedin_url: str
    profile_data: Dict[str, Any] = Field(default_factory=dict)
    tags: List[str] = Field(default_factory=list)
    last_updated: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_profile(cls, profile: LinkedInProfile) -> "ProfileResponse":
        return cls(
            id=profile.id,
            user_id=profile.user_id,
            linkedin_url=profile.linkedin_url,
            profile_data=profile.profile_data,
            tags=profile.tags,
            last_updated=profile.last_updated,
            created_at=profile.created_at,
        )


class FetchSummary(BaseModel):
    requested: int = 0
    saved_calls: int = 0
    fetched: int = 0
    dropped: int = 0


class ScrapeResponse(BaseModel):
    job: JobResponse
    comments: List[Dict[str, Any]] = Field(default_factory=list)
    profiles: List[Dict[str, Any]] = Field(default_factory=list)
    summary: Optional[FetchSummary] = None


class StoreProfilesResponse(BaseModel):
    stored: int
    tags: List[str] = Field(default_factory=list)


class DeleteProfilesResponse(BaseModel):
    deleted: int


class TabRequest(BaseModel):
    tab: TabName
