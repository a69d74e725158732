"""Stored profile endpoints."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query, status

from harvester.api.dependencies import get_orchestrator, to_http_exception
from harvester.api.schemas import (
    DeleteProfilesRequest,
    DeleteProfilesResponse,
    FetchSummary,
    ProfileScope,
    ProfileResponse,
    SelectedProfilesRequest,
    StoreProfilesRequest,
    StoreProfilesResponse,
)
from harvester.core import ScrapeOrchestrator
from harvester.errors import HarvesterError

router = APIRouter()


@router.get("/profiles", response_model=List[ProfileResponse], status_code=status.HTTP_200_OK)
def list_profiles(
    scope: ProfileScope = Query("mine"),
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
) -> List[ProfileResponse]:
    """``mine`` lists the caller's profiles, ``all`` the shared collection."""

    try:
        profiles = orchestrator.list_profiles(scope)
    except HarvesterError as exc:
        raise to_http_exception(exc) from exc
    return [ProfileResponse.from_profile(profile) for profile in profiles]


@router.post("/profiles/store", response_model=StoreProfilesResponse, status_code=status.HTTP_200_OK)
def store_profiles(
    request: StoreProfilesRequest,
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
) -> StoreProfilesResponse:
    try:
        stored = orchestrator.store_profiles(request.profiles, request.tags)
    except HarvesterError as exc:
        raise to_http_exception(exc) from exc
    return StoreProfilesResponse(stored=stored, tags=request.tags)


@router.post("/profiles/refresh", response_model=FetchSummary, status_code=status.HTTP_200_OK)
def refresh_profiles(
    request: SelectedProfilesRequest,
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
) -> FetchSummary:
    try:
        result = orchestrator.refresh_profiles(request.profile_urls)
    except HarvesterError as exc:
        raise to_http_exception(exc) from exc
    return FetchSummary(
        requested=result.requested,
        saved_calls=result.saved_calls,
        fetched=result.fetched,
        dropped=result.dropped,
    )


@router.delete("/profiles", response_model=DeleteProfilesResponse, status_code=status.HTTP_200_OK)
def delete_profiles(
    request: DeleteProfilesRequest,
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
) -> DeleteProfilesResponse:
    try:
        deleted = orchestrator.delete_profiles(request.profile_ids)
    except HarvesterError as exc:
        raise to_http_exception(exc) from exc
    return DeleteProfilesResponse(deleted=deleted)
