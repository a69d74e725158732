"""Apify API key management endpoints."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from harvester.api.dependencies import get_orchestrator, to_http_exception
from harvester.api.schemas import ApiKeyCreateRequest, ApiKeyResponse
from harvester.core import ScrapeOrchestrator
from harvester.errors import HarvesterError

router = APIRouter()


@router.get("/keys", response_model=List[ApiKeyResponse], status_code=status.HTTP_200_OK)
def list_keys(orchestrator: ScrapeOrchestrator = Depends(get_orchestrator)) -> List[ApiKeyResponse]:
    try:
        keys = orchestrator.keys.list_keys(orchestrator.user_id)
    except HarvesterError as exc:
        raise to_http_exception(exc) from exc
    selected = orchestrator.store.state.selected_key_id
    return [ApiKeyResponse.from_key(key, selected) for key in keys]


@router.post("/keys", response_model=ApiKeyResponse, status_code=status.HTTP_201_CREATED)
def create_key(
    payload: ApiKeyCreateRequest,
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
) -> ApiKeyResponse:
    """Store a new Apify key and select it."""

    try:
        key = orchestrator.create_key(payload.key_name, payload.api_key)
    except HarvesterError as exc:
        raise to_http_exception(exc) from exc
    return ApiKeyResponse.from_key(key, orchestrator.store.state.selected_key_id)


@router.patch("/keys/{key_id}", response_model=ApiKeyResponse, status_code=status.HTTP_200_OK)
def update_key(
    key_id: str,
    payload: ApiKeyCreateRequest,
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
) -> ApiKeyResponse:
    try:
        key = orchestrator.keys.update_key(orchestrator.user_id, key_id, payload.key_name, payload.api_key)
    except HarvesterError as exc:
        raise to_http_exception(exc) from exc
    if key is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="API key not found")
    return ApiKeyResponse.from_key(key, orchestrator.store.state.selected_key_id)


@router.delete("/keys/{key_id}", status_code=status.HTTP_200_OK)
def delete_key(
    key_id: str,
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
) -> dict[str, object]:
    try:
        selected = orchestrator.delete_key(key_id)
    except HarvesterError as exc:
        raise to_http_exception(exc) from exc
    return {"deleted": key_id, "selected_key_id": selected}


@router.post("/keys/{key_id}/select", response_model=ApiKeyResponse, status_code=status.HTTP_200_OK)
def select_key(
    key_id: str,
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
) -> ApiKeyResponse:
    try:
        key = orchestrator.select_key(key_id)
    except HarvesterError as exc:
        raise to_http_exception(exc) from exc
    return ApiKeyResponse.from_key(key, key.id)
