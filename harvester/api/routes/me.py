"""Signed-in user endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from harvester.api.dependencies import get_orchestrator
from harvester.api.schemas import UserResponse
from harvester.core import ScrapeOrchestrator
from harvester.db.models import UserRecord

router = APIRouter()


@router.get("/me", response_model=UserResponse, status_code=status.HTTP_200_OK)
def get_me(orchestrator: ScrapeOrchestrator = Depends(get_orchestrator)) -> UserResponse:
    """Return the caller's ``users`` row, created on first access."""

    user = UserRecord.from_record(orchestrator.store.state.user or {})
    return UserResponse(
        id=user.id,
        auth_user_id=user.auth_user_id,
        username=user.username,
        email=user.email,
        full_name=user.full_name,
        created_at=user.created_at,
    )
