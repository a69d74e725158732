"""FastAPI dependencies shared across the public API."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import Depends, Header, HTTPException, status

from ..auth import require_auth
from ..core import ScrapeOrchestrator, open_session
from ..db import DatabaseClient, get_database_client
from ..errors import (
    AuthenticationError,
    ConfigurationError,
    HarvesterError,
    JobTransitionError,
    ScrapeError,
    StoreError,
    ValidationError,
)


def get_current_user(authorization: str = Header(None)) -> Dict[str, Any]:
    """Resolve the authenticated Supabase user from the Authorization header."""

    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return require_auth(authorization)


def get_database() -> DatabaseClient:
    """Return the shared database client instance."""

    try:
        return get_database_client()
    except ConfigurationError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database client is not configured",
        ) from exc


def get_orchestrator(
    auth_user: Dict[str, Any] = Depends(get_current_user),
    db: DatabaseClient = Depends(get_database),
) -> ScrapeOrchestrator:
    """Orchestrator bound to the caller's session."""

    try:
        return open_session(auth_user, db)
    except HarvesterError as exc:
        raise to_http_exception(exc) from exc


def to_http_exception(exc: HarvesterError) -> HTTPException:
    """Map a service error onto the HTTP status the API reports."""

    if isinstance(exc, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, AuthenticationError):
        return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc))
    if isinstance(exc, JobTransitionError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, ScrapeError):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
    if isinstance(exc, (StoreError, ConfigurationError)):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
