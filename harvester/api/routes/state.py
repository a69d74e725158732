"""Session state endpoints used by the web client."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, status

from harvester.api.dependencies import get_orchestrator, to_http_exception
from harvester.api.schemas import TabRequest
from harvester.core import ScrapeOrchestrator, Tab, state_to_dict
from harvester.errors import HarvesterError

router = APIRouter()


@router.get("/state", status_code=status.HTTP_200_OK)
def get_state(orchestrator: ScrapeOrchestrator = Depends(get_orchestrator)) -> Dict[str, Any]:
    return state_to_dict(orchestrator.store.state)


@router.post("/state/tab", status_code=status.HTTP_200_OK)
def change_tab(
    request: TabRequest,
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    try:
        orchestrator.switch_tab(Tab(request.tab))
    except HarvesterError as exc:
        raise to_http_exception(exc) from exc
    return state_to_dict(orchestrator.store.state)


@router.post("/state/back", status_code=status.HTTP_200_OK)
def back_to_form(orchestrator: ScrapeOrchestrator = Depends(get_orchestrator)) -> Dict[str, Any]:
    """Leave a results view and clear its results."""

    orchestrator.back_to_form()
    return state_to_dict(orchestrator.store.state)


@router.post("/state/sign-out", status_code=status.HTTP_200_OK)
def sign_out(orchestrator: ScrapeOrchestrator = Depends(get_orchestrator)) -> Dict[str, str]:
    """Drop the caller's session state; the next request starts a fresh one."""

    orchestrator.sign_out()
    return {"status": "signed_out"}
