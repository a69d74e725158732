"""Session orchestration shared by the API, the worker and the CLI."""

from __future__ import annotations

from typing import Any, Dict, Optional

from ..db import get_database_client
from .orchestrator import ScrapeOrchestrator, ScrapeOutcome
from .state import AppState, StateStore, Tab, View, get_state_store, state_to_dict


def open_session(auth_user: Dict[str, Any], db=None) -> ScrapeOrchestrator:
    """Return an orchestrator bound to the auth user's session state.

    The first call for a user creates the ``users`` row if needed and loads
    the user's profiles, jobs and default API key.
    """
    database = db or get_database_client()
    store = get_state_store(str(auth_user["id"]))
    orchestrator = ScrapeOrchestrator(database, store)
    if not store.state.user:
        orchestrator.sign_in(auth_user)
    return orchestrator


def resolve_auth_user(auth_user_id: str, email: Optional[str] = None) -> Dict[str, Any]:
    """Build an auth user dict for callers that only know the auth id."""
    from ..auth import get_auth_manager

    auth_user = get_auth_manager().get_auth_user(auth_user_id)
    if auth_user:
        return auth_user
    if email is None:
        raise LookupError(f"Auth user {auth_user_id} not found")
    return {"id": auth_user_id, "email": email, "metadata": {}}


__all__ = [
    "AppState",
    "ScrapeOrchestrator",
    "ScrapeOutcome",
    "StateStore",
    "Tab",
    "View",
    "get_state_store",
    "open_session",
    "resolve_auth_user",
    "state_to_dict",
]
