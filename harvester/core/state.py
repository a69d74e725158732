"""Per-session application state.

The state of a user's session (who is signed in, which tab and view are
shown, which key is selected, how far the current scrape got and what it
returned) lives in one immutable :class:`AppState`. It only changes by
dispatching an action through :func:`reduce`.
"""

from __future__ import annotations

import enum
import threading
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Tuple, Union


class Tab(str, enum.Enum):
    SCRAPER = "scraper"
    PROFILES = "profiles"
    JOBS = "jobs"


class View(str, enum.Enum):
    FORM = "form"
    COMMENTS = "comments"
    PROFILE_DETAILS = "profile-details"
    PROFILE_TABLE = "profile-table"
    PROFILES_LIST = "profiles-list"
    SINGLE_PROFILE_DETAILS = "single-profile-details"
    USER_PROFILE = "user-profile"


class Stage(str, enum.Enum):
    STARTING = "starting"
    SCRAPING_COMMENTS = "scraping_comments"
    EXTRACTING_PROFILES = "extracting_profiles"
    SCRAPING_PROFILES = "scraping_profiles"
    SAVING_DATA = "saving_data"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True)
class Progress:
    stage: Stage = Stage.STARTING
    percent: int = 0
    message: str = ""
    error: str = ""


@dataclass(frozen=True)
class AppState:
    user: Optional[Dict[str, Any]] = None
    active_tab: Tab = Tab.SCRAPER
    current_view: View = View.FORM
    previous_view: View = View.FORM
    selected_key_id: Optional[str] = None
    is_scraping: bool = False
    scraping_type: Optional[str] = None
    progress: Progress = field(default_factory=Progress)
    comments: Tuple[Dict[str, Any], ...] = ()
    profile_results: Tuple[Dict[str, Any], ...] = ()
    profiles: Tuple[Dict[str, Any], ...] = ()
    jobs: Tuple[Dict[str, Any], ...] = ()


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SignedIn:
    user: Dict[str, Any]


@dataclass(frozen=True)
class SignedOut:
    pass


@dataclass(frozen=True)
class KeySelected:
    key_id: Optional[str]


@dataclass(frozen=True)
class TabChanged:
    tab: Tab


@dataclass(frozen=True)
class ScrapeStarted:
    job_type: str


@dataclass(frozen=True)
class ProgressUpdated:
    stage: Stage
    percent: int = 0
    message: str = ""


@dataclass(frozen=True)
class ScrapeFailed:
    error: str
    message: str = "Scraping failed"


@dataclass(frozen=True)
class ScrapeFinished:
    pass


@dataclass(frozen=True)
class CommentsLoaded:
    comments: Tuple[Dict[str, Any], ...]


@dataclass(frozen=True)
class ProfileResultsLoaded:
    profiles: Tuple[Dict[str, Any], ...]
    previous_view: View = View.FORM


@dataclass(frozen=True)
class ProfilesListed:
    profiles: Tuple[Dict[str, Any], ...]


@dataclass(frozen=True)
class JobsListed:
    jobs: Tuple[Dict[str, Any], ...]


@dataclass(frozen=True)
class BackToForm:
    pass


Action = Union[
    SignedIn,
    SignedOut,
    KeySelected,
    TabChanged,
    ScrapeStarted,
    ProgressUpdated,
    ScrapeFailed,
    ScrapeFinished,
    CommentsLoaded,
    ProfileResultsLoaded,
    ProfilesListed,
    JobsListed,
    BackToForm,
]

_TAB_VIEWS = {
    Tab.SCRAPER: View.FORM,
    Tab.PROFILES: View.PROFILES_LIST,
    Tab.JOBS: View.FORM,
}


def reduce(state: AppState, action: Action) -> AppState:
    """Return the state that results from applying ``action`` to ``state``."""

    if isinstance(action, SignedIn):
        return replace(state, user=dict(action.user))
    if isinstance(action, SignedOut):
        return AppState()
    if isinstance(action, KeySelected):
        return replace(state, selected_key_id=action.key_id)
    if isinstance(action, TabChanged):
        return replace(state, active_tab=action.tab, current_view=_TAB_VIEWS[action.tab])
    if isinstance(action, ScrapeStarted):
        return replace(
            state,
            is_scraping=True,
            scraping_type=action.job_type,
            progress=Progress(Stage.STARTING, 0, "Initializing scraping process..."),
        )
    if isinstance(action, ProgressUpdated):
        return replace(state, progress=Progress(action.stage, action.percent, action.message))
    if isinstance(action, ScrapeFailed):
        return replace(
            state,
            is_scraping=False,
            progress=Progress(Stage.ERROR, 0, action.message, action.error),
        )
    if isinstance(action, ScrapeFinished):
        return replace(state, is_scraping=False)
    if isinstance(action, CommentsLoaded):
        return replace(state, comments=tuple(action.comments), current_view=View.COMMENTS)
    if isinstance(action, ProfileResultsLoaded):
        return replace(
            state,
            profile_results=tuple(action.profiles),
            previous_view=action.previous_view,
            current_view=View.PROFILE_TABLE,
        )
    if isinstance(action, ProfilesListed):
        return replace(state, profiles=tuple(action.profiles))
    if isinstance(action, JobsListed):
        return replace(state, jobs=tuple(action.jobs))
    if isinstance(action, BackToForm):
        return replace(
            state,
            current_view=View.FORM,
            previous_view=View.FORM,
            comments=(),
            profile_results=(),
            progress=Progress(),
        )
    raise TypeError(f"Unknown action: {type(action).__name__}")


class StateStore:
    """Holds the current :class:`AppState` for one session."""

    def __init__(self, initial: Optional[AppState] = None):
        self._state = initial or AppState()
        self._lock = threading.Lock()

    @property
    def state(self) -> AppState:
        return self._state

    def dispatch(self, action: Action) -> AppState:
        with self._lock:
            self._state = reduce(self._state, action)
            return self._state


# One store per signed-in auth user; sign-out removes it.
_stores: Dict[str, StateStore] = {}
_stores_lock = threading.Lock()


def get_state_store(session_key: str) -> StateStore:
    """Return the store for a session, creating an empty one on first use."""
    with _stores_lock:
        store = _stores.get(session_key)
        if store is None:
            store = StateStore()
            _stores[session_key] = store
        return store


def drop_state_store(session_key: str) -> None:
    with _stores_lock:
        _stores.pop(session_key, None)


def state_to_dict(state: AppState) -> Dict[str, Any]:
    return {
        "user": state.user,
        "active_tab": state.active_tab.value,
        "current_view": state.current_view.value,
        "previous_view": state.previous_view.value,
        "selected_key_id": state.selected_key_id,
        "is_scraping": state.is_scraping,
        "scraping_type": state.scraping_type,
        "progress": {
            "stage": state.progress.stage.value,
            "percent": state.progress.percent,
            "message": state.progress.message,
            "error": state.progress.error,
        },
        "comments": list(state.comments),
        "profile_results": list(state.profile_results),
        "profiles": list(state.profiles),
        "jobs": list(state.jobs),
    }
