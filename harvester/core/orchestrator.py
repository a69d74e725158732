"""Coordinates scraping jobs for one signed-in user.

The orchestrator is what the API routes, the Celery worker and the CLI talk
to. It validates the request, creates the job record, drives the Apify calls
through the profile fetcher, records the terminal job status and publishes
progress into the session's :class:`~harvester.core.state.StateStore`.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence
from urllib.parse import urlparse

from ..config import CONFIG
from ..db.models import ApifyKey, JobType, LinkedInProfile, ScrapingJob
from ..errors import AuthenticationError, StoreError, ValidationError
from ..services.api_keys import ApiKeyManager, choose_default_key
from ..services.apify import create_apify_service
from ..services.jobs import JobTracker
from ..services.profile_fetcher import (
    FetchResult,
    InflightRegistry,
    ProfileFetcher,
    extract_profile_url,
    normalize_urls,
)
from .state import (
    BackToForm,
    CommentsLoaded,
    JobsListed,
    KeySelected,
    ProfileResultsLoaded,
    ProfilesListed,
    ProgressUpdated,
    ScrapeFailed,
    ScrapeFinished,
    ScrapeStarted,
    SignedIn,
    SignedOut,
    Stage,
    StateStore,
    Tab,
    TabChanged,
    View,
    drop_state_store,
)


logger = logging.getLogger(__name__)

_URL_SPLIT = re.compile(r"[\s,]+")


def split_input_urls(raw: str) -> List[str]:
    """Split a job's ``input_url`` (one URL or a comma separated list)."""
    return normalize_urls(_URL_SPLIT.split(raw or ""))


def validate_target_url(url: str) -> str:
    candidate = (url or "").strip()
    if not candidate:
        raise ValidationError("Please enter a LinkedIn URL")
    parsed = urlparse(candidate)
    host = (parsed.hostname or "").lower()
    on_linkedin = host == "linkedin.com" or host.endswith(".linkedin.com")
    if parsed.scheme not in {"http", "https"} or not on_linkedin:
        raise ValidationError(f"Not a LinkedIn URL: {candidate}")
    return candidate


def commenter_profile_urls(comments: Iterable[Dict[str, Any]], limit: Optional[int] = None) -> List[str]:
    """Profile URLs of the people who wrote ``comments``, first ``limit`` only."""
    urls = []
    for comment in comments:
        actor = comment.get("actor") if isinstance(comment, dict) else None
        if isinstance(actor, dict) and actor.get("linkedinUrl"):
            urls.append(actor["linkedinUrl"])
    ordered = normalize_urls(urls)
    return ordered[:limit] if limit is not None else ordered


@dataclass
class ScrapeOutcome:
    job: ScrapingJob
    results_count: int = 0
    comments: List[Dict[str, Any]] = field(default_factory=list)
    profiles: List[Dict[str, Any]] = field(default_factory=list)
    fetch: Optional[FetchResult] = None


class ScrapeOrchestrator:
    def __init__(
        self,
        db,
        store: StateStore,
        *,
        scraper_factory: Callable[[str], Any] = create_apify_service,
        registry: Optional[InflightRegistry] = None,
    ):
        self.db = db
        self.store = store
        self.scraper_factory = scraper_factory
        self.registry = registry
        self.jobs = JobTracker(db)
        self.keys = ApiKeyManager(db)

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    @property
    def user_id(self) -> str:
        user = self.store.state.user
        if not user or not user.get("id"):
            raise AuthenticationError("Please sign in to start scraping")
        return str(user["id"])

    def sign_in(self, auth_user: Dict[str, Any]) -> Dict[str, Any]:
        """Load (or lazily create) the ``users`` row and the user's data."""
        user = self.db.get_or_create_user(
            auth_user["id"],
            auth_user.get("email"),
            auth_user.get("user_metadata") or auth_user.get("metadata"),
        )
        self.store.dispatch(SignedIn(user))
        if not self.store.state.selected_key_id:
            default_key = choose_default_key(self.keys.list_keys(user["id"]))
            if default_key:
                logger.info("Auto-selecting key %s for user %s", default_key.id, user["id"])
                self.store.dispatch(KeySelected(default_key.id))
        self.refresh_profile_list()
        self.refresh_jobs()
        return user

    def sign_out(self) -> None:
        """Clear the session and forget its store."""
        auth_user_id = (self.store.state.user or {}).get("auth_user_id")
        self.store.dispatch(SignedOut())
        if auth_user_id:
            drop_state_store(str(auth_user_id))

    def back_to_form(self) -> None:
        self.store.dispatch(BackToForm())

    def select_key(self, key_id: str) -> ApifyKey:
        key = self.keys.get_key(self.user_id, key_id)
        if key is None:
            raise ValidationError("API key not found")
        self.store.dispatch(KeySelected(key.id))
        return key

    def create_key(self, key_name: str, api_key: str) -> ApifyKey:
        key = self.keys.create_key(self.user_id, key_name, api_key)
        self.store.dispatch(KeySelected(key.id))
        return key

    def delete_key(self, key_id: str) -> Optional[str]:
        selected = self.keys.delete_key(self.user_id, key_id, self.store.state.selected_key_id)
        self.store.dispatch(KeySelected(selected))
        return selected

    def _progress(self, stage: Stage, percent: int = 0, message: str = "") -> None:
        self.store.dispatch(ProgressUpdated(stage, percent, message))

    def _fetcher(self, scraper) -> ProfileFetcher:
        return ProfileFetcher(
            self.db,
            scraper,
            registry=self.registry,
            progress=lambda percent, message: self._progress(Stage.SCRAPING_PROFILES, percent, message),
        )

    # ------------------------------------------------------------------
    # Scraping
    # ------------------------------------------------------------------

    def start_job(self, job_type: JobType, url: str) -> tuple[ScrapingJob, ApifyKey]:
        """Validate a scrape request and record the job as running."""
        job_type = JobType(job_type)
        user_id = self.user_id
        key = self.keys.resolve_secret(user_id, self.store.state.selected_key_id)

        if job_type == JobType.PROFILE_DETAILS:
            urls = split_input_urls(url)
            if not urls:
                raise ValidationError("Please enter at least one LinkedIn profile URL")
            target = ",".join(validate_target_url(u) for u in urls)
        else:
            target = validate_target_url(url)

        self.store.dispatch(ScrapeStarted(job_type.value))
        try:
            job = self.jobs.start(user_id, job_type, target, apify_key_id=key.id)
        except Exception as exc:
            self.store.dispatch(ScrapeFailed(str(exc)))
            raise
        self.refresh_jobs()
        return job, key

    def scrape(self, job_type: JobType, url: str) -> ScrapeOutcome:
        job, key = self.start_job(job_type, url)
        return self.run_job(job, key.api_key)

    def enqueue(self, job_type: JobType, url: str, submit: Callable[[ScrapingJob, Optional[str]], Any]) -> ScrapingJob:
        """Start a job and hand it to ``submit`` to run in another process.

        ``submit`` receives the job and the owner's auth user id. If it
        raises, the job is marked failed and the error is re-raised.
        """
        job, _key = self.start_job(job_type, url)
        auth_user_id = (self.store.state.user or {}).get("auth_user_id")
        try:
            submit(job, auth_user_id)
        except Exception as exc:
            message = f"Failed to enqueue scraping job: {exc}"
            logger.error("Scraping job %s not queued: %s", job.id, exc)
            self.store.dispatch(ScrapeFailed(message))
            self.jobs.fail_quietly(job.id, message)
            self._refresh_jobs_quietly()
            raise

        self.store.dispatch(ScrapeFinished())
        self.refresh_jobs()
        return job

    def _refresh_jobs_quietly(self) -> None:
        try:
            self.refresh_jobs()
        except StoreError as exc:
            logger.warning("Could not refresh jobs after failure: %s", exc)

    def run_job(self, job: ScrapingJob, api_token: str, *, previous_view: View = View.FORM) -> ScrapeOutcome:
        """Execute a running job and record its terminal status.

        A scrape that returns nothing still completes; any error marks the
        job failed with the error text and is re-raised to the caller.
        """
        outcome = ScrapeOutcome(job=job)
        try:
            scraper = self.scraper_factory(api_token)
            if job.job_type == JobType.POST_COMMENTS:
                self._run_post_comments(scraper, job, outcome)
            elif job.job_type == JobType.PROFILE_DETAILS:
                self._run_profile_details(scraper, job, outcome, previous_view)
            else:
                self._run_mixed(scraper, job, outcome)
        except Exception as exc:
            message = str(exc) or "Unknown error occurred"
            logger.error("Scraping job %s failed: %s", job.id, message)
            self.store.dispatch(ScrapeFailed(message))
            failed = self.jobs.fail_quietly(job.id, message)
            if failed is not None:
                outcome.job = failed
            self._refresh_jobs_quietly()
            raise

        self._progress(Stage.COMPLETED, 100, "Scraping completed successfully!")
        outcome.job = self.jobs.complete(job.id, outcome.results_count)
        self.store.dispatch(ScrapeFinished())
        self.refresh_jobs()
        self.refresh_profile_list()
        return outcome

    def _run_post_comments(self, scraper, job: ScrapingJob, outcome: ScrapeOutcome) -> None:
        self._progress(Stage.SCRAPING_COMMENTS, 25, "Extracting comments from LinkedIn post...")
        dataset_id = scraper.scrape_post_comments(job.input_url)
        self._progress(Stage.SAVING_DATA, 75, "Processing comment data...")
        comments = scraper.get_dataset_items(dataset_id)
        outcome.comments = comments
        outcome.results_count = len(comments)
        self.store.dispatch(CommentsLoaded(tuple(comments)))

    def _run_profile_details(self, scraper, job: ScrapingJob, outcome: ScrapeOutcome, previous_view: View) -> None:
        self._progress(Stage.SCRAPING_PROFILES, 25, "Checking existing profiles in database...")
        fetch = self._fetcher(scraper).fetch(split_input_urls(job.input_url), self.user_id)
        self._progress(Stage.SAVING_DATA, 75, "Saving profile data...")
        outcome.fetch = fetch
        outcome.profiles = fetch.profiles
        outcome.results_count = len(fetch.profiles)
        self.store.dispatch(ProfileResultsLoaded(tuple(fetch.profiles), previous_view))

    def _run_mixed(self, scraper, job: ScrapingJob, outcome: ScrapeOutcome) -> None:
        self._progress(Stage.SCRAPING_COMMENTS, 20, "Extracting comments from LinkedIn post...")
        dataset_id = scraper.scrape_post_comments(job.input_url)
        comments = scraper.get_dataset_items(dataset_id)
        outcome.comments = comments
        self.store.dispatch(CommentsLoaded(tuple(comments)))

        self._progress(Stage.EXTRACTING_PROFILES, 40, "Extracting profile URLs from comments...")
        profile_urls = commenter_profile_urls(comments, CONFIG.mixed_profile_limit)
        outcome.results_count = len(profile_urls)
        if not profile_urls:
            return

        self._progress(
            Stage.SCRAPING_PROFILES, 60, f"Checking and scraping {len(profile_urls)} profiles..."
        )
        fetch = self._fetcher(scraper).fetch(profile_urls, self.user_id)
        self._progress(Stage.SAVING_DATA, 85, "Saving all data...")
        outcome.fetch = fetch
        outcome.profiles = fetch.profiles
        self.store.dispatch(ProfileResultsLoaded(tuple(fetch.profiles), View.FORM))

    def scrape_selected_profiles(self, profile_urls: Sequence[str]) -> ScrapeOutcome:
        """Profile job over commenters picked from a comments result."""
        urls = normalize_urls(profile_urls)
        if not urls:
            raise ValidationError("Select at least one profile to scrape")
        job, key = self.start_job(JobType.PROFILE_DETAILS, ",".join(urls))
        return self.run_job(job, key.api_key, previous_view=View.COMMENTS)

    # ------------------------------------------------------------------
    # Stored profiles
    # ------------------------------------------------------------------

    def store_profiles(self, profiles: Iterable[Dict[str, Any]], tags: Sequence[str] = ()) -> int:
        """Upsert chosen payloads with a tag set; returns how many were stored."""
        user_id = self.user_id
        clean_tags = [tag.strip() for tag in tags if tag and tag.strip()]
        stored = 0
        for payload in profiles:
            profile_url = extract_profile_url(payload) if isinstance(payload, dict) else None
            if not profile_url:
                continue
            self.db.upsert_profile(user_id, profile_url, payload, clean_tags)
            stored += 1
        self.refresh_profile_list()
        return stored

    def refresh_profiles(self, profile_urls: Sequence[str]) -> FetchResult:
        """Rescrape stored profiles even though they already exist."""
        user_id = self.user_id
        urls = normalize_urls(profile_urls)
        if not urls:
            raise ValidationError("Select at least one profile to update")
        key = self.keys.resolve_secret(user_id, self.store.state.selected_key_id)
        scraper = self.scraper_factory(key.api_key)
        result = self._fetcher(scraper).fetch(urls, user_id, force=True)
        self.refresh_profile_list()
        return result

    def delete_profiles(self, profile_ids: Sequence[str]) -> int:
        deleted = self.db.delete_profiles(list(profile_ids), self.user_id)
        self.refresh_profile_list()
        return deleted

    # ------------------------------------------------------------------
    # Lists and navigation
    # ------------------------------------------------------------------

    def list_profiles(self, scope: str = "mine") -> List[LinkedInProfile]:
        rows = self.db.list_all_profiles() if scope == "all" else self.db.list_profiles_by_owner(self.user_id)
        return [LinkedInProfile.from_record(row) for row in rows]

    def refresh_profile_list(self) -> None:
        scope = "all" if self.store.state.active_tab == Tab.PROFILES else "mine"
        rows = self.db.list_all_profiles() if scope == "all" else self.db.list_profiles_by_owner(self.user_id)
        self.store.dispatch(ProfilesListed(tuple(rows)))

    def refresh_jobs(self) -> List[ScrapingJob]:
        rows = self.db.list_jobs(self.user_id, limit=CONFIG.job_list_limit)
        self.store.dispatch(JobsListed(tuple(rows)))
        return [ScrapingJob.from_record(row) for row in rows]

    def switch_tab(self, tab: Tab) -> None:
        tab = Tab(tab)
        self.store.dispatch(TabChanged(tab))
        if tab == Tab.JOBS:
            self.refresh_jobs()
        else:
            self.refresh_profile_list()


__all__ = [
    "ScrapeOrchestrator",
    "ScrapeOutcome",
    "commenter_profile_urls",
    "split_input_urls",
    "validate_target_url",
]
