"""Repository-wide pytest fixtures."""

from __future__ import annotations

import copy
import itertools
from collections.abc import Generator
from typing import Any, Dict, List, Optional

import pytest

from harvester.config import reload_config
from harvester.core import state as state_module
from harvester.db import client as client_module
from harvester.errors import DuplicateRecordError


@pytest.fixture(autouse=True)
def _set_default_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Point the settings at a fake Supabase project and reset shared state."""

    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon-test-key")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "service-test-key")
    monkeypatch.setenv("SUPABASE_JWT_SECRET", "jwt-test-secret-for-unit-tests-only-0123")
    monkeypatch.setenv("HARVESTER_INFLIGHT_WAIT_SECONDS", "2")
    reload_config()
    client_module.reset_database_client()
    state_module._stores.clear()
    yield
    state_module._stores.clear()
    client_module.reset_database_client()


class StubDatabase:
    """In-memory stand-in for :class:`harvester.db.client.SupabaseDatabaseClient`."""

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self.users: Dict[str, Dict[str, Any]] = {}
        self.keys: Dict[str, Dict[str, Any]] = {}
        self.profiles: Dict[str, Dict[str, Any]] = {}
        self.jobs: Dict[str, Dict[str, Any]] = {}
        self.calls: List[tuple] = []

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    # users
    def get_user_by_auth_id(self, auth_user_id: str) -> Optional[Dict[str, Any]]:
        return next((dict(u) for u in self.users.values() if u["auth_user_id"] == auth_user_id), None)

    def get_or_create_user(self, auth_user_id, email=None, metadata=None):
        existing = self.get_user_by_auth_id(auth_user_id)
        if existing:
            return existing
        user_id = self._next_id("user")
        record = {
            "id": user_id,
            "auth_user_id": auth_user_id,
            "username": (email or "user").split("@")[0],
            "email": email or "",
            "full_name": (metadata or {}).get("full_name") or (email or "User").split("@")[0],
        }
        self.users[user_id] = record
        return dict(record)

    # keys
    def list_api_keys(self, user_id):
        return [dict(k) for k in self.keys.values() if k["user_id"] == user_id]

    def get_api_key(self, key_id, user_id):
        key = self.keys.get(key_id)
        return dict(key) if key and key["user_id"] == user_id else None

    def create_api_key(self, user_id, key_name, api_key):
        if any(k["user_id"] == user_id and k["key_name"] == key_name for k in self.keys.values()):
            raise DuplicateRecordError("duplicate key name", operation="create_api_key", code="23505")
        key_id = self._next_id("key")
        self.keys[key_id] = {
            "id": key_id,
            "user_id": user_id,
            "key_name": key_name,
            "api_key": api_key,
            "is_active": True,
        }
        return dict(self.keys[key_id])

    def update_api_key(self, key_id, user_id, updates):
        key = self.keys.get(key_id)
        if not key or key["user_id"] != user_id:
            return None
        key.update(updates)
        return dict(key)

    def delete_api_key(self, key_id, user_id):
        key = self.keys.get(key_id)
        if not key or key["user_id"] != user_id:
            return False
        del self.keys[key_id]
        return True

    # profiles
    def add_profile(self, user_id: str, url: str, data: Dict[str, Any], tags=None) -> Dict[str, Any]:
        return self.upsert_profile(user_id, url, data, tags)

    def get_profile_by_url(self, linkedin_url):
        self.calls.append(("get_profile_by_url", linkedin_url))
        profile = self.profiles.get(linkedin_url)
        return copy.deepcopy(profile) if profile else None

    def upsert_profile(self, user_id, linkedin_url, profile_data, tags=None):
        self.calls.append(("upsert_profile", linkedin_url))
        existing = self.profiles.get(linkedin_url)
        record = dict(existing) if existing else {"id": self._next_id("profile"), "tags": []}
        record.update({"user_id": user_id, "linkedin_url": linkedin_url, "profile_data": profile_data})
        if tags is not None:
            record["tags"] = list(tags)
        self.profiles[linkedin_url] = record
        return copy.deepcopy(record)

    def list_profiles_by_owner(self, user_id):
        return [copy.deepcopy(p) for p in self.profiles.values() if p["user_id"] == user_id]

    def list_all_profiles(self):
        return [copy.deepcopy(p) for p in self.profiles.values()]

    def delete_profiles(self, profile_ids, user_id):
        doomed = [
            url for url, p in self.profiles.items() if p["id"] in profile_ids and p["user_id"] == user_id
        ]
        for url in doomed:
            del self.profiles[url]
        return len(doomed)

    # jobs
    def create_job(self, record):
        job_id = self._next_id("job")
        self.jobs[job_id] = {"id": job_id, "error_message": None, "completed_at": None, **record}
        return dict(self.jobs[job_id])

    def update_job(self, job_id, updates, *, expected_status=None):
        job = self.jobs.get(job_id)
        if not job:
            return None
        if expected_status is not None and job["status"] != expected_status:
            return None
        job.update(updates)
        return dict(job)

    def get_job(self, job_id, user_id=None):
        job = self.jobs.get(job_id)
        if not job or (user_id and job["user_id"] != user_id):
            return None
        return dict(job)

    def list_jobs(self, user_id, limit=50):
        rows = [dict(j) for j in self.jobs.values() if j["user_id"] == user_id]
        return list(reversed(rows))[:limit]


class StubScraper:
    """Records Apify calls and answers them from canned datasets."""

    def __init__(
        self,
        comments: Optional[List[Dict[str, Any]]] = None,
        profiles: Optional[List[Dict[str, Any]]] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self.comments = comments or []
        self.profiles = profiles
        self.error = error
        self.comment_calls: List[str] = []
        self.profile_calls: List[List[str]] = []
        self._datasets: Dict[str, List[Dict[str, Any]]] = {}

    def scrape_post_comments(self, post_url: str) -> str:
        self.comment_calls.append(post_url)
        if self.error:
            raise self.error
        dataset_id = f"comments-{len(self.comment_calls)}"
        self._datasets[dataset_id] = list(self.comments)
        return dataset_id

    def scrape_profiles(self, profile_urls) -> str:
        self.profile_calls.append(list(profile_urls))
        if self.error:
            raise self.error
        dataset_id = f"profiles-{len(self.profile_calls)}"
        if self.profiles is None:
            items = [{"linkedinUrl": url, "fullName": url.rsplit("/", 1)[-1]} for url in profile_urls]
        else:
            items = list(self.profiles)
        self._datasets[dataset_id] = items
        return dataset_id

    def get_dataset_items(self, dataset_id: str):
        return list(self._datasets.get(dataset_id, []))


@pytest.fixture
def stub_db() -> StubDatabase:
    return StubDatabase()


@pytest.fixture
def stub_scraper() -> StubScraper:
    return StubScraper()
