"""
Database client for the harvester tables.
Handles users, Apify keys, shared LinkedIn profiles and scraping jobs.

Every read distinguishes "no rows" from "the query failed": absent records
come back as ``None`` / ``[]`` while any other failure is logged and raised
as :class:`~harvester.errors.StoreError`.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from supabase import Client, create_client

from ..config import CONFIG
from ..errors import ConfigurationError, DuplicateRecordError, StoreError


logger = logging.getLogger(__name__)

# PostgREST: ``.single()`` matched zero (or several) rows.
NOT_FOUND_CODE = "PGRST116"
# Postgres: unique_violation.
UNIQUE_VIOLATION_CODE = "23505"

USERS_TABLE = "users"
KEYS_TABLE = "apify_keys"
PROFILES_TABLE = "linkedin_profiles"
JOBS_TABLE = "scraping_jobs"


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error_code(exc: Exception) -> Optional[str]:
    code = getattr(exc, "code", None)
    if code is None and exc.args and isinstance(exc.args[0], dict):
        code = exc.args[0].get("code")
    return str(code) if code is not None else None


def _rows(result: Any) -> List[Dict[str, Any]]:
    if result is None:
        return []
    data = getattr(result, "data", None)
    if not data:
        return []
    if isinstance(data, dict):
        return [data]
    return [row for row in data if isinstance(row, dict)]


def derive_username(email: Optional[str]) -> str:
    if email and "@" in email:
        local = email.split("@", 1)[0].strip()
        if local:
            return local
    return "user"


def derive_full_name(email: Optional[str], metadata: Optional[Dict[str, Any]]) -> str:
    metadata = metadata or {}
    full_name = str(metadata.get("full_name") or "").strip()
    if full_name:
        return full_name
    first = str(metadata.get("first_name") or "").strip()
    last = str(metadata.get("last_name") or "").strip()
    combined = f"{first} {last}".strip()
    if combined:
        return combined
    if email and "@" in email:
        return email.split("@", 1)[0]
    return "User"


class SupabaseDatabaseClient:
    """Database client for Supabase operations."""

    def __init__(self, client: Optional[Client] = None):
        self.supabase_url = CONFIG.supabase_url

        # Prefer the service role key so server-side calls are not blocked by RLS;
        # ownership is then enforced by the explicit user_id filters below.
        service_key = CONFIG.supabase_service_role_key
        anon_key = CONFIG.supabase_anon_key
        self.using_service_role = bool(service_key)
        self.supabase_key = service_key or anon_key

        if client is not None:
            self.client = client
            return

        if not self.supabase_url or not self.supabase_key:
            raise ConfigurationError(
                "SUPABASE_URL and SUPABASE_ANON_KEY (or SUPABASE_SERVICE_ROLE_KEY) environment variables are required"
            )

        if not self.using_service_role:
            logger.warning("SUPABASE_SERVICE_ROLE_KEY not set; queries run under anon key RLS policies")

        self.client = create_client(self.supabase_url, self.supabase_key)

    # ------------------------------------------------------------------
    # Query plumbing
    # ------------------------------------------------------------------

    def _run(self, operation: str, build: Callable[[], Any]) -> List[Dict[str, Any]]:
        """Execute a query and normalise its outcome.

        ``build`` returns the executed PostgREST response. "No rows" yields an
        empty list, unique violations raise :class:`DuplicateRecordError` and
        anything else raises :class:`StoreError`.
        """
        try:
            return _rows(build())
        except Exception as exc:
            code = _error_code(exc)
            if code == NOT_FOUND_CODE:
                return []
            if code == UNIQUE_VIOLATION_CODE:
                logger.info("%s rejected by unique constraint: %s", operation, exc)
                raise DuplicateRecordError(str(exc), operation=operation, code=code) from exc
            logger.error("Error in %s: %s", operation, exc)
            raise StoreError(f"{operation} failed: {exc}", operation=operation, code=code) from exc

    def _first(self, operation: str, build: Callable[[], Any]) -> Optional[Dict[str, Any]]:
        rows = self._run(operation, build)
        return rows[0] if rows else None

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def get_current_user(self, access_token: str) -> Optional[Dict[str, Any]]:
        """Resolve the Supabase auth user behind an access token."""
        if not access_token:
            return None
        try:
            response = self.client.auth.get_user(access_token)
        except Exception as exc:
            logger.warning("Supabase auth get_user failed: %s", exc)
            return None

        user = getattr(response, "user", None)
        if not user:
            return None
        return {
            "id": user.id,
            "email": getattr(user, "email", None),
            "user_metadata": getattr(user, "user_metadata", None) or {},
        }

    def get_user_by_auth_id(self, auth_user_id: str) -> Optional[Dict[str, Any]]:
        return self._first(
            "get_user_by_auth_id",
            lambda: self.client.table(USERS_TABLE)
            .select("*")
            .eq("auth_user_id", auth_user_id)
            .limit(1)
            .execute(),
        )

    def get_or_create_user(
        self,
        auth_user_id: str,
        email: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Return the ``users`` row for an auth user, creating it on first access."""
        existing = self.get_user_by_auth_id(auth_user_id)
        if existing:
            return existing

        record = {
            "auth_user_id": auth_user_id,
            "username": derive_username(email),
            "email": email or "",
            "full_name": derive_full_name(email, metadata),
        }
        try:
            created = self._first(
                "create_user",
                lambda: self.client.table(USERS_TABLE).insert(record).execute(),
            )
        except DuplicateRecordError:
            # Another session created the row between our select and insert.
            created = self.get_user_by_auth_id(auth_user_id)

        if not created:
            raise StoreError("User profile insert returned no row", operation="create_user")
        logger.info("User profile created: %s", created.get("id"))
        return created

    # ------------------------------------------------------------------
    # Apify keys
    # ------------------------------------------------------------------

    def list_api_keys(self, user_id: str) -> List[Dict[str, Any]]:
        return self._run(
            "list_api_keys",
            lambda: self.client.table(KEYS_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .execute(),
        )

    def get_api_key(self, key_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        return self._first(
            "get_api_key",
            lambda: self.client.table(KEYS_TABLE)
            .select("*")
            .eq("id", key_id)
            .eq("user_id", user_id)
            .limit(1)
            .execute(),
        )

    def create_api_key(self, user_id: str, key_name: str, api_key: str) -> Dict[str, Any]:
        record = {"user_id": user_id, "key_name": key_name, "api_key": api_key}
        created = self._first(
            "create_api_key",
            lambda: self.client.table(KEYS_TABLE).insert(record).execute(),
        )
        if not created:
            raise StoreError("API key insert returned no row", operation="create_api_key")
        return created

    def update_api_key(self, key_id: str, user_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        allowed_fields = {"key_name", "api_key", "is_active"}
        filtered = {k: v for k, v in updates.items() if k in allowed_fields}
        filtered["updated_at"] = _utcnow_iso()
        return self._first(
            "update_api_key",
            lambda: self.client.table(KEYS_TABLE)
            .update(filtered)
            .eq("id", key_id)
            .eq("user_id", user_id)
            .execute(),
        )

    def delete_api_key(self, key_id: str, user_id: str) -> bool:
        deleted = self._run(
            "delete_api_key",
            lambda: self.client.table(KEYS_TABLE)
            .delete()
            .eq("id", key_id)
            .eq("user_id", user_id)
            .execute(),
        )
        return bool(deleted)

    # ------------------------------------------------------------------
    # LinkedIn profiles
    # ------------------------------------------------------------------

    def get_profile_by_url(self, linkedin_url: str) -> Optional[Dict[str, Any]]:
        """Exact-match lookup on the globally unique profile URL."""
        return self._first(
            "get_profile_by_url",
            lambda: self.client.table(PROFILES_TABLE)
            .select("*")
            .eq("linkedin_url", linkedin_url)
            .limit(1)
            .execute(),
        )

    def upsert_profile(
        self,
        user_id: str,
        linkedin_url: str,
        profile_data: Dict[str, Any],
        tags: Optional[Iterable[str]] = None,
    ) -> Dict[str, Any]:
        """Insert or overwrite the profile row keyed by ``linkedin_url``.

        Tags are only written when given, so a rescrape keeps the tags a user
        attached earlier.
        """
        payload: Dict[str, Any] = {
            "user_id": user_id,
            "linkedin_url": linkedin_url,
            "profile_data": profile_data,
            "last_updated": _utcnow_iso(),
        }
        if tags is not None:
            payload["tags"] = list(tags)

        stored = self._first(
            "upsert_profile",
            lambda: self.client.table(PROFILES_TABLE)
            .upsert(payload, on_conflict="linkedin_url")
            .execute(),
        )
        if not stored:
            raise StoreError("Profile upsert returned no row", operation="upsert_profile")
        return stored

    def list_profiles_by_owner(self, user_id: str) -> List[Dict[str, Any]]:
        return self._run(
            "list_profiles_by_owner",
            lambda: self.client.table(PROFILES_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .order("last_updated", desc=True)
            .execute(),
        )

    def list_all_profiles(self) -> List[Dict[str, Any]]:
        return self._run(
            "list_all_profiles",
            lambda: self.client.table(PROFILES_TABLE)
            .select("*")
            .order("last_updated", desc=True)
            .execute(),
        )

    def delete_profiles(self, profile_ids: List[str], user_id: str) -> int:
        """Delete profiles owned by ``user_id``; returns the number removed."""
        if not profile_ids:
            return 0
        deleted = self._run(
            "delete_profiles",
            lambda: self.client.table(PROFILES_TABLE)
            .delete()
            .in_("id", list(profile_ids))
            .eq("user_id", user_id)
            .execute(),
        )
        return len(deleted)

    # ------------------------------------------------------------------
    # Scraping jobs
    # ------------------------------------------------------------------

    def create_job(self, record: Dict[str, Any]) -> Dict[str, Any]:
        created = self._first(
            "create_job",
            lambda: self.client.table(JOBS_TABLE).insert(record).execute(),
        )
        if not created:
            raise StoreError("Job insert returned no row", operation="create_job")
        return created

    def update_job(
        self,
        job_id: str,
        updates: Dict[str, Any],
        *,
        expected_status: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """Update a job row; with ``expected_status`` the update only applies
        while the stored status still matches. Returns ``None`` when no row
        matched."""

        def _build():
            query = self.client.table(JOBS_TABLE).update(updates).eq("id", job_id)
            if expected_status is not None:
                query = query.eq("status", expected_status)
            return query.execute()

        return self._first("update_job", _build)

    def get_job(self, job_id: str, user_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        def _build():
            query = self.client.table(JOBS_TABLE).select("*").eq("id", job_id).limit(1)
            if user_id:
                query = query.eq("user_id", user_id)
            return query.execute()

        return self._first("get_job", _build)

    def list_jobs(self, user_id: str, limit: int = 50) -> List[Dict[str, Any]]:
        return self._run(
            "list_jobs",
            lambda: self.client.table(JOBS_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .limit(limit)
            .execute(),
        )


# Global database client instance
_database_client: Optional[SupabaseDatabaseClient] = None


def get_database_client() -> SupabaseDatabaseClient:
    """Get the global database client instance."""
    global _database_client
    if _database_client is None:
        # Ensure environment is loaded
        from dotenv import load_dotenv

        from ..config import reload_config

        load_dotenv()
        reload_config()

        _database_client = SupabaseDatabaseClient()
    return _database_client


def reset_database_client() -> None:
    global _database_client
    _database_client = None


# Simple alias for readability
DatabaseClient = SupabaseDatabaseClient

