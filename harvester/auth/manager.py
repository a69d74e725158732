"""
Authentication for the harvester API.

Bearer tokens are Supabase access tokens. They are decoded locally when the
project's JWT secret is configured; otherwise (or when decoding fails) the
token is resolved through the database client's Supabase auth lookup.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any, Dict, List, Optional, Union

import jwt
import requests
from fastapi import HTTPException, status

from ..config import CONFIG


logger = logging.getLogger(__name__)

JWT_AUDIENCE = "authenticated"
ADMIN_TIMEOUT_SECONDS = 10


def _secret_candidates(secret: Optional[str]) -> List[Union[str, bytes]]:
    """The secret as given, plus its base64-decoded bytes when it decodes."""
    raw = (secret or "").strip()
    if not raw:
        return []
    candidates: List[Union[str, bytes]] = [raw]
    try:
        decoded = base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError):
        decoded = b""
    if decoded:
        candidates.append(decoded)
    return candidates


class SupabaseAuthManager:
    """Resolves Supabase auth users from bearer tokens or auth ids."""

    def __init__(self, db=None):
        self.supabase_url = CONFIG.supabase_url
        self.service_role_key = CONFIG.supabase_service_role_key
        self._secrets = _secret_candidates(CONFIG.supabase_jwt_secret)
        self._db = db

    @property
    def db(self):
        if self._db is None:
            from ..db import get_database_client

            self._db = get_database_client()
        return self._db

    def _decode(self, token: str) -> Optional[Dict[str, Any]]:
        for secret in self._secrets:
            try:
                payload = jwt.decode(token, secret, algorithms=["HS256"], audience=JWT_AUDIENCE)
            except jwt.InvalidTokenError:
                continue
            return {
                "id": payload.get("sub"),
                "email": payload.get("email"),
                "metadata": payload.get("user_metadata") or {},
            }
        return None

    def get_user_from_token(self, token: str) -> Optional[Dict[str, Any]]:
        """Return ``{"id", "email", "metadata"}`` for a valid token, else ``None``."""
        if not token:
            return None
        user = self._decode(token)
        if user:
            return user

        record = self.db.get_current_user(token)
        if not record:
            logger.warning("Supabase could not validate bearer token")
            return None
        return {
            "id": record.get("id"),
            "email": record.get("email"),
            "metadata": record.get("user_metadata") or {},
        }

    def authenticate_request_token(self, authorization_header: str) -> Optional[Dict[str, Any]]:
        """Validate the bearer token carried by an Authorization header."""
        if not authorization_header or not authorization_header.startswith("Bearer "):
            return None
        user = self.get_user_from_token(authorization_header[len("Bearer "):].strip())
        return user if user and user.get("id") else None

    def get_auth_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Fetch an auth user through the admin API (needs the service role key)."""
        if not user_id or not self.service_role_key or not self.supabase_url:
            return None

        url = f"{self.supabase_url.rstrip('/')}/auth/v1/admin/users/{user_id}"
        headers = {"Authorization": f"Bearer {self.service_role_key}", "apikey": self.service_role_key}
        try:
            response = requests.get(url, headers=headers, timeout=ADMIN_TIMEOUT_SECONDS)
        except requests.RequestException:
            logger.exception("Supabase admin lookup for %s failed", user_id)
            return None

        if response.status_code != 200:
            logger.warning("Supabase admin lookup for %s returned %s", user_id, response.status_code)
            return None

        data = response.json()
        return {
            "id": data.get("id"),
            "email": data.get("email"),
            "metadata": data.get("user_metadata") or {},
        }


AuthManager = SupabaseAuthManager


_auth_manager: Optional[AuthManager] = None


def get_auth_manager() -> AuthManager:
    """Get the global AuthManager instance."""
    global _auth_manager
    if _auth_manager is None:
        _auth_manager = AuthManager()
    return _auth_manager


def require_auth(authorization: Optional[str] = None) -> Dict[str, Any]:
    """
    Resolve the authenticated user for an Authorization header.

    Raises:
        HTTPException: 401 when the header is missing or the token is invalid
    """
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_info = get_auth_manager().authenticate_request_token(authorization)
    if not user_info:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user_info
