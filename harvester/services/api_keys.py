"""Management of the Apify tokens users store with their account."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from ..config import CONFIG
from ..db.models import ApifyKey
from ..errors import DuplicateRecordError, ValidationError
from ..logger import mask_secret


logger = logging.getLogger(__name__)

MIN_KEY_NAME_LENGTH = 2
MIN_API_KEY_LENGTH = 10


def validate_key_input(key_name: Optional[str], api_key: Optional[str]) -> tuple[str, str]:
    """Trim and validate a key form; returns the cleaned ``(name, key)``."""
    name = (key_name or "").strip()
    secret = (api_key or "").strip()
    if not name:
        raise ValidationError("Please enter a key name")
    if not secret:
        raise ValidationError("Please enter an API key")
    if len(name) < MIN_KEY_NAME_LENGTH:
        raise ValidationError("Key name must be at least 2 characters long")
    if len(secret) < MIN_API_KEY_LENGTH:
        raise ValidationError("API key seems too short. Please check your key.")
    return name, secret


def choose_default_key(keys: Sequence[ApifyKey]) -> Optional[ApifyKey]:
    """First active key, falling back to the first key."""
    if not keys:
        return None
    return next((key for key in keys if key.is_active), keys[0])


class ApiKeyManager:
    def __init__(self, db):
        self.db = db

    def list_keys(self, user_id: str) -> List[ApifyKey]:
        return [ApifyKey.from_record(row) for row in self.db.list_api_keys(user_id)]

    def get_key(self, user_id: str, key_id: str) -> Optional[ApifyKey]:
        record = self.db.get_api_key(key_id, user_id)
        return ApifyKey.from_record(record) if record else None

    def create_key(self, user_id: str, key_name: str, api_key: str) -> ApifyKey:
        name, secret = validate_key_input(key_name, api_key)
        logger.info(
            "Creating API key %r for user %s (%s)",
            name,
            user_id,
            mask_secret(secret, CONFIG.key_preview_length),
        )
        try:
            record = self.db.create_api_key(user_id, name, secret)
        except DuplicateRecordError as exc:
            raise ValidationError(
                "A key with this name already exists. Please choose a different name."
            ) from exc
        return ApifyKey.from_record(record)

    def update_key(self, user_id: str, key_id: str, key_name: str, api_key: str) -> Optional[ApifyKey]:
        name, secret = validate_key_input(key_name, api_key)
        try:
            record = self.db.update_api_key(key_id, user_id, {"key_name": name, "api_key": secret})
        except DuplicateRecordError as exc:
            raise ValidationError(
                "A key with this name already exists. Please choose a different name."
            ) from exc
        return ApifyKey.from_record(record) if record else None

    def delete_key(self, user_id: str, key_id: str, selected_key_id: Optional[str] = None) -> Optional[str]:
        """Delete a key and return the key id that should be selected afterwards."""
        if not self.db.delete_api_key(key_id, user_id):
            raise ValidationError("API key not found")
        if selected_key_id and selected_key_id != key_id:
            return selected_key_id
        replacement = choose_default_key(self.list_keys(user_id))
        return replacement.id if replacement else None

    def resolve_secret(self, user_id: str, key_id: Optional[str]) -> ApifyKey:
        """Load the selected key for a scrape; rejects missing or unknown keys."""
        if not key_id:
            raise ValidationError("Please select an Apify API key first")
        key = self.get_key(user_id, key_id)
        if key is None or not key.api_key:
            raise ValidationError("Invalid API key selected")
        return key


__all__ = [
    "ApiKeyManager",
    "choose_default_key",
    "validate_key_input",
    "MIN_KEY_NAME_LENGTH",
    "MIN_API_KEY_LENGTH",
]
