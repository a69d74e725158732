"""
Authentication for the harvester API.

This module provides:
- User authentication via Supabase Auth
- JWT token validation
"""

from .manager import AuthManager, get_auth_manager, require_auth

__all__ = [
    "AuthManager",
    "get_auth_manager",
    "require_auth",
]
