"""Route modules for the public API."""

from . import jobs, keys, me, profiles, scrape, state

__all__ = [
    "jobs",
    "keys",
    "me",
    "profiles",
    "scrape",
    "state",
]
