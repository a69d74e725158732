"""
Database module for the harvester service.

This module provides:
- Supabase client and table operations
- Typed records for users, Apify keys, profiles and scraping jobs
"""

from .client import DatabaseClient, get_database_client, reset_database_client
from .models import ApifyKey, JobStatus, JobType, LinkedInProfile, ScrapingJob, UserRecord

__all__ = [
    "DatabaseClient",
    "get_database_client",
    "reset_database_client",
    "ApifyKey",
    "JobStatus",
    "JobType",
    "LinkedInProfile",
    "ScrapingJob",
    "UserRecord",
]
