"""Utility to inspect a user's records in the database.

Run with:

    python -m scripts.inspect_user --auth-id <uuid>

Requires SUPABASE_URL/SUPABASE_SERVICE_ROLE_KEY environment variables.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Dict


def get_database():
    from harvester.db import get_database_client  # Lazy import to ensure env is loaded

    return get_database_client()


def dump(obj: Dict[str, Any]) -> str:
    return json.dumps(obj, indent=2, sort_keys=True, default=str)


def _redact_key(record: Dict[str, Any]) -> Dict[str, Any]:
    from harvester.logger import mask_secret

    redacted = dict(record)
    redacted["api_key"] = mask_secret(str(record.get("api_key") or ""))
    return redacted


def inspect_user(auth_id: str, job_limit: int = 10) -> int:
    db = get_database()
    user = db.get_user_by_auth_id(auth_id)
    if not user:
        print("No user record found", file=sys.stderr)
        return 1

    print("User record:\n" + dump(user))

    keys = db.list_api_keys(user["id"])
    print(f"\nApify keys ({len(keys)}):")
    for key in keys:
        print(dump(_redact_key(key)))

    profiles = db.list_profiles_by_owner(user["id"])
    print(f"\nOwned profiles: {len(profiles)}")

    jobs = db.list_jobs(user["id"], limit=job_limit)
    stuck = [job for job in jobs if job.get("status") == "running"]
    print(f"\nRecent jobs ({len(jobs)}, {len(stuck)} still running):")
    for job in jobs:
        print(
            f"  {job.get('id')}  {job.get('job_type')}  {job.get('status')}  "
            f"results={job.get('results_count')}  {job.get('error_message') or ''}"
        )

    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Inspect a user's records from the database")
    parser.add_argument("--auth-id", required=True, help="Auth user UUID")
    parser.add_argument("--jobs", type=int, default=10, help="Number of recent jobs to show")
    args = parser.parse_args()

    return inspect_user(args.auth_id, args.jobs)


if __name__ == "__main__":
    raise SystemExit(main())
