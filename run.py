import argparse
import json
import os
import sys
from typing import List, Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from harvester.config import reload_config

reload_config()

from harvester.core import open_session, resolve_auth_user
from harvester.db.models import JobType
from harvester.errors import HarvesterError
from harvester.logger import log


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run LinkedIn scraping jobs from the command line")
    parser.add_argument("--user-id", required=True, help="Supabase auth user UUID")
    parser.add_argument("--email", default=None, help="Email used when the auth user cannot be looked up")
    sub = parser.add_subparsers(dest="command", required=True)

    scrape = sub.add_parser("scrape", help="Run a scraping job inline")
    scrape.add_argument("--type", dest="job_type", choices=[t.value for t in JobType], required=True)
    scrape.add_argument("--url", required=True, help="Post URL, or comma separated profile URLs")
    scrape.add_argument("--key-id", default=None, help="Apify key to use (defaults to the active key)")

    jobs = sub.add_parser("jobs", help="List recent scraping jobs")
    jobs.add_argument("--limit", type=int, default=20)

    sub.add_parser("keys", help="List stored Apify keys")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    try:
        auth_user = resolve_auth_user(args.user_id, args.email)
    except LookupError as exc:
        print(f"[harvester error] {exc}", file=sys.stderr)
        return 1

    try:
        orchestrator = open_session(auth_user)

        if args.command == "keys":
            for key in orchestrator.keys.list_keys(orchestrator.user_id):
                marker = "*" if key.id == orchestrator.store.state.selected_key_id else " "
                print(f"{marker} {key.id}  {key.key_name}  active={key.is_active}")
            return 0

        if args.command == "jobs":
            for job in orchestrator.jobs.list_recent(orchestrator.user_id, limit=args.limit):
                print(
                    f"{job.id}  {job.job_type.value:<16} {job.status.value:<10} "
                    f"{job.results_count:>5}  {job.error_message or ''}"
                )
            return 0

        if args.key_id:
            orchestrator.select_key(args.key_id)
        outcome = orchestrator.scrape(JobType(args.job_type), args.url)
    except HarvesterError as exc:
        print(f"[harvester error] {type(exc).__name__}: {exc}", file=sys.stderr)
        return 2

    log(f"[harvester] job {outcome.job.id} {outcome.job.status.value}", results=outcome.results_count)
    print(json.dumps({"comments": outcome.comments, "profiles": outcome.profiles}, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
