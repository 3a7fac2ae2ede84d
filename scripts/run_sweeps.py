"""Run the scheduled maintenance jobs in-process.

Usage: python scripts/run_sweeps.py [job ...]

Without arguments every job runs. The same jobs are exposed over HTTP
under /api/cron/* for an external scheduler.
"""
import argparse
import json
import sys
import os

sys.path.append(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
)  # relative imports

from app import create_app
from app.services import (
    InvitationService,
    MemberRequestService,
    MembershipService,
    MessageService,
    PingService,
)

JOBS = {
    "member-requests": MemberRequestService.expire_due,
    "church-invitations": InvitationService.expire_due,
    "pings": PingService.expire_due,
    "messages": MessageService.cleanup,
    "membership": MembershipService.enforce,
}


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Run InHouse maintenance sweeps")
    parser.add_argument("jobs", nargs="*", metavar="job", help=f"one of {', '.join(sorted(JOBS))} (default: all)")
    args = parser.parse_args(argv)
    unknown = [name for name in args.jobs if name not in JOBS]
    if unknown:
        parser.error(f"unknown job(s): {', '.join(unknown)}")
    return args.jobs or list(JOBS)


def run_jobs(names):
    results = {}
    for name in names:
        print(f"Running {name}...")
        results[name] = JOBS[name]()
        print(json.dumps(results[name], indent=2, default=str))
    return results


def main():
    names = parse_args()
    flask_app = create_app()
    with flask_app.app_context():
        run_jobs(names)


if __name__ == "__main__":
    main()
