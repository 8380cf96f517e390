"""Operator utility to inspect and recover delivery jobs."""

from __future__ import annotations

import argparse

from sqlalchemy.exc import SQLAlchemyError

from taskflow.application.use_cases.delivery_jobs import (
    list_delivery_jobs,
    queue_stats,
    reclaim_stale_jobs,
    requeue_failed_jobs,
)
from taskflow.application.use_cases.notifications import sweep_read_notifications
from taskflow.config import get_settings
from taskflow.domain.entities import JOB_STATUSES
from taskflow.infrastructure.database import SessionLocal, initialize_database


def parse_args() -> argparse.Namespace:
    """Parse command line arguments for job management."""

    settings = get_settings()
    parser = argparse.ArgumentParser(
        description="Inspect and recover jobs of the notification delivery queue.",
    )
    subcommands = parser.add_subparsers(dest="command", required=True)

    list_parser = subcommands.add_parser("list", help="List jobs, oldest first")
    list_parser.add_argument("--status", choices=JOB_STATUSES, default=None)
    list_parser.add_argument("--limit", type=int, default=50)

    subcommands.add_parser("stats", help="Show the number of jobs per status")

    requeue_parser = subcommands.add_parser(
        "requeue", help="Move FAILED jobs back to PENDING"
    )
    requeue_parser.add_argument(
        "job_ids",
        nargs="*",
        help="Jobs to requeue. Every FAILED job is requeued when omitted.",
    )

    reclaim_parser = subcommands.add_parser(
        "reclaim", help="Recover jobs stuck in PROCESSING"
    )
    reclaim_parser.add_argument(
        "--lease-minutes",
        type=int,
        default=settings.worker_lease_timeout_minutes,
    )
    reclaim_parser.add_argument(
        "--max-attempts", type=int, default=settings.worker_max_attempts
    )

    sweep_parser = subcommands.add_parser(
        "sweep", help="Delete old read notifications"
    )
    sweep_parser.add_argument(
        "--days", type=int, default=settings.notification_retention_days
    )
    return parser.parse_args()


def main() -> None:
    """Run the requested job management command."""

    args = parse_args()
    initialize_database()

    session = SessionLocal()
    try:
        if args.command == "list":
            for job in list_delivery_jobs(session, status=args.status, limit=args.limit):
                print(
                    f"{job.id}  {job.status:<10}  attempts={job.attempts}  "
                    f"kind={job.kind}  created={job.created_at:%Y-%m-%d %H:%M:%S}"
                    + (f"  error={job.error}" if job.error else "")
                )
        elif args.command == "stats":
            for status, count in queue_stats(session).items():
                print(f"{status:<10} {count}")
        elif args.command == "requeue":
            requeued = requeue_failed_jobs(session, args.job_ids or None)
            print(f"Requeued {requeued} job(s).")
        elif args.command == "reclaim":
            requeued, failed = reclaim_stale_jobs(
                session,
                lease_timeout_minutes=args.lease_minutes,
                max_attempts=args.max_attempts,
            )
            print(f"Requeued {requeued} job(s), marked {failed} job(s) as FAILED.")
        elif args.command == "sweep":
            deleted = sweep_read_notifications(session, older_than_days=args.days)
            print(f"Deleted {deleted} notification(s).")
    except ValueError as exc:
        session.rollback()
        raise SystemExit(f"Invalid request: {exc}") from exc
    except SQLAlchemyError as exc:
        session.rollback()
        raise SystemExit(f"Database error: {exc}") from exc
    finally:
        session.close()


if __name__ == "__main__":
    main()
