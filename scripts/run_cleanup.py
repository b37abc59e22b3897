#!/usr/bin/env python3
"""
Vector cleanup utility: one-shot cleanup of stale, low-performing vectors,
or a long-running weekly schedule on the heartbeat loop.
"""

import argparse
import sys
import json
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from brandrag.core import heartbeat
from brandrag.core.config import CLEANUP_INTERVAL_SEC, is_heartbeat_enabled
from brandrag.core.engine import build_engine
from brandrag.core.maintenance import CleanupReport


def format_report(report: CleanupReport) -> str:
    """Format a cleanup report for display."""
    lines = [f"Operation: {report.operation}"]
    if report.completed_at and report.started_at:
        duration = report.completed_at - report.started_at
        lines.append(f"Duration: {duration.total_seconds():.2f} seconds")

    if report.errors:
        lines.append(f"Status: PARTIAL ({len(report.errors)} errors)")
    else:
        lines.append("Status: SUCCESS")

    lines.append(f"Users Processed: {report.users_processed}")
    lines.append(f"Vectors Deleted: {report.total_cleaned}")

    cleaned_users = {user: n for user, n in report.deleted_per_user.items() if n}
    if cleaned_users:
        lines.append("Deleted Per User:")
        for user_id, deleted in cleaned_users.items():
            lines.append(f"  {user_id}: {deleted}")

    if report.errors:
        lines.append("Errors:")
        for error in report.errors:
            lines.append(f"  - {error}")

    return "\n".join(lines)


def main():
    parser = argparse.ArgumentParser(
        description="Remove old, low-performing content vectors",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                          # Clean every user once
  %(prog)s --user u123              # Clean one user
  %(prog)s --user u123 --keep-days 30
  %(prog)s --schedule               # Run weekly on the heartbeat loop

A vector is deleted only when it is older than the retention window AND its
performance is below vectorCleanup.minPerformanceThreshold.

Environment variables:
- DB_PATH=./data/brandrag.db (database location)
- HEARTBEAT_ENABLED=true (required for --schedule)
- CLEANUP_INTERVAL_SEC=604800 (schedule interval)
        """
    )

    parser.add_argument(
        "--user", "-u",
        help="Only clean this user's vectors"
    )

    parser.add_argument(
        "--keep-days", "-k",
        type=int,
        help="Override the configured retention window (days); requires --user"
    )

    parser.add_argument(
        "--schedule", "-s",
        action="store_true",
        help="Register the cleanup on the heartbeat loop and run until interrupted"
    )

    parser.add_argument(
        "--json", "-j",
        action="store_true",
        help="Output results as JSON instead of human-readable text"
    )

    args = parser.parse_args()

    if args.keep_days is not None and not args.user:
        parser.error("--keep-days requires --user")

    if args.schedule and args.user:
        parser.error("--schedule cannot be combined with --user")

    if args.keep_days is not None and args.keep_days < 1:
        parser.error("--keep-days must be >= 1")

    engine = build_engine()

    if args.schedule:
        if not is_heartbeat_enabled():
            print("Scheduled cleanup requires HEARTBEAT_ENABLED=true")
            sys.exit(1)

        try:
            heartbeat.register_cleanup_task(engine, CLEANUP_INTERVAL_SEC)
            heartbeat.start()
        except KeyboardInterrupt:
            heartbeat.stop()
        except ValueError as e:
            print(f"Heartbeat configuration error: {e}")
            sys.exit(1)
        return

    if args.user:
        deleted = engine.cleanup_old_vectors(args.user, args.keep_days)
        if args.json:
            print(json.dumps({"user_id": args.user, "deleted": deleted}))
        else:
            print(f"Deleted {deleted} vectors for user {args.user}")
        return

    report = engine.cleanup_all_users_report()
    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print(format_report(report))

    sys.exit(1 if report.errors else 0)


if __name__ == "__main__":
    main()
