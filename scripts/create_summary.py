from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import timedelta

from notifyagg.core.config import get_settings
from notifyagg.core.logging import configure_logging
from notifyagg.persistence.db import dispose_engine, get_sessionmaker
from notifyagg.persistence.store import SqlSummaryRecordStore
from notifyagg.services.aggregation.queue import close_redis_pool, schedule_force_completion


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create a summary record for a sent notification")
    parser.add_argument("--notification-id", required=True, help="Summary record id")
    parser.add_argument("--total", required=True, type=int, help="Expected number of outcome events")
    parser.add_argument(
        "--force-complete-after",
        type=int,
        default=None,
        help="Schedule the force-completion message after this many seconds",
    )
    return parser


async def _create_summary(args: argparse.Namespace) -> int:
    settings = get_settings()
    store = SqlSummaryRecordStore(get_sessionmaker())
    try:
        record = await store.create(
            settings.sent_notifications_partition,
            args.notification_id,
            total_message_count=args.total,
        )
        print("Summary record created:")
        print(f"  id: {record.id}")
        print(f"  total_message_count: {record.total_message_count}")
        if args.force_complete_after is not None:
            job_id = await schedule_force_completion(
                record.id, delay=timedelta(seconds=max(0, args.force_complete_after))
            )
            print(f"  force_completion_job: {job_id}")
    finally:
        await dispose_engine()
        await close_redis_pool()
    return 0


def main() -> int:
    configure_logging()
    parser = _build_parser()
    args = parser.parse_args()
    try:
        return asyncio.run(_create_summary(args))
    except Exception as exc:  # noqa: BLE001 - surface provisioning failures clearly
        print(f"create_summary failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
