from __future__ import annotations

from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from notifyagg.domain.models import SentNotification
from notifyagg.domain.state import SummaryRecord


_MERGEABLE_COLUMNS = {"succeeded", "throttled", "failed", "unknown", "is_completed", "sent_date"}


async def create_sent_notification(
    session: AsyncSession,
    *,
    partition_key: str,
    notification_id: str,
    total_message_count: int,
) -> SentNotification:
    # Counters start at zero; only the fan-out decides the expected total.
    if total_message_count < 0:
        raise ValueError("total_message_count must be non-negative")
    row = SentNotification(
        partition_key=partition_key,
        id=notification_id,
        total_message_count=total_message_count,
        succeeded=0,
        throttled=0,
        failed=0,
        unknown=0,
        is_completed=False,
        sent_date=None,
        version=0,
    )
    session.add(row)
    return row


async def get_sent_notification(
    session: AsyncSession, partition_key: str, notification_id: str
) -> SentNotification | None:
    result = await session.execute(
        select(SentNotification).where(
            SentNotification.partition_key == partition_key,
            SentNotification.id == notification_id,
        )
    )
    return result.scalar_one_or_none()


async def merge_sent_notification(
    session: AsyncSession,
    partition_key: str,
    notification_id: str,
    *,
    fields: dict[str, Any],
    expected_version: int | None = None,
) -> int:
    # Write only the named columns so concurrent writers of other fields are not clobbered.
    unknown_columns = set(fields) - _MERGEABLE_COLUMNS
    if unknown_columns:
        raise ValueError(f"Unsupported merge columns: {sorted(unknown_columns)}")
    stmt = (
        update(SentNotification)
        .where(
            SentNotification.partition_key == partition_key,
            SentNotification.id == notification_id,
        )
        .values(**fields, version=SentNotification.version + 1)
        .execution_options(synchronize_session=False)
    )
    if expected_version is not None:
        stmt = stmt.where(SentNotification.version == expected_version)
    result = await session.execute(stmt)
    return int(result.rowcount or 0)


def to_summary_record(row: SentNotification) -> SummaryRecord:
    return SummaryRecord(
        partition_key=row.partition_key,
        id=row.id,
        total_message_count=int(row.total_message_count),
        succeeded=int(row.succeeded or 0),
        throttled=int(row.throttled or 0),
        failed=int(row.failed or 0),
        unknown=int(row.unknown or 0),
        is_completed=bool(row.is_completed),
        sent_date=row.sent_date,
        version=int(row.version or 0),
    )
