"""Summary record store contract and its SQLAlchemy implementation.

The aggregation core only needs point reads by (partition, id) and merge-writes
of a named subset of fields. Everything else about storage stays behind this
boundary so the merge engine and reconciler remain pure.
"""

from __future__ import annotations

import logging
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from notifyagg.core.errors import RecordNotFoundError, StoreReadError, StoreWriteError, WriteConflictError
from notifyagg.domain.state import SummaryRecord, SummaryUpdate
from notifyagg.persistence.repos import sent_notifications as sent_notifications_repo


logger = logging.getLogger(__name__)


class SummaryRecordStore(Protocol):
    async def get(self, partition_key: str, notification_id: str) -> SummaryRecord:
        """Return the current record or raise RecordNotFoundError."""
        ...

    async def merge(
        self,
        partition_key: str,
        notification_id: str,
        update: SummaryUpdate,
        *,
        expected_version: int | None = None,
    ) -> None:
        """Write the non-None fields of update; check the version when expected_version is given."""
        ...


class SqlSummaryRecordStore:
    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]) -> None:
        self._sessionmaker = sessionmaker

    async def get(self, partition_key: str, notification_id: str) -> SummaryRecord:
        try:
            async with self._sessionmaker() as session:
                row = await sent_notifications_repo.get_sent_notification(
                    session, partition_key, notification_id
                )
        except SQLAlchemyError as exc:
            raise StoreReadError(f"Failed to read summary {partition_key}/{notification_id}") from exc
        if row is None:
            raise RecordNotFoundError(partition_key, notification_id)
        return sent_notifications_repo.to_summary_record(row)

    async def merge(
        self,
        partition_key: str,
        notification_id: str,
        update: SummaryUpdate,
        *,
        expected_version: int | None = None,
    ) -> None:
        fields = update.fields()
        if not fields:
            return
        try:
            async with self._sessionmaker() as session:
                matched = await sent_notifications_repo.merge_sent_notification(
                    session,
                    partition_key,
                    notification_id,
                    fields=fields,
                    expected_version=expected_version,
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise StoreWriteError(f"Failed to merge summary {partition_key}/{notification_id}") from exc
        if matched:
            return
        if expected_version is not None:
            raise WriteConflictError(
                f"Summary {partition_key}/{notification_id} changed since version {expected_version}"
            )
        raise RecordNotFoundError(partition_key, notification_id)

    async def create(self, partition_key: str, notification_id: str, *, total_message_count: int) -> SummaryRecord:
        # Fan-out entry point; the aggregation core itself never inserts rows.
        try:
            async with self._sessionmaker() as session:
                row = await sent_notifications_repo.create_sent_notification(
                    session,
                    partition_key=partition_key,
                    notification_id=notification_id,
                    total_message_count=total_message_count,
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise StoreWriteError(f"Failed to create summary {partition_key}/{notification_id}") from exc
        logger.info(
            "summary record created id=%s total_message_count=%s", notification_id, total_message_count
        )
        return sent_notifications_repo.to_summary_record(row)
