from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Literal

from notifyagg.core.config import Settings
from notifyagg.core.errors import WriteConflictError
from notifyagg.domain.state import SummaryUpdate
from notifyagg.persistence.store import SummaryRecordStore
from notifyagg.services.aggregation.interpreter import decode_outcome_event
from notifyagg.services.aggregation.merge import merge_outcome
from notifyagg.services.aggregation.reconciler import reconcile_forced_completion


logger = logging.getLogger(__name__)

WriteStrategy = Literal["last_write_wins", "optimistic"]
DispatchAction = Literal["incremented", "completed", "force_completed", "skipped"]


def _utc_now() -> datetime:
    # Keep completion timestamps in UTC regardless of worker host timezone.
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class DispatchResult:
    notification_id: str
    action: DispatchAction
    update: SummaryUpdate | None
    attempts: int


class OutcomeDispatcher:
    """Route one outcome message to the merge engine or the forced-completion reconciler.

    Holds no per-record state; every call reads the summary fresh from the store
    and finishes with a single merge-write. With ``last_write_wins`` the write is
    unconditional, so two workers that read the same snapshot can lose one
    increment. With ``optimistic`` the write is checked against the version read
    and the whole read-modify-write cycle is repeated on conflict.
    """

    def __init__(
        self,
        store: SummaryRecordStore,
        *,
        partition_key: str,
        write_strategy: WriteStrategy = "last_write_wins",
        max_conflict_retries: int = 5,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        if write_strategy not in ("last_write_wins", "optimistic"):
            raise ValueError(f"Unsupported write strategy: {write_strategy}")
        self._store = store
        self._partition_key = partition_key
        self._write_strategy = write_strategy
        # One initial read-modify-write cycle plus the configured conflict retries.
        self._max_attempts = 1 + max(0, int(max_conflict_retries)) if write_strategy == "optimistic" else 1
        self._clock = clock

    @classmethod
    def from_settings(cls, store: SummaryRecordStore, settings: Settings) -> "OutcomeDispatcher":
        return cls(
            store,
            partition_key=settings.sent_notifications_partition,
            write_strategy=settings.aggregation_write_strategy,
            max_conflict_retries=settings.aggregation_max_conflict_retries,
        )

    async def handle(self, raw: str | bytes | dict[str, Any]) -> DispatchResult:
        event = decode_outcome_event(raw)
        optimistic = self._write_strategy == "optimistic"
        attempt = 0
        while True:
            attempt += 1
            record = await self._store.get(self._partition_key, event.notification_id)
            if event.force_message_complete:
                update = reconcile_forced_completion(record, now=self._clock())
            else:
                update = merge_outcome(record, event, now=self._clock())

            if update is None:
                logger.debug(
                    "summary already completed; outcome skipped id=%s force=%s",
                    event.notification_id,
                    event.force_message_complete,
                )
                return DispatchResult(event.notification_id, "skipped", None, attempt)

            try:
                await self._store.merge(
                    self._partition_key,
                    event.notification_id,
                    update,
                    expected_version=record.version if optimistic else None,
                )
            except WriteConflictError:
                if attempt >= self._max_attempts:
                    raise
                logger.info(
                    "summary version conflict; retrying id=%s attempt=%s", event.notification_id, attempt
                )
                continue
            break

        if event.force_message_complete:
            action: DispatchAction = "force_completed"
            logger.info(
                "summary force-completed id=%s unknown=%s total=%s",
                event.notification_id,
                update.unknown,
                record.total_message_count,
            )
        elif update.completes:
            action = "completed"
            logger.info(
                "summary completed id=%s total=%s sent_date=%s",
                event.notification_id,
                record.total_message_count,
                update.sent_date.isoformat() if update.sent_date else None,
            )
        else:
            action = "incremented"
        return DispatchResult(event.notification_id, action, update, attempt)
