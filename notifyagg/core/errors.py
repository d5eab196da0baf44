from __future__ import annotations


class NotifyAggError(Exception):
    """Base error for notifyagg."""


class MalformedEventError(NotifyAggError):
    """Outcome payload cannot be decoded into an outcome event."""


class RecordNotFoundError(NotifyAggError):
    """Summary record referenced by an outcome event does not exist."""

    def __init__(self, partition_key: str, notification_id: str) -> None:
        super().__init__(f"Summary record {partition_key}/{notification_id} not found")
        self.partition_key = partition_key
        self.notification_id = notification_id


class StoreWriteError(NotifyAggError):
    """Merge-write to the summary store failed."""


class WriteConflictError(StoreWriteError):
    """Row version changed between read and conditional merge-write."""


class StoreReadError(NotifyAggError):
    """Point read from the summary store failed."""
