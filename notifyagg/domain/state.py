from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True, slots=True)
class SummaryRecord:
    """Point-in-time snapshot of a campaign's summary row."""

    partition_key: str
    id: str
    total_message_count: int
    succeeded: int = 0
    throttled: int = 0
    failed: int = 0
    unknown: int = 0
    is_completed: bool = False
    sent_date: datetime | None = None
    # Incremented by every merge-write; compared by optimistic writes.
    version: int = 0

    @property
    def observed_total(self) -> int:
        # Unknown is excluded because unresolved recipients may still report later.
        return self.succeeded + self.throttled + self.failed


@dataclass(frozen=True, slots=True)
class SummaryUpdate:
    """Partial field set for a merge-write; None means leave the stored value untouched."""

    succeeded: int | None = None
    throttled: int | None = None
    failed: int | None = None
    unknown: int | None = None
    is_completed: bool | None = None
    sent_date: datetime | None = None

    def fields(self) -> dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}

    @property
    def completes(self) -> bool:
        return self.is_completed is True
