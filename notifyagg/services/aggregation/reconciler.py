from __future__ import annotations

import logging
from datetime import datetime

from notifyagg.domain.state import SummaryRecord, SummaryUpdate


logger = logging.getLogger(__name__)


def reconcile_forced_completion(record: SummaryRecord, *, now: datetime) -> SummaryUpdate | None:
    """Finalize a record whose outcomes never all arrived.

    Safe to run any number of times: an already completed record yields None.
    The shortfall between the expected and observed totals is recorded as
    unknown rather than waited for.
    """
    if record.is_completed:
        return None
    unknown = record.total_message_count - record.observed_total
    if unknown < 0:
        # Overcounts come from redelivered outcomes or lost-update races; unknown never goes negative.
        logger.warning(
            "observed outcomes exceed expected total id=%s observed=%s total=%s",
            record.id,
            record.observed_total,
            record.total_message_count,
        )
        unknown = 0
    return SummaryUpdate(unknown=unknown, is_completed=True, sent_date=now)
