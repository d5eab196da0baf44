"""Counter merge engine.

Folds one delivery outcome into the summary counters read from the store. The
increment is applied to the snapshot that was read, so the written value is an
absolute count rather than a delta; callers choose whether the write is
conditional on the snapshot version (see the dispatcher's write strategies).
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import assert_never

from notifyagg.domain.events import OutcomeEvent, ResultType
from notifyagg.domain.state import SummaryRecord, SummaryUpdate


def merge_outcome(record: SummaryRecord, event: OutcomeEvent, *, now: datetime) -> SummaryUpdate | None:
    """Return the merge-write for one outcome, or None when the record is already completed.

    Duplicate deliveries are not detected: the same outcome applied twice
    increments its counter twice. Completion triggers on the first outcome that
    brings the observed total to or past total_message_count, overcounts
    included.
    """
    if event.result_type is None:
        raise ValueError("merge_outcome requires an outcome with a result type")
    if record.is_completed:
        # Counters are frozen once completed; late or redelivered outcomes leave the record as is.
        return None

    succeeded = record.succeeded
    throttled = record.throttled
    failed = record.failed
    result_type = event.result_type
    if result_type is ResultType.SUCCEEDED:
        succeeded += 1
        update = SummaryUpdate(succeeded=succeeded)
    elif result_type is ResultType.THROTTLED:
        throttled += 1
        update = SummaryUpdate(throttled=throttled)
    elif result_type is ResultType.FAILED:
        failed += 1
        update = SummaryUpdate(failed=failed)
    else:
        assert_never(result_type)

    current_total = succeeded + throttled + failed
    if current_total >= record.total_message_count:
        return replace(update, is_completed=True, sent_date=event.sent_date or now)
    return update
