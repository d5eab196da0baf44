from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta

from arq import create_pool
from arq.connections import RedisSettings

from notifyagg.core.config import get_settings
from notifyagg.domain.events import OutcomeEvent, ResultType


logger = logging.getLogger(__name__)

# Job function name registered by the data worker.
PROCESS_OUTCOME_JOB = "process_outcome_message"

_redis_pool = None
_redis_pool_loop = None
_redis_lock = asyncio.Lock()


async def get_redis_pool():
    """Return the arq pool producers share for the outcome data queue.

    The pool is bound to the event loop that opened it. A caller on a new loop,
    such as a fresh asyncio.run in a script or a test, gets a fresh pool.
    """
    global _redis_pool, _redis_pool_loop
    current_loop = asyncio.get_running_loop()
    if _redis_pool is not None and _redis_pool_loop is current_loop:
        return _redis_pool
    async with _redis_lock:
        if _redis_pool is None or _redis_pool_loop is not current_loop:
            settings = get_settings()
            _redis_pool = await create_pool(
                RedisSettings.from_dsn(settings.redis_url),
                default_queue_name=settings.data_queue_name,
            )
            _redis_pool_loop = current_loop
    return _redis_pool


async def close_redis_pool() -> None:
    # No-op unless a producer on this loop opened the pool.
    global _redis_pool, _redis_pool_loop
    pool, loop = _redis_pool, _redis_pool_loop
    _redis_pool = None
    _redis_pool_loop = None
    if pool is not None and loop is asyncio.get_running_loop():
        await pool.aclose()


def force_completion_job_id(notification_id: str) -> str:
    # One delayed fallback per campaign; arq ignores re-enqueues of an existing job id.
    return f"force-complete:{notification_id}"


async def enqueue_outcome_event(
    notification_id: str,
    result_type: ResultType,
    *,
    sent_date: datetime | None = None,
) -> str | None:
    event = OutcomeEvent(notification_id=notification_id, result_type=result_type, sent_date=sent_date)
    redis = await get_redis_pool()
    job = await redis.enqueue_job(
        PROCESS_OUTCOME_JOB,
        event.model_dump_json(by_alias=True, exclude_none=True),
        _queue_name=get_settings().data_queue_name,
    )
    return job.job_id if job else None


async def schedule_force_completion(
    notification_id: str,
    *,
    delay: timedelta | None = None,
) -> str:
    # Delayed liveness message; the reconciler finalizes whatever outcomes arrived by then.
    settings = get_settings()
    defer_by = delay if delay is not None else timedelta(seconds=settings.force_complete_delay_s)
    event = OutcomeEvent(notification_id=notification_id, force_message_complete=True)
    job_id = force_completion_job_id(notification_id)
    redis = await get_redis_pool()
    job = await redis.enqueue_job(
        PROCESS_OUTCOME_JOB,
        event.model_dump_json(by_alias=True, exclude_none=True),
        _job_id=job_id,
        _queue_name=settings.data_queue_name,
        _defer_by=defer_by,
    )
    if job is None:
        logger.info("force completion already scheduled id=%s", notification_id)
    else:
        logger.info(
            "force completion scheduled id=%s defer_s=%s", notification_id, int(defer_by.total_seconds())
        )
    return job_id
