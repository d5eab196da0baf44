from __future__ import annotations

import logging

from arq import Retry, run_worker
from arq.connections import RedisSettings

from notifyagg.core.config import get_settings
from notifyagg.core.errors import MalformedEventError, RecordNotFoundError, StoreReadError, StoreWriteError
from notifyagg.core.logging import configure_logging
from notifyagg.persistence.db import dispose_engine, get_sessionmaker
from notifyagg.persistence.store import SqlSummaryRecordStore
from notifyagg.services.aggregation.dispatcher import OutcomeDispatcher

logger = logging.getLogger(__name__)


async def process_outcome_message(ctx, message: str) -> str:
    # One job per outcome message; redelivery of transient failures is left to arq.
    dispatcher: OutcomeDispatcher = ctx["dispatcher"]
    job_id = ctx.get("job_id")
    try:
        result = await dispatcher.handle(message)
    except (StoreReadError, StoreWriteError) as exc:
        defer_s = max(0, int(get_settings().data_retry_defer_s))
        logger.warning(
            "outcome job deferred after store failure job_id=%s try=%s: %s",
            job_id,
            ctx.get("job_try"),
            exc,
        )
        raise Retry(defer=defer_s) from exc
    except (MalformedEventError, RecordNotFoundError):
        # Not recoverable by redelivery; fail the job so it lands in arq's results for operators.
        logger.exception("outcome job failed job_id=%s", job_id)
        raise
    return result.action


async def _startup(ctx) -> None:
    # Build the store once per worker process; jobs share it but no per-record state.
    settings = get_settings()
    store = SqlSummaryRecordStore(get_sessionmaker())
    ctx["dispatcher"] = OutcomeDispatcher.from_settings(store, settings)
    logger.info(
        "data worker started queue=%s write_strategy=%s",
        settings.data_queue_name,
        settings.aggregation_write_strategy,
    )


async def _shutdown(ctx) -> None:
    await dispose_engine()


class WorkerSettings:
    # Keep worker settings as class attributes for ARQ CLI compatibility.
    settings = get_settings()
    redis_settings = RedisSettings.from_dsn(settings.redis_url)
    queue_name = settings.data_queue_name
    max_tries = max(1, int(settings.data_max_tries))
    max_jobs = max(1, int(settings.data_max_jobs))
    functions = [process_outcome_message]
    on_startup = _startup
    on_shutdown = _shutdown


def run() -> None:
    # Console entry point; configure logging once for the worker process.
    configure_logging()
    run_worker(WorkerSettings)
