from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import OperationalError

from notifyagg.core.config import SENT_NOTIFICATIONS_PARTITION
from notifyagg.core.errors import RecordNotFoundError, StoreReadError, StoreWriteError, WriteConflictError
from notifyagg.domain.models import Base
from notifyagg.domain.state import SummaryUpdate
from notifyagg.persistence.db import build_engine, build_sessionmaker
from notifyagg.persistence.store import SqlSummaryRecordStore
from notifyagg.services.aggregation.dispatcher import OutcomeDispatcher
from notifyagg.tests.utils.fake_store import FIXED_NOW


P = SENT_NOTIFICATIONS_PARTITION


@pytest.fixture
async def sql_store(tmp_path):  # noqa: ANN001
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'summaries.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield SqlSummaryRecordStore(build_sessionmaker(engine))
    await engine.dispose()


def _naive(value: datetime | None) -> datetime | None:
    # SQLite drops tz offsets; compare wall-clock UTC values.
    return value.replace(tzinfo=None) if value is not None else None


@pytest.mark.asyncio
async def test_created_record_starts_with_zero_counters(sql_store) -> None:  # noqa: ANN001
    created = await sql_store.create(P, "n-1", total_message_count=4)
    record = await sql_store.get(P, "n-1")
    assert created.total_message_count == 4
    assert (record.succeeded, record.throttled, record.failed, record.unknown) == (0, 0, 0, 0)
    assert record.is_completed is False
    assert record.sent_date is None
    assert record.version == 0


@pytest.mark.asyncio
async def test_merge_writes_only_named_fields(sql_store) -> None:  # noqa: ANN001
    await sql_store.create(P, "n-1", total_message_count=10)
    await sql_store.merge(P, "n-1", SummaryUpdate(succeeded=3, failed=2))
    await sql_store.merge(P, "n-1", SummaryUpdate(throttled=1))
    record = await sql_store.get(P, "n-1")
    assert (record.succeeded, record.throttled, record.failed) == (3, 1, 2)
    assert record.version == 2


@pytest.mark.asyncio
async def test_empty_update_is_not_written(sql_store) -> None:  # noqa: ANN001
    await sql_store.create(P, "n-1", total_message_count=1)
    await sql_store.merge(P, "n-1", SummaryUpdate())
    assert (await sql_store.get(P, "n-1")).version == 0


@pytest.mark.asyncio
async def test_missing_record_raises_not_found(sql_store) -> None:  # noqa: ANN001
    with pytest.raises(RecordNotFoundError):
        await sql_store.get(P, "missing")
    with pytest.raises(RecordNotFoundError):
        await sql_store.merge(P, "missing", SummaryUpdate(succeeded=1))


@pytest.mark.asyncio
async def test_stale_version_raises_conflict(sql_store) -> None:  # noqa: ANN001
    await sql_store.create(P, "n-1", total_message_count=10)
    snapshot = await sql_store.get(P, "n-1")
    await sql_store.merge(P, "n-1", SummaryUpdate(succeeded=1), expected_version=snapshot.version)
    with pytest.raises(WriteConflictError):
        await sql_store.merge(P, "n-1", SummaryUpdate(succeeded=1), expected_version=snapshot.version)
    assert (await sql_store.get(P, "n-1")).succeeded == 1


@pytest.mark.asyncio
async def test_duplicate_create_raises_store_write_error(sql_store) -> None:  # noqa: ANN001
    await sql_store.create(P, "n-1", total_message_count=1)
    with pytest.raises(StoreWriteError):
        await sql_store.create(P, "n-1", total_message_count=1)


@pytest.mark.asyncio
async def test_database_errors_are_wrapped(tmp_path) -> None:  # noqa: ANN001
    # No tables created: every statement fails inside the driver.
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
    store = SqlSummaryRecordStore(build_sessionmaker(engine))
    try:
        with pytest.raises(StoreReadError) as read_info:
            await store.get(P, "n-1")
        assert isinstance(read_info.value.__cause__, OperationalError)
        with pytest.raises(StoreWriteError):
            await store.merge(P, "n-1", SummaryUpdate(failed=1))
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_dispatcher_end_to_end_with_forced_completion(sql_store) -> None:  # noqa: ANN001
    await sql_store.create(P, "n-1", total_message_count=5)
    dispatcher = OutcomeDispatcher(
        sql_store, partition_key=P, write_strategy="optimistic", clock=lambda: FIXED_NOW
    )
    for result_type in ("Succeeded", "Throttled", "Failed", "Succeeded"):
        await dispatcher.handle(json.dumps({"notificationId": "n-1", "resultType": result_type}))
    force = json.dumps({"notificationId": "n-1", "forceMessageComplete": True})
    assert (await dispatcher.handle(force)).action == "force_completed"
    assert (await dispatcher.handle(force)).action == "skipped"

    record = await sql_store.get(P, "n-1")
    assert (record.succeeded, record.throttled, record.failed, record.unknown) == (2, 1, 1, 1)
    assert record.is_completed is True
    assert _naive(record.sent_date) == _naive(FIXED_NOW)


@pytest.mark.asyncio
async def test_natural_completion_persists_event_sent_date(sql_store) -> None:  # noqa: ANN001
    sent = datetime(2026, 10, 11, 23, 15, tzinfo=timezone.utc)
    await sql_store.create(P, "n-2", total_message_count=1)
    dispatcher = OutcomeDispatcher(sql_store, partition_key=P, clock=lambda: FIXED_NOW)
    payload = {"notificationId": "n-2", "resultType": 0, "sentDate": sent.isoformat()}
    result = await dispatcher.handle(json.dumps(payload))
    record = await sql_store.get(P, "n-2")
    assert result.action == "completed"
    assert record.succeeded == 1
    assert _naive(record.sent_date) == _naive(sent)
