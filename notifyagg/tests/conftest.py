from __future__ import annotations

import pytest

from notifyagg.core.config import SENT_NOTIFICATIONS_PARTITION, get_settings
from notifyagg.services.aggregation.dispatcher import OutcomeDispatcher
from notifyagg.tests.utils.fake_store import FIXED_NOW, InMemorySummaryStore


@pytest.fixture(autouse=True)
def reset_settings_cache():
    # Settings are lru-cached; clear around each test so monkeypatched env vars apply.
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def store() -> InMemorySummaryStore:
    return InMemorySummaryStore()


@pytest.fixture
def dispatcher(store: InMemorySummaryStore) -> OutcomeDispatcher:
    return OutcomeDispatcher(store, partition_key=SENT_NOTIFICATIONS_PARTITION, clock=lambda: FIXED_NOW)
