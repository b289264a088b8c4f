"""Shared test fixtures for modsync tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from modsync.contracts.config import ModSyncConfig
from modsync.engine.broadcaster import SubscriptionBroadcaster
from modsync.engine.reconciler import ReconciliationEngine
from modsync.persistence.state_store import SubscriptionStore
from tests.fakes.cache import InMemoryProfileCache
from tests.fakes.gateway import FakeGateway
from tests.fakes.observer import RecordingObserver


@pytest.fixture
def config(tmp_path: Path) -> ModSyncConfig:
    """A config whose retry delays are zero so retried calls run immediately."""
    return ModSyncConfig(
        game_id=7,
        state_path=tmp_path / "state.json",
        cache_dir=tmp_path / "cache",
        catalog_poll_seconds=0.01,
        user_poll_seconds=0.01,
        page_size=2,
        transient_retry_seconds=0,
        unreachable_retry_seconds=0,
    )


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def cache() -> InMemoryProfileCache:
    return InMemoryProfileCache()


@pytest.fixture
def store(config: ModSyncConfig) -> SubscriptionStore:
    return SubscriptionStore(config.state_path)


@pytest.fixture
def engine(
    gateway: FakeGateway,
    store: SubscriptionStore,
    observer: RecordingObserver,
    cache: InMemoryProfileCache,
    config: ModSyncConfig,
) -> ReconciliationEngine:
    return ReconciliationEngine(gateway, store, SubscriptionBroadcaster([observer]), cache, config)
