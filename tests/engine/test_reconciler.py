from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import MagicMock, call

import pytest

from modsync.contracts.config import ModSyncConfig
from modsync.contracts.exceptions import AuthenticationError, GatewayError, SyncError
from modsync.contracts.mod import ModProfile, Page, Pagination
from modsync.contracts.sync import MessageLevel
from modsync.engine.broadcaster import SubscriptionBroadcaster
from modsync.engine.progress import SyncProgress
from modsync.engine.reconciler import ReconciliationEngine
from modsync.persistence.state_store import SubscriptionStore, load_state
from tests.fakes.cache import InMemoryProfileCache
from tests.fakes.gateway import FakeGateway, status_error, transient_error
from tests.fakes.observer import RecordingObserver


def seed(store: SubscriptionStore, **fields: Any) -> None:
    with store.mutate() as state:
        for name, value in fields.items():
            setattr(state, name, value)


# ---------------------------------------------------------------------------
# Full reconciliation
# ---------------------------------------------------------------------------


class TestSynchronizeWithRemote:
    @pytest.mark.asyncio
    async def test_diff_adds_remote_and_removes_unmatched(
        self,
        engine: ReconciliationEngine,
        gateway: FakeGateway,
        store: SubscriptionStore,
        observer: RecordingObserver,
        cache: InMemoryProfileCache,
    ) -> None:
        seed(store, confirmed={1, 2})
        gateway.add_mod(1)
        gateway.add_mod(2, subscribed=True)
        gateway.add_mod(3, subscribed=True)

        result = await engine.synchronize_with_remote()

        assert store.snapshot().confirmed == {2, 3}
        assert observer.changes == [([3], [1])]
        assert observer.installed_mod_ids == [3]
        assert observer.uninstalls == [1]
        assert result.added == [3]
        assert result.removed == [1]
        assert result.remote_total == 2
        assert set(cache.entries) == {2, 3}
        assert observer.messages_at(MessageLevel.INFO)[0].text == "1 subscription(s) retrieved from the server"

    @pytest.mark.asyncio
    async def test_state_is_persisted(
        self, engine: ReconciliationEngine, gateway: FakeGateway, config: ModSyncConfig
    ) -> None:
        gateway.add_mod(4, subscribed=True)

        await engine.synchronize_with_remote()

        assert load_state(config.state_path).confirmed == {4}

    @pytest.mark.asyncio
    async def test_no_change_means_no_notification(
        self,
        engine: ReconciliationEngine,
        gateway: FakeGateway,
        store: SubscriptionStore,
        observer: RecordingObserver,
    ) -> None:
        seed(store, confirmed={1})
        gateway.add_mod(1, subscribed=True)

        result = await engine.synchronize_with_remote()

        assert result.added == []
        assert result.removed == []
        assert observer.changes == []

    @pytest.mark.asyncio
    async def test_every_page_is_drained_before_diffing(
        self, engine: ReconciliationEngine, gateway: FakeGateway, store: SubscriptionStore
    ) -> None:
        seed(store, confirmed={5})
        for mod_id in range(1, 6):
            gateway.add_mod(mod_id, subscribed=True)

        result = await engine.synchronize_with_remote()

        assert [offset for name, offset in gateway.calls if name == "get_subscriptions"] == [0, 2, 4]
        assert store.snapshot().confirmed == {1, 2, 3, 4, 5}
        assert result.removed == []

    @pytest.mark.asyncio
    async def test_queued_subscribe_is_trusted_over_stale_remote_list(
        self,
        engine: ReconciliationEngine,
        gateway: FakeGateway,
        store: SubscriptionStore,
        observer: RecordingObserver,
    ) -> None:
        seed(store, confirmed={6}, pending_subscribe=[6])
        gateway.add_mod(6)
        gateway.fail("subscribe", transient_error())

        result = await engine.synchronize_with_remote()

        state = store.snapshot()
        assert state.confirmed == {6}
        assert state.pending_subscribe == [6]
        assert result.pending_subscribe == [6]
        assert observer.changes == []

    @pytest.mark.asyncio
    async def test_queued_unsubscribe_stays_queued_when_remote_still_lists_it(
        self,
        engine: ReconciliationEngine,
        gateway: FakeGateway,
        store: SubscriptionStore,
        observer: RecordingObserver,
    ) -> None:
        seed(store, confirmed={4}, pending_unsubscribe=[4])
        gateway.add_mod(4, subscribed=True)
        gateway.fail("unsubscribe", transient_error())

        await engine.synchronize_with_remote()

        state = store.snapshot()
        assert state.pending_unsubscribe == [4]
        assert 4 not in state.effective()
        assert observer.changes == []

    @pytest.mark.asyncio
    async def test_pushes_run_before_fetch_and_converge(
        self,
        engine: ReconciliationEngine,
        gateway: FakeGateway,
        store: SubscriptionStore,
        observer: RecordingObserver,
    ) -> None:
        seed(store, confirmed={1}, pending_subscribe=[2], pending_unsubscribe=[1])
        gateway.add_mod(1, subscribed=True)
        gateway.add_mod(2)

        result = await engine.synchronize_with_remote()

        names = [name for name, _ in gateway.calls]
        assert names.index("subscribe") < names.index("unsubscribe") < names.index("get_subscriptions")
        state = store.snapshot()
        assert state.confirmed == {2}
        assert state.pending_subscribe == []
        assert state.pending_unsubscribe == []
        assert gateway.remote == {2}
        assert result.subscribes_pushed == 1
        assert result.unsubscribes_pushed == 1
        assert observer.changes == []

    @pytest.mark.asyncio
    async def test_gone_push_and_diff_are_published_as_one_delta(
        self,
        engine: ReconciliationEngine,
        gateway: FakeGateway,
        store: SubscriptionStore,
        observer: RecordingObserver,
    ) -> None:
        seed(store, pending_subscribe=[9])
        gateway.add_mod(3, subscribed=True)

        result = await engine.synchronize_with_remote()

        assert result.added == [3]
        assert result.removed == [9]
        assert observer.changes == [([3], [9])]
        assert observer.uninstalls == [9]
        assert observer.installed_mod_ids == [3]
        assert [message.text for message in observer.messages_at(MessageLevel.INFO)] == [
            "1 subscribed mod(s) are no longer available and were removed",
            "1 subscription(s) retrieved from the server",
        ]

    @pytest.mark.asyncio
    async def test_gone_push_is_still_published_when_fetch_fails(
        self,
        engine: ReconciliationEngine,
        gateway: FakeGateway,
        store: SubscriptionStore,
        observer: RecordingObserver,
    ) -> None:
        seed(store, pending_subscribe=[9])
        gateway.fail("get_subscriptions", GatewayError("broken", status_code=500, unresolvable=True))

        with pytest.raises(SyncError):
            await engine.synchronize_with_remote()

        assert store.snapshot().known_ids() == set()
        assert observer.changes == [([], [9])]
        assert observer.uninstalls == [9]

    @pytest.mark.asyncio
    async def test_push_waits_for_an_in_flight_sync(
        self,
        engine: ReconciliationEngine,
        gateway: FakeGateway,
        store: SubscriptionStore,
        observer: RecordingObserver,
    ) -> None:
        gateway.add_mod(5)
        listed = asyncio.Event()
        release = asyncio.Event()
        list_subscriptions = gateway.get_subscriptions

        async def slow_listing(game_id: int, pagination: Pagination) -> Page[ModProfile]:
            page = await list_subscriptions(game_id, pagination)
            listed.set()
            await release.wait()
            return page

        gateway.get_subscriptions = slow_listing  # type: ignore[method-assign]

        sync = asyncio.create_task(engine.synchronize_with_remote())
        await listed.wait()
        with store.mutate() as state:
            state.queue_subscribe(5)
        push = asyncio.create_task(engine.push_pending_subscribes())
        await asyncio.sleep(0)

        assert gateway.count("subscribe") == 0

        release.set()
        await sync
        pushed = await push

        assert pushed.confirmed_ids == [5]
        assert store.snapshot().confirmed == {5}
        assert store.snapshot().pending_subscribe == []
        assert gateway.remote == {5}
        assert observer.changes == []
        assert observer.uninstalls == []

    @pytest.mark.asyncio
    async def test_transient_fetch_failure_is_retried(
        self, engine: ReconciliationEngine, gateway: FakeGateway, observer: RecordingObserver
    ) -> None:
        gateway.add_mod(1, subscribed=True)
        gateway.fail("get_subscriptions", transient_error(unreachable=True))

        result = await engine.synchronize_with_remote()

        assert result.added == [1]
        assert gateway.count("get_subscriptions") == 2
        warning = observer.messages_at(MessageLevel.WARNING)[0]
        assert warning.text.startswith("Fetching subscriptions failed")
        assert warning.retry_in_seconds == 0

    @pytest.mark.asyncio
    async def test_unresolvable_fetch_failure_raises_sync_error(
        self,
        engine: ReconciliationEngine,
        gateway: FakeGateway,
        store: SubscriptionStore,
        observer: RecordingObserver,
    ) -> None:
        seed(store, confirmed={1})
        gateway.fail("get_subscriptions", GatewayError("broken", status_code=500, unresolvable=True))

        with pytest.raises(SyncError, match="could not be fetched"):
            await engine.synchronize_with_remote()

        assert store.snapshot().confirmed == {1}
        assert observer.changes == []
        assert observer.messages_at(MessageLevel.WARNING)[0].text == "Failed to synchronize subscriptions: broken"

    @pytest.mark.asyncio
    async def test_rejected_fetch_marks_credential_invalid(
        self,
        engine: ReconciliationEngine,
        gateway: FakeGateway,
        store: SubscriptionStore,
        observer: RecordingObserver,
    ) -> None:
        gateway.fail("get_subscriptions", AuthenticationError("expired", display_message="Please log in again"))

        with pytest.raises(AuthenticationError):
            await engine.synchronize_with_remote()

        assert store.snapshot().credential_rejected is True
        assert gateway.token is None
        assert [message.text for message in observer.messages_at(MessageLevel.ERROR)] == ["Please log in again"]

    @pytest.mark.asyncio
    async def test_rejected_credential_refuses_to_sync(
        self, engine: ReconciliationEngine, gateway: FakeGateway, store: SubscriptionStore
    ) -> None:
        seed(store, credential_rejected=True)

        with pytest.raises(AuthenticationError, match="log in again"):
            await engine.synchronize_with_remote()

        assert gateway.calls == []

    @pytest.mark.asyncio
    async def test_missing_credential_refuses_to_sync(self, engine: ReconciliationEngine, gateway: FakeGateway) -> None:
        gateway.token = None

        with pytest.raises(AuthenticationError, match="no user credential"):
            await engine.synchronize_with_remote()

    @pytest.mark.asyncio
    async def test_progress_phases_are_reported(
        self,
        gateway: FakeGateway,
        store: SubscriptionStore,
        cache: InMemoryProfileCache,
        config: ModSyncConfig,
    ) -> None:
        progress = MagicMock(spec=SyncProgress)
        engine = ReconciliationEngine(gateway, store, SubscriptionBroadcaster(), cache, config, progress=progress)
        gateway.add_mod(1, subscribed=True)

        await engine.synchronize_with_remote()

        assert progress.phase_start.call_args_list == [
            call("Push", total=0),
            call("Fetch"),
            call("Reconcile", total=1),
        ]
        progress.set_total.assert_called_once_with("Fetch", 1)
        assert progress.phase_done.call_args_list == [call("Push"), call("Fetch"), call("Reconcile")]
        progress.phase_error.assert_not_called()


# ---------------------------------------------------------------------------
# Pushing queued actions
# ---------------------------------------------------------------------------


class TestPushPendingSubscribes:
    @pytest.mark.asyncio
    async def test_success_confirms_and_caches_profile(
        self,
        engine: ReconciliationEngine,
        gateway: FakeGateway,
        store: SubscriptionStore,
        cache: InMemoryProfileCache,
        observer: RecordingObserver,
    ) -> None:
        seed(store, pending_subscribe=[5])
        profile = gateway.add_mod(5)

        result = await engine.push_pending_subscribes()

        assert result.confirmed_ids == [5]
        assert result.confirmed == [profile]
        assert store.snapshot().confirmed == {5}
        assert store.snapshot().pending_subscribe == []
        assert cache.get(5) == profile
        assert observer.changes == []

    @pytest.mark.asyncio
    async def test_already_subscribed_is_success_via_profile_fetch(
        self,
        engine: ReconciliationEngine,
        gateway: FakeGateway,
        store: SubscriptionStore,
        observer: RecordingObserver,
    ) -> None:
        seed(store, pending_subscribe=[7])
        profile = gateway.add_mod(7, subscribed=True)

        result = await engine.push_pending_subscribes()

        assert result.confirmed == [profile]
        assert store.snapshot().confirmed == {7}
        assert store.snapshot().pending_subscribe == []
        assert gateway.count("get_mod_profiles") == 1
        assert observer.messages == []

    @pytest.mark.asyncio
    async def test_gone_mod_is_dropped_and_reported_removed(
        self,
        engine: ReconciliationEngine,
        store: SubscriptionStore,
        observer: RecordingObserver,
    ) -> None:
        seed(store, pending_subscribe=[8])

        result = await engine.push_pending_subscribes()

        assert result.gone == [8]
        assert store.snapshot().known_ids() == set()
        assert observer.changes == [([], [8])]
        assert observer.uninstalls == [8]
        assert observer.messages_at(MessageLevel.INFO)[0].text == (
            "1 subscribed mod(s) are no longer available and were removed"
        )

    @pytest.mark.asyncio
    async def test_other_failures_stay_queued(
        self,
        engine: ReconciliationEngine,
        gateway: FakeGateway,
        store: SubscriptionStore,
        observer: RecordingObserver,
    ) -> None:
        seed(store, pending_subscribe=[5, 6])
        gateway.add_mod(5)
        gateway.add_mod(6)
        gateway.fail_mod("subscribe", 5, status_error(422))

        result = await engine.push_pending_subscribes()

        assert result.failed == [5]
        assert result.confirmed_ids == [6]
        assert store.snapshot().pending_subscribe == [5]
        assert observer.messages_at(MessageLevel.WARNING)[0].text == (
            "1 queued subscribe action(s) could not be pushed and will be retried"
        )

    @pytest.mark.asyncio
    async def test_rejected_credential_aborts_remaining_batch(
        self,
        gateway: FakeGateway,
        store: SubscriptionStore,
        observer: RecordingObserver,
        cache: InMemoryProfileCache,
        config: ModSyncConfig,
    ) -> None:
        engine = ReconciliationEngine(
            gateway,
            store,
            SubscriptionBroadcaster([observer]),
            cache,
            config.model_copy(update={"max_concurrent": 1}),
        )
        seed(store, pending_subscribe=[1, 2, 3])
        for mod_id in (1, 2, 3):
            gateway.add_mod(mod_id)
        gateway.fail_mod("subscribe", 1, AuthenticationError("expired"))

        with pytest.raises(AuthenticationError, match="subscribe push aborted"):
            await engine.push_pending_subscribes()

        assert gateway.count("subscribe") == 1
        state = store.snapshot()
        assert state.pending_subscribe == [1, 2, 3]
        assert state.credential_rejected is True
        assert gateway.token is None
        assert len(observer.messages_at(MessageLevel.ERROR)) == 1

    @pytest.mark.asyncio
    async def test_empty_queue_makes_no_calls(self, engine: ReconciliationEngine, gateway: FakeGateway) -> None:
        result = await engine.push_pending_subscribes()

        assert result.confirmed_ids == []
        assert gateway.calls == []


class TestPushPendingUnsubscribes:
    @pytest.mark.asyncio
    async def test_success_removes_from_confirmed(
        self, engine: ReconciliationEngine, gateway: FakeGateway, store: SubscriptionStore
    ) -> None:
        seed(store, confirmed={3}, pending_unsubscribe=[3])
        gateway.add_mod(3, subscribed=True)

        result = await engine.push_pending_unsubscribes()

        assert result.confirmed_ids == [3]
        assert store.snapshot().confirmed == set()
        assert store.snapshot().pending_unsubscribe == []
        assert gateway.remote == set()

    @pytest.mark.parametrize("status_code", [400, 404, 410])
    @pytest.mark.asyncio
    async def test_already_unsubscribed_or_gone_counts_as_success(
        self,
        status_code: int,
        engine: ReconciliationEngine,
        gateway: FakeGateway,
        store: SubscriptionStore,
        observer: RecordingObserver,
    ) -> None:
        seed(store, confirmed={3}, pending_unsubscribe=[3])
        gateway.fail_mod("unsubscribe", 3, status_error(status_code))

        result = await engine.push_pending_unsubscribes()

        assert result.confirmed_ids == [3]
        assert store.snapshot().known_ids() == set()
        assert observer.changes == []
        assert observer.messages == []


# ---------------------------------------------------------------------------
# Installation verification
# ---------------------------------------------------------------------------


class TestVerifyInstallations:
    @pytest.mark.asyncio
    async def test_requests_current_builds_and_reports_unresolved(
        self,
        engine: ReconciliationEngine,
        gateway: FakeGateway,
        store: SubscriptionStore,
        observer: RecordingObserver,
    ) -> None:
        seed(store, confirmed={1, 2}, pending_subscribe=[3])
        gateway.add_mod(1)
        gateway.add_mod(3)

        unresolved = await engine.verify_installations()

        assert unresolved == [2]
        assert observer.installed_mod_ids == [1, 3]

    @pytest.mark.asyncio
    async def test_uses_cached_profiles(
        self,
        engine: ReconciliationEngine,
        gateway: FakeGateway,
        store: SubscriptionStore,
        cache: InMemoryProfileCache,
    ) -> None:
        seed(store, confirmed={1})
        cache.put([gateway.add_mod(1)])

        assert await engine.verify_installations() == []
        assert gateway.count("get_mod_profiles") == 0

    @pytest.mark.asyncio
    async def test_failure_is_not_retried(
        self, engine: ReconciliationEngine, gateway: FakeGateway, store: SubscriptionStore
    ) -> None:
        seed(store, confirmed={1})
        gateway.fail("get_mod_profiles", transient_error())

        with pytest.raises(GatewayError):
            await engine.verify_installations()

        assert gateway.count("get_mod_profiles") == 1
