"""Subscription reconciliation engine.

Drains the local pending-action queues against the gateway and performs the
full diff between locally confirmed subscriptions and the remote list.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from functools import partial, reduce

from modsync.contracts.cache import ProfileCache
from modsync.contracts.config import ModSyncConfig
from modsync.contracts.exceptions import AuthenticationError, GatewayError, SyncError
from modsync.contracts.gateway import CatalogGateway
from modsync.contracts.mod import ModProfile, Pagination
from modsync.contracts.state import SubscriptionState
from modsync.contracts.sync import MessageLevel, PushResult, SubscriptionDelta, SyncResult
from modsync.engine.broadcaster import SubscriptionBroadcaster
from modsync.engine.classifier import ErrorKind, RetryDecision
from modsync.engine.profiles import ProfileResolver, builds_for
from modsync.engine.progress import NullSyncProgress, SyncProgress
from modsync.engine.retry import RetryPolicy
from modsync.persistence.state_store import SubscriptionStore

_LOG = logging.getLogger(__name__)

# "Already subscribed" / "already unsubscribed" responses.
ALREADY_APPLIED_STATUS = 400
GONE_STATUSES = frozenset({404, 410})


class _Status(StrEnum):
    APPLIED = "applied"
    GONE = "gone"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class _Outcome:
    status: _Status
    profile: ModProfile | None = None
    error: GatewayError | None = None


class ReconciliationEngine:
    def __init__(
        self,
        gateway: CatalogGateway,
        store: SubscriptionStore,
        broadcaster: SubscriptionBroadcaster,
        cache: ProfileCache,
        config: ModSyncConfig,
        *,
        retry: RetryPolicy | None = None,
        progress: SyncProgress | None = None,
    ) -> None:
        self._gateway = gateway
        self._store = store
        self._broadcaster = broadcaster
        self._config = config
        self._resolver = ProfileResolver(gateway, cache)
        self._retry = retry or RetryPolicy(
            transient_delay=config.transient_retry_seconds,
            unreachable_delay=config.unreachable_retry_seconds,
            on_retry=self._report_retry,
        )
        self._progress: SyncProgress = progress or NullSyncProgress()
        self._semaphore = asyncio.Semaphore(config.max_concurrent)
        self._lock = asyncio.Lock()

    @property
    def gateway(self) -> CatalogGateway:
        return self._gateway

    @property
    def store(self) -> SubscriptionStore:
        return self._store

    @property
    def broadcaster(self) -> SubscriptionBroadcaster:
        return self._broadcaster

    @property
    def resolver(self) -> ProfileResolver:
        return self._resolver

    @property
    def retry(self) -> RetryPolicy:
        return self._retry

    @property
    def config(self) -> ModSyncConfig:
        return self._config

    # ------------------------------------------------------------------
    # Credential handling
    # ------------------------------------------------------------------

    def ensure_credential(self) -> None:
        if not self._gateway.has_credential:
            raise AuthenticationError("no user credential is installed")
        if self._store.snapshot().credential_rejected:
            raise AuthenticationError("the stored credential was rejected; log in again")

    def reject_credential(self, error: GatewayError) -> None:
        if self._store.snapshot().credential_rejected:
            _LOG.debug("Credential already marked rejected: %s", error)
            return
        with self._store.mutate() as state:
            state.credential_rejected = True
        self._gateway.set_token(None)
        _LOG.error("Credential rejected by the catalog service: %s", error)
        self._broadcaster.report(MessageLevel.ERROR, error.display_message)

    def _report_retry(self, description: str, error: GatewayError, decision: RetryDecision) -> None:
        self._broadcaster.report(
            MessageLevel.WARNING,
            f"{description} failed: {error.display_message}",
            retry_in_seconds=decision.delay_seconds,
        )

    # ------------------------------------------------------------------
    # Pushing queued actions
    # ------------------------------------------------------------------

    async def push_pending_subscribes(self) -> PushResult:
        return await self._push_alone(self._push_subscribes)

    async def push_pending_unsubscribes(self) -> PushResult:
        return await self._push_alone(self._push_unsubscribes)

    async def _push_alone(self, push: Callable[[list[SubscriptionDelta]], Awaitable[PushResult]]) -> PushResult:
        self.ensure_credential()
        removals: list[SubscriptionDelta] = []
        try:
            async with self._lock:
                return await push(removals)
        finally:
            self._announce_removals(_net(removals))

    async def _push_subscribes(self, removals: list[SubscriptionDelta]) -> PushResult:
        pending = list(self._store.snapshot().pending_subscribe)
        outcomes = await self._dispatch(pending, self._push_subscribe)
        result = self._commit_outcomes(outcomes, SubscriptionState.confirm_subscribed, removals)
        self._finish_push("subscribe", outcomes)
        return result

    async def _push_unsubscribes(self, removals: list[SubscriptionDelta]) -> PushResult:
        pending = list(self._store.snapshot().pending_unsubscribe)
        outcomes = await self._dispatch(pending, self._push_unsubscribe)
        result = self._commit_outcomes(outcomes, SubscriptionState.confirm_unsubscribed, removals)
        self._finish_push("unsubscribe", outcomes)
        return result

    async def _dispatch(
        self,
        mod_ids: list[int],
        push: Callable[[int, asyncio.Event], Awaitable[_Outcome]],
    ) -> dict[int, _Outcome]:
        outcomes: dict[int, _Outcome] = {}
        if not mod_ids:
            return outcomes
        abort = asyncio.Event()

        async def _run(mod_id: int) -> None:
            async with self._semaphore:
                if abort.is_set():
                    outcomes[mod_id] = _Outcome(_Status.SKIPPED)
                    return
                outcomes[mod_id] = await push(mod_id, abort)

        async with asyncio.TaskGroup() as tg:
            for mod_id in mod_ids:
                tg.create_task(_run(mod_id))
        return outcomes

    async def _push_subscribe(self, mod_id: int, abort: asyncio.Event) -> _Outcome:
        try:
            profile = await self._gateway.subscribe(mod_id)
        except GatewayError as exc:
            if exc.status_code == ALREADY_APPLIED_STATUS:
                _LOG.debug("Mod %d already subscribed remotely", mod_id)
                return _Outcome(_Status.APPLIED, profile=await self._fetch_profile(mod_id, abort))
            return self._failure_outcome(mod_id, exc, abort)
        return _Outcome(_Status.APPLIED, profile=profile)

    async def _push_unsubscribe(self, mod_id: int, abort: asyncio.Event) -> _Outcome:
        try:
            await self._gateway.unsubscribe(mod_id)
        except GatewayError as exc:
            if exc.status_code == ALREADY_APPLIED_STATUS or exc.status_code in GONE_STATUSES:
                _LOG.debug("Mod %d already unsubscribed remotely (status %d)", mod_id, exc.status_code)
                return _Outcome(_Status.APPLIED)
            return self._failure_outcome(mod_id, exc, abort)
        return _Outcome(_Status.APPLIED)

    def _failure_outcome(self, mod_id: int, error: GatewayError, abort: asyncio.Event) -> _Outcome:
        if error.status_code in GONE_STATUSES:
            _LOG.info("Mod %d no longer exists; dropping queued action", mod_id)
            return _Outcome(_Status.GONE, error=error)
        if self._retry.classify(error).kind is ErrorKind.AUTHENTICATION_INVALID:
            abort.set()
        _LOG.warning("Push for mod %d failed: %s", mod_id, error)
        return _Outcome(_Status.FAILED, error=error)

    async def _fetch_profile(self, mod_id: int, abort: asyncio.Event) -> ModProfile | None:
        try:
            profiles = await self._gateway.get_mod_profiles([mod_id])
        except GatewayError as exc:
            if self._retry.classify(exc).kind is ErrorKind.AUTHENTICATION_INVALID:
                abort.set()
            _LOG.warning("Could not fetch profile for mod %d: %s", mod_id, exc)
            return None
        return next((profile for profile in profiles if profile.id == mod_id), None)

    def _commit_outcomes(
        self,
        outcomes: dict[int, _Outcome],
        apply: Callable[[SubscriptionState, int], None],
        removals: list[SubscriptionDelta],
    ) -> PushResult:
        """Apply push outcomes to the store and record the resulting delta in *removals*.

        Confirmations leave the effective set unchanged; only mods that turned
        out to be gone show up in the recorded delta.
        """
        result = PushResult()
        if not outcomes:
            return result
        with self._store.mutate() as state:
            before = state.effective()
            for mod_id, outcome in outcomes.items():
                if outcome.status is _Status.APPLIED:
                    apply(state, mod_id)
                    result.confirmed_ids.append(mod_id)
                    if outcome.profile is not None:
                        result.confirmed.append(outcome.profile)
                elif outcome.status is _Status.GONE:
                    state.forget(mod_id)
                    result.gone.append(mod_id)
                elif outcome.status is _Status.FAILED:
                    result.failed.append(mod_id)
            delta = SubscriptionDelta.between(before, state.effective())

        removals.append(delta)
        self._resolver.cache.put(result.confirmed)
        return result

    def _announce_removals(self, delta: SubscriptionDelta) -> None:
        if not self._broadcaster.notify_delta(delta):
            return
        self._broadcaster.request_uninstall(delta.removed)
        self._report_gone(delta.removed)

    def _report_gone(self, mod_ids: set[int]) -> None:
        if mod_ids:
            self._broadcaster.report(
                MessageLevel.INFO,
                f"{len(mod_ids)} subscribed mod(s) are no longer available and were removed",
            )

    def _finish_push(self, action: str, outcomes: dict[int, _Outcome]) -> None:
        errors = [outcome.error for outcome in outcomes.values() if outcome.status is _Status.FAILED]
        auth_error = next(
            (
                error
                for error in errors
                if error is not None and self._retry.classify(error).kind is ErrorKind.AUTHENTICATION_INVALID
            ),
            None,
        )
        if auth_error is not None:
            self.reject_credential(auth_error)
            raise AuthenticationError(
                f"{action} push aborted: credential rejected", display_message=auth_error.display_message
            ) from auth_error
        if errors:
            self._broadcaster.report(
                MessageLevel.WARNING,
                f"{len(errors)} queued {action} action(s) could not be pushed and will be retried",
            )

    # ------------------------------------------------------------------
    # Full reconciliation
    # ------------------------------------------------------------------

    async def fetch_remote_subscriptions(self, *, stop: asyncio.Event | None = None) -> list[ModProfile]:
        """Drain every page of the remote subscription list."""
        profiles: dict[int, ModProfile] = {}
        offset = 0
        while True:
            pagination = Pagination(offset=offset, limit=self._config.page_size)
            page = await self._retry.run(
                partial(self._gateway.get_subscriptions, self._config.game_id, pagination),
                description="Fetching subscriptions",
                stop=stop,
            )
            if offset == 0:
                self._progress.set_total("Fetch", page.result_total)
            self._progress.advance("Fetch", len(page.items))
            profiles.update({profile.id: profile for profile in page.items})
            if not page.has_more:
                break
            offset = page.next_offset
        return list(profiles.values())

    async def synchronize_with_remote(self, *, stop: asyncio.Event | None = None) -> SyncResult:
        """Push queued actions, fetch the remote list and apply the diff.

        The whole run holds the engine lock, so a standalone push cannot confirm
        a mod between the fetch and the diff. Observers see one net delta.
        """
        self.ensure_credential()

        removals: list[SubscriptionDelta] = []
        async with self._lock:
            try:
                subscribes, unsubscribes = await self._push_phase(removals)
                remote_profiles = await self._fetch_phase(stop)
            except BaseException:
                self._announce_removals(_net(removals))
                raise

            self._progress.phase_start("Reconcile", total=len(remote_profiles))
            pushed = _net(removals)
            delta = pushed.then(self._reconcile({profile.id for profile in remote_profiles}))
            self._resolver.cache.put(remote_profiles)
            self._progress.phase_done("Reconcile")

        self._publish(
            delta,
            {profile.id: profile for profile in remote_profiles},
            gone=pushed.removed & delta.removed,
        )

        state = self._store.snapshot()
        return SyncResult(
            added=sorted(delta.added),
            removed=sorted(delta.removed),
            subscribes_pushed=len(subscribes.confirmed_ids),
            unsubscribes_pushed=len(unsubscribes.confirmed_ids),
            pending_subscribe=list(state.pending_subscribe),
            pending_unsubscribe=list(state.pending_unsubscribe),
            remote_total=len(remote_profiles),
        )

    async def _push_phase(self, removals: list[SubscriptionDelta]) -> tuple[PushResult, PushResult]:
        snapshot = self._store.snapshot()
        self._progress.phase_start("Push", total=len(snapshot.pending_subscribe) + len(snapshot.pending_unsubscribe))
        try:
            subscribes = await self._push_subscribes(removals)
            self._progress.advance("Push", _push_count(subscribes))
            unsubscribes = await self._push_unsubscribes(removals)
            self._progress.advance("Push", _push_count(unsubscribes))
        except BaseException as exc:
            self._progress.phase_error("Push", exc)
            raise
        self._progress.phase_done("Push")
        return subscribes, unsubscribes

    async def _fetch_phase(self, stop: asyncio.Event | None) -> list[ModProfile]:
        self._progress.phase_start("Fetch")
        try:
            remote_profiles = await self.fetch_remote_subscriptions(stop=stop)
        except AuthenticationError as exc:
            self._progress.phase_error("Fetch", exc)
            self.reject_credential(exc)
            raise
        except GatewayError as exc:
            self._progress.phase_error("Fetch", exc)
            self._broadcaster.report(
                MessageLevel.WARNING, f"Failed to synchronize subscriptions: {exc.display_message}"
            )
            raise SyncError(f"subscription list could not be fetched: {exc}") from exc
        except BaseException as exc:
            self._progress.phase_error("Fetch", exc)
            raise
        self._progress.phase_done("Fetch")
        return remote_profiles

    def _reconcile(self, remote: set[int]) -> SubscriptionDelta:
        with self._store.mutate() as state:
            before = state.effective()
            newly_discovered = remote - state.known_ids()
            unmatched = state.confirmed - remote

            for mod_id in remote & set(state.pending_subscribe):
                state.confirm_subscribed(mod_id)
            state.confirmed |= newly_discovered
            for mod_id in unmatched:
                # A queued subscribe is newer intent than this snapshot of the remote list.
                if mod_id in state.pending_subscribe:
                    continue
                state.confirm_unsubscribed(mod_id)

            delta = SubscriptionDelta.between(before, state.effective())
        _LOG.info(
            "Reconciled %d remote subscriptions: +%d -%d",
            len(remote),
            len(delta.added),
            len(delta.removed),
        )
        return delta

    def _publish(self, delta: SubscriptionDelta, profiles: dict[int, ModProfile], *, gone: set[int]) -> None:
        if not self._broadcaster.notify_delta(delta):
            return
        self._broadcaster.request_install(builds_for(profiles, delta.added))
        self._broadcaster.request_uninstall(delta.removed)
        self._report_gone(gone)
        if delta.added:
            self._broadcaster.report(
                MessageLevel.INFO, f"{len(delta.added)} subscription(s) retrieved from the server"
            )

    async def verify_installations(self) -> list[int]:
        """Request install of the current build of every effective subscription.

        Returns the ids whose profile could not be resolved.
        """
        self._progress.phase_start("Verify")
        try:
            wanted = self._store.snapshot().effective()
            profiles = await self._retry.run(
                partial(self._resolver.resolve, wanted), description="Resolving subscribed mods", max_attempts=1
            )
            self._broadcaster.request_install(builds_for(profiles, wanted))
            self._progress.phase_done("Verify")
        except BaseException as exc:
            self._progress.phase_error("Verify", exc)
            raise
        return sorted(wanted - set(profiles))


def _push_count(result: PushResult) -> int:
    return len(result.confirmed_ids) + len(result.gone) + len(result.failed)


def _net(deltas: list[SubscriptionDelta]) -> SubscriptionDelta:
    return reduce(SubscriptionDelta.then, deltas, SubscriptionDelta())
