"""Event pollers for the catalog and user event streams.

Each poller bootstraps its cursor to the newest event id, then repeatedly
sleeps, fetches every event newer than the cursor and applies the batch. A
batch and its cursor advance are committed in a single store mutation, so a
failure anywhere before the commit leaves the cursor untouched and the whole
batch is refetched on the next attempt.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Generic, TypeVar

from modsync.contracts.exceptions import AuthenticationError, GatewayError, PersistenceError, SyncHalted
from modsync.contracts.mod import (
    EventFilter,
    ModEvent,
    ModEventType,
    ModProfile,
    Page,
    Pagination,
    UserEvent,
    UserEventType,
)
from modsync.contracts.state import SubscriptionState
from modsync.contracts.sync import MessageLevel, SubscriptionDelta
from modsync.engine.profiles import builds_for
from modsync.engine.reconciler import ReconciliationEngine
from modsync.engine.retry import RetryPolicy

_LOG = logging.getLogger(__name__)

E = TypeVar("E", ModEvent, UserEvent)


class PollerState(StrEnum):
    BOOTSTRAPPING = "bootstrapping"
    POLLING = "polling"
    HALTED = "halted"


@dataclass
class BatchOutcome:
    delta: SubscriptionDelta = field(default_factory=SubscriptionDelta)
    profiles: dict[int, ModProfile] = field(default_factory=dict)
    install_ids: set[int] = field(default_factory=set)
    purged_ids: set[int] = field(default_factory=set)


class EventPoller(ABC, Generic[E]):
    name: str = "events"

    def __init__(
        self,
        engine: ReconciliationEngine,
        *,
        interval: float,
        page_size: int = 100,
        stop: asyncio.Event | None = None,
    ) -> None:
        self._engine = engine
        self._interval = interval
        self._page_size = page_size
        self._stop = stop if stop is not None else asyncio.Event()
        self._state = PollerState.BOOTSTRAPPING

    @property
    def state(self) -> PollerState:
        return self._state

    @property
    def interval(self) -> float:
        return self._interval

    def stop(self) -> None:
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    # -- stream specifics -------------------------------------------------

    @abstractmethod
    def _cursor(self, state: SubscriptionState) -> int: ...  # pragma: no cover

    @abstractmethod
    def _advance_cursor(self, state: SubscriptionState, event_id: int) -> bool: ...  # pragma: no cover

    @abstractmethod
    async def _fetch_page(self, filters: EventFilter, pagination: Pagination) -> Page[E]: ...  # pragma: no cover

    def _new_events_filter(self, state: SubscriptionState, after_id: int) -> EventFilter | None:
        """Filter for events after *after_id*; ``None`` skips the fetch."""
        return EventFilter(after_id=after_id)

    @abstractmethod
    async def _prepare(self, events: list[E]) -> dict[int, ModProfile]:
        """Perform the remote lookups a batch needs, before any state change."""
        ...  # pragma: no cover

    @abstractmethod
    def _apply(self, state: SubscriptionState, events: list[E], profiles: dict[int, ModProfile]) -> BatchOutcome:
        ...  # pragma: no cover

    @abstractmethod
    def _emit(self, outcome: BatchOutcome) -> None: ...  # pragma: no cover

    async def _after_batch(self) -> None:
        return None

    # -- lifecycle ----------------------------------------------------------

    async def bootstrap(self) -> int:
        """Move the cursor to the newest event id without applying history."""
        page = await self._fetch_page(EventFilter(latest_first=True), Pagination(offset=0, limit=1))
        if self.stopped or not page.items:
            return self._cursor(self._engine.store.snapshot())
        latest = max(event.id for event in page.items)
        with self._engine.store.mutate() as state:
            if self._advance_cursor(state, latest):
                _LOG.debug("%s cursor bootstrapped to %d", self.name, latest)
        return self._cursor(self._engine.store.snapshot())

    async def fetch_new_events(self, after_id: int) -> list[E]:
        """Drain every page of events newer than *after_id*, ascending by id."""
        filters = self._new_events_filter(self._engine.store.snapshot(), after_id)
        if filters is None:
            return []
        events: dict[int, E] = {}
        offset = 0
        while True:
            page = await self._fetch_page(filters, Pagination(offset=offset, limit=self._page_size))
            events.update({event.id: event for event in page.items if event.id > after_id})
            if not page.has_more:
                break
            offset = page.next_offset
        return [events[event_id] for event_id in sorted(events)]

    async def poll_once(self) -> SubscriptionDelta:
        cursor = self._cursor(self._engine.store.snapshot())
        events = await self.fetch_new_events(cursor)
        if events:
            profiles = await self._prepare(events)
            if self.stopped:
                _LOG.debug("%s stopped; discarding %d fetched events", self.name, len(events))
                return SubscriptionDelta()
            with self._engine.store.mutate() as state:
                before = state.effective()
                outcome = self._apply(state, events, profiles)
                self._advance_cursor(state, events[-1].id)
                outcome.delta = SubscriptionDelta.between(before, state.effective())
            _LOG.debug("%s applied %d events; cursor %d -> %d", self.name, len(events), cursor, events[-1].id)
            self._emit(outcome)
        else:
            outcome = BatchOutcome()
        if not self.stopped:
            await self._after_batch()
        return outcome.delta

    async def run(self) -> None:
        """Bootstrap, then poll until stopped or a non-retryable failure occurs."""
        retry = self._engine.retry
        try:
            self._state = PollerState.BOOTSTRAPPING
            await retry.run(self.bootstrap, description=f"Reading latest {self.name}", stop=self._stop)
            self._state = PollerState.POLLING
            while True:
                await RetryPolicy.pause(self._interval, self._stop)
                await retry.run(self.poll_once, description=f"Polling {self.name}", stop=self._stop)
        except SyncHalted:
            _LOG.debug("%s poller stopped", self.name)
        except AuthenticationError as exc:
            self._engine.reject_credential(exc)
        except GatewayError as exc:
            _LOG.error("%s poller aborted: %s", self.name, exc)
            self._engine.broadcaster.report(
                MessageLevel.WARNING, f"Stopped checking {self.name}: {exc.display_message}"
            )
        except PersistenceError as exc:
            _LOG.error("%s poller aborted: %s", self.name, exc)
            self._engine.broadcaster.report(MessageLevel.ERROR, str(exc))
        finally:
            self._state = PollerState.HALTED


class CatalogEventPoller(EventPoller[ModEvent]):
    name = "catalog events"

    def _cursor(self, state: SubscriptionState) -> int:
        return state.last_catalog_event_id

    def _advance_cursor(self, state: SubscriptionState, event_id: int) -> bool:
        return state.advance_catalog_cursor(event_id)

    async def _fetch_page(self, filters: EventFilter, pagination: Pagination) -> Page[ModEvent]:
        return await self._engine.gateway.get_catalog_events(filters, pagination)

    def _new_events_filter(self, state: SubscriptionState, after_id: int) -> EventFilter | None:
        known = sorted(state.known_ids())
        if not known:
            return None
        return EventFilter(after_id=after_id, mod_ids=known)

    async def _prepare(self, events: list[ModEvent]) -> dict[int, ModProfile]:
        changed = {
            event.mod_id for event in events if event.event_type in (ModEventType.EDITED, ModEventType.FILE_CHANGED)
        }
        if not changed:
            return {}
        return await self._engine.resolver.resolve(changed, refresh=True)

    def _apply(
        self, state: SubscriptionState, events: list[ModEvent], profiles: dict[int, ModProfile]
    ) -> BatchOutcome:
        outcome = BatchOutcome(profiles=profiles)
        for event in events:
            if event.event_type in (ModEventType.DELETED, ModEventType.UNAVAILABLE):
                if event.mod_id in state.known_ids():
                    state.forget(event.mod_id)
                    outcome.purged_ids.add(event.mod_id)
                outcome.install_ids.discard(event.mod_id)
            elif event.event_type is ModEventType.FILE_CHANGED and event.mod_id in state.confirmed:
                outcome.install_ids.add(event.mod_id)
        return outcome

    def _emit(self, outcome: BatchOutcome) -> None:
        broadcaster = self._engine.broadcaster
        for mod_id in sorted(outcome.purged_ids):
            self._engine.resolver.cache.purge(mod_id)
        if broadcaster.notify_delta(outcome.delta):
            broadcaster.request_uninstall(outcome.delta.removed)
        if outcome.delta.removed:
            removed = ", ".join(str(mod_id) for mod_id in sorted(outcome.delta.removed))
            broadcaster.report(MessageLevel.INFO, f"Subscribed mod(s) {removed} are now unavailable and were removed")
        broadcaster.request_install(builds_for(outcome.profiles, outcome.install_ids))


class UserEventPoller(EventPoller[UserEvent]):
    name = "user events"

    def _cursor(self, state: SubscriptionState) -> int:
        return state.last_user_event_id

    def _advance_cursor(self, state: SubscriptionState, event_id: int) -> bool:
        return state.advance_user_cursor(event_id)

    async def _fetch_page(self, filters: EventFilter, pagination: Pagination) -> Page[UserEvent]:
        return await self._engine.gateway.get_user_events(filters, pagination)

    async def _prepare(self, events: list[UserEvent]) -> dict[int, ModProfile]:
        known = self._engine.store.snapshot().known_ids()
        subscribed = {
            event.mod_id
            for event in events
            if event.event_type is UserEventType.SUBSCRIBED and event.mod_id not in known
        }
        if not subscribed:
            return {}
        return await self._engine.resolver.resolve(subscribed)

    def _apply(
        self, state: SubscriptionState, events: list[UserEvent], profiles: dict[int, ModProfile]
    ) -> BatchOutcome:
        outcome = BatchOutcome(profiles=profiles)
        for event in events:
            mod_id = event.mod_id
            if event.event_type is UserEventType.SUBSCRIBED:
                if mod_id not in state.known_ids():
                    state.confirmed.add(mod_id)
            elif event.event_type is UserEventType.UNSUBSCRIBED:
                queued = mod_id in state.pending_subscribe or mod_id in state.pending_unsubscribe
                if mod_id in state.confirmed and not queued:
                    state.confirmed.discard(mod_id)
        return outcome

    def _emit(self, outcome: BatchOutcome) -> None:
        broadcaster = self._engine.broadcaster
        if not broadcaster.notify_delta(outcome.delta):
            return
        broadcaster.request_install(builds_for(outcome.profiles, outcome.delta.added))
        broadcaster.request_uninstall(outcome.delta.removed)

    async def _after_batch(self) -> None:
        snapshot = self._engine.store.snapshot()
        if snapshot.pending_subscribe:
            await self._engine.push_pending_subscribes()
        if snapshot.pending_unsubscribe:
            await self._engine.push_pending_unsubscribes()
