"""SDK composition root for modsync.

A :class:`ModSync` session owns one subscription store, one gateway and the
two event pollers. Everything is passed explicitly; there is no module-level
state.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from types import TracebackType

from modsync.auth import create_token_resolver
from modsync.contracts.cache import ProfileCache
from modsync.contracts.config import ModSyncConfig
from modsync.contracts.exceptions import AuthenticationError, GatewayError, SyncError
from modsync.contracts.gateway import CatalogGateway
from modsync.contracts.observer import SubscriptionObserver
from modsync.contracts.state import SubscriptionState
from modsync.contracts.sync import MessageLevel, PushResult, SyncResult
from modsync.engine import (
    CatalogEventPoller,
    ReconciliationEngine,
    SubscriptionActions,
    SubscriptionBroadcaster,
    SyncProgress,
    UserEventPoller,
)
from modsync.engine.poller import EventPoller, PollerState
from modsync.gateway import HttpCatalogGateway
from modsync.persistence import JsonProfileCache, SubscriptionStore

_LOG = logging.getLogger(__name__)


class ModSync:
    """modsync SDK public API."""

    def __init__(
        self,
        *,
        gateway: CatalogGateway,
        config: ModSyncConfig,
        store: SubscriptionStore | None = None,
        cache: ProfileCache | None = None,
        observers: Iterable[SubscriptionObserver] = (),
        progress: SyncProgress | None = None,
    ) -> None:
        self._gateway = gateway
        self._config = config
        self._store = store if store is not None else SubscriptionStore.open(config.state_path)
        self._cache = cache if cache is not None else JsonProfileCache(config.cache_dir)
        self._broadcaster = SubscriptionBroadcaster(observers)
        self._engine = ReconciliationEngine(
            gateway, self._store, self._broadcaster, self._cache, config, progress=progress
        )
        self._actions = SubscriptionActions(self._engine)
        self._stop: asyncio.Event | None = None
        self._pollers: dict[str, EventPoller] = {}
        self._tasks: dict[str, asyncio.Task[None]] = {}

    @classmethod
    async def from_config(
        cls,
        config: ModSyncConfig,
        *,
        observers: Iterable[SubscriptionObserver] = (),
        progress: SyncProgress | None = None,
    ) -> ModSync:
        """Build a session with the HTTP gateway; without a token it runs anonymously."""
        try:
            token: str | None = await create_token_resolver(config).resolve()
        except AuthenticationError as exc:
            _LOG.info("No user token available (%s); running without user subscriptions", exc)
            token = None
        gateway = HttpCatalogGateway(
            game_id=config.game_id,
            api_url=config.api_url,
            api_key=config.api_key,
            token=token,
            timeout=config.request_timeout_seconds,
        )
        return cls(gateway=gateway, config=config, observers=observers, progress=progress)

    async def __aenter__(self) -> ModSync:
        await self._gateway.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        try:
            await self.stop()
        finally:
            await self._gateway.__aexit__(exc_type, exc_val, exc_tb)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def config(self) -> ModSyncConfig:
        return self._config

    @property
    def engine(self) -> ReconciliationEngine:
        return self._engine

    @property
    def state(self) -> SubscriptionState:
        return self._store.snapshot()

    @property
    def is_authenticated(self) -> bool:
        return self._gateway.has_credential and not self._store.snapshot().credential_rejected

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks.values())

    def poller_states(self) -> dict[str, PollerState]:
        return {name: poller.state for name, poller in self._pollers.items()}

    def register_observer(self, observer: SubscriptionObserver) -> None:
        self._broadcaster.register(observer)

    def unregister_observer(self, observer: SubscriptionObserver) -> None:
        self._broadcaster.unregister(observer)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def synchronize(self) -> SyncResult:
        return await self._engine.synchronize_with_remote(stop=self._stop)

    async def verify_installations(self) -> list[int]:
        return await self._engine.verify_installations()

    async def push_pending(self) -> tuple[PushResult, PushResult]:
        subscribes = await self._engine.push_pending_subscribes()
        unsubscribes = await self._engine.push_pending_unsubscribes()
        return subscribes, unsubscribes

    async def subscribe(self, mod_id: int) -> bool:
        return await self._actions.subscribe(mod_id)

    async def unsubscribe(self, mod_id: int) -> bool:
        return await self._actions.unsubscribe(mod_id)

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> SyncResult | None:
        """Run the startup sync and verification, then launch the pollers."""
        if self.running:
            raise SyncError("session is already running")
        self._stop = asyncio.Event()
        self._pollers.clear()
        self._tasks.clear()

        result = await self._startup_sync()
        await self._verify_after_startup()

        self._spawn(
            "catalog",
            CatalogEventPoller(
                self._engine,
                interval=self._config.catalog_poll_seconds,
                page_size=self._config.page_size,
                stop=self._stop,
            ),
        )
        if self.is_authenticated:
            self._spawn_user_poller(self._stop)
        return result

    async def _startup_sync(self) -> SyncResult | None:
        if not self.is_authenticated:
            _LOG.info("Skipping subscription sync: no valid user credential")
            return None
        try:
            return await self.synchronize()
        except AuthenticationError as exc:
            _LOG.warning("Startup sync rejected (%s); continuing without user subscriptions", exc)
            return None

    async def _verify_after_startup(self) -> None:
        try:
            missing = await self.verify_installations()
        except GatewayError as exc:
            _LOG.warning("Installation verification failed: %s", exc)
            self._broadcaster.report(MessageLevel.WARNING, f"Could not verify installed mods: {exc.display_message}")
            return
        if missing:
            _LOG.info("No profile available for subscribed mods %s", missing)

    def _spawn_user_poller(self, stop: asyncio.Event) -> None:
        self._spawn(
            "user",
            UserEventPoller(
                self._engine,
                interval=self._config.user_poll_seconds,
                page_size=self._config.page_size,
                stop=stop,
            ),
        )

    def _spawn(self, name: str, poller: EventPoller) -> None:
        self._pollers[name] = poller
        self._tasks[name] = asyncio.create_task(poller.run(), name=f"modsync-{name}-poller")

    async def wait(self) -> None:
        """Block until every poller has halted."""
        if self._tasks:
            await asyncio.gather(*self._tasks.values())

    async def stop(self) -> None:
        """Signal the pollers to stop and wait for them to finish."""
        if self._stop is not None:
            self._stop.set()
        await self.wait()

    async def login(self, token: str) -> None:
        """Install a new user token and clear any earlier rejection."""
        self._gateway.set_token(token)
        with self._store.mutate() as state:
            state.credential_rejected = False
        _LOG.info("User token installed")
        if self._stop is None or self._stop.is_set() or not self.running:
            return
        user_task = self._tasks.get("user")
        if user_task is None or user_task.done():
            await self._startup_sync()
            self._spawn_user_poller(self._stop)

    async def logout(self) -> None:
        """Stop polling, forget the token and clear all local subscription data."""
        await self.stop()
        self._gateway.set_token(None)
        self._store.clear()
        self._cache.clear()
        _LOG.info("Logged out; local subscription state cleared")
