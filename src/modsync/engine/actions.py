"""User-initiated subscription actions.

Both actions change local state optimistically and notify observers at once;
the remote push happens on the next reconciliation or user poll cycle.
"""

from __future__ import annotations

import logging

from modsync.contracts.exceptions import GatewayError
from modsync.contracts.sync import MessageLevel, SubscriptionDelta
from modsync.engine.profiles import builds_for
from modsync.engine.reconciler import ReconciliationEngine

_LOG = logging.getLogger(__name__)


class SubscriptionActions:
    def __init__(self, engine: ReconciliationEngine) -> None:
        self._engine = engine

    async def subscribe(self, mod_id: int) -> bool:
        """Queue a subscribe for *mod_id*; returns False if it is already subscribed."""
        with self._engine.store.mutate() as state:
            before = state.effective()
            queued = state.queue_subscribe(mod_id)
            delta = SubscriptionDelta.between(before, state.effective())
        if not queued:
            _LOG.debug("Mod %d already subscribed", mod_id)
            return False

        _LOG.info("Queued subscribe for mod %d", mod_id)
        self._engine.broadcaster.notify_delta(delta)
        try:
            profiles = await self._engine.resolver.resolve([mod_id])
        except GatewayError as exc:
            # The queued action stays; installation is asserted again after the next sync.
            _LOG.warning("Could not resolve profile for mod %d: %s", mod_id, exc)
            self._engine.broadcaster.report(
                MessageLevel.WARNING, f"Mod {mod_id} will be installed once its details can be fetched"
            )
            return True
        self._engine.broadcaster.request_install(builds_for(profiles, [mod_id]))
        return True

    async def unsubscribe(self, mod_id: int) -> bool:
        """Queue an unsubscribe for *mod_id*; returns False if it is not subscribed."""
        with self._engine.store.mutate() as state:
            before = state.effective()
            queued = state.queue_unsubscribe(mod_id)
            delta = SubscriptionDelta.between(before, state.effective())
        if not queued:
            _LOG.debug("Mod %d is not subscribed", mod_id)
            return False

        _LOG.info("Queued unsubscribe for mod %d", mod_id)
        self._engine.broadcaster.notify_delta(delta)
        self._engine.broadcaster.request_uninstall([mod_id])
        self._engine.resolver.cache.purge(mod_id)
        return True
