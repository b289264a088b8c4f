"""Observer interface for subscription changes.

UI components and the install coordinator register an implementation with the
:class:`~modsync.engine.broadcaster.SubscriptionBroadcaster`. Callbacks are
invoked synchronously and must not block; observers are expected to enqueue
their own asynchronous work.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from modsync.contracts.mod import BuildDescriptor
from modsync.contracts.sync import SyncMessage


class SubscriptionObserver(ABC):
    @abstractmethod
    def on_subscriptions_changed(self, added: list[int], removed: list[int]) -> None:
        """The effective subscription set changed."""
        ...  # pragma: no cover

    def on_mod_install_required(self, builds: list[BuildDescriptor]) -> None:
        """These builds, and only these versions, should be present on disk."""

    def on_mod_uninstall_required(self, mod_id: int) -> None:
        """Local data for *mod_id* should be removed."""

    def on_sync_message(self, message: SyncMessage) -> None:
        """A user-visible advisory, warning or error was raised."""
