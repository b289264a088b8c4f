"""Fan-out of subscription changes to registered observers."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from modsync.contracts.mod import BuildDescriptor
from modsync.contracts.observer import SubscriptionObserver
from modsync.contracts.sync import MessageLevel, SubscriptionDelta, SyncMessage

_LOG = logging.getLogger(__name__)


class SubscriptionBroadcaster:
    """Explicit observer registry.

    Calls are synchronous and fire-and-forget. A failing observer is logged and
    skipped so the remaining observers still receive the notification.
    """

    def __init__(self, observers: Iterable[SubscriptionObserver] = ()) -> None:
        self._observers: list[SubscriptionObserver] = list(observers)

    @property
    def observers(self) -> list[SubscriptionObserver]:
        return list(self._observers)

    def register(self, observer: SubscriptionObserver) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def unregister(self, observer: SubscriptionObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def notify(self, added: Iterable[int], removed: Iterable[int]) -> bool:
        """Deliver a net delta; returns False (and calls nobody) when it is empty."""
        added_ids = sorted(set(added))
        removed_ids = sorted(set(removed))
        if not added_ids and not removed_ids:
            return False
        _LOG.debug("Subscriptions changed: added=%s removed=%s", added_ids, removed_ids)
        self._dispatch("on_subscriptions_changed", lambda o: o.on_subscriptions_changed(added_ids, removed_ids))
        return True

    def notify_delta(self, delta: SubscriptionDelta) -> bool:
        return self.notify(delta.added, delta.removed)

    def request_install(self, builds: Iterable[BuildDescriptor]) -> None:
        build_list = list(builds)
        if not build_list:
            return
        self._dispatch("on_mod_install_required", lambda o: o.on_mod_install_required(list(build_list)))

    def request_uninstall(self, mod_ids: Iterable[int]) -> None:
        for mod_id in sorted(set(mod_ids)):
            self._dispatch("on_mod_uninstall_required", lambda o, m=mod_id: o.on_mod_uninstall_required(m))

    def report(self, level: MessageLevel, text: str, *, retry_in_seconds: float | None = None) -> None:
        message = SyncMessage(level=level, text=text, retry_in_seconds=retry_in_seconds)
        self._dispatch("on_sync_message", lambda o: o.on_sync_message(message))

    def _dispatch(self, name: str, call: Callable[[SubscriptionObserver], None]) -> None:
        for observer in list(self._observers):
            try:
                call(observer)
            except Exception:
                _LOG.exception("Observer %r failed in %s", observer, name)
