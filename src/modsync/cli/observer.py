"""Console observer used by the long-running CLI commands."""

from __future__ import annotations

from rich.console import Console

from modsync import BuildDescriptor, MessageLevel, SubscriptionObserver, SyncMessage
from modsync.cli.common import format_ids

_LEVEL_STYLES = {
    MessageLevel.INFO: "cyan",
    MessageLevel.WARNING: "yellow",
    MessageLevel.ERROR: "bold red",
}


class ConsoleObserver(SubscriptionObserver):
    """Prints subscription changes and sync messages to stderr."""

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console(stderr=True)

    def on_subscriptions_changed(self, added: list[int], removed: list[int]) -> None:
        if added:
            self._console.print(f"[green]+[/green] subscribed: {format_ids(added)}")
        if removed:
            self._console.print(f"[red]-[/red] unsubscribed: {format_ids(removed)}")

    def on_mod_install_required(self, builds: list[BuildDescriptor]) -> None:
        for build in builds:
            version = f" ({build.version})" if build.version else ""
            self._console.print(f"  install mod {build.mod_id} file {build.modfile_id}{version}")

    def on_mod_uninstall_required(self, mod_id: int) -> None:
        self._console.print(f"  uninstall mod {mod_id}")

    def on_sync_message(self, message: SyncMessage) -> None:
        style = _LEVEL_STYLES[message.level]
        suffix = ""
        if message.retry_in_seconds is not None and message.retry_in_seconds >= 0:
            suffix = f" (retrying in {message.retry_in_seconds:.0f}s)"
        self._console.print(f"[{style}]{message.level.value}[/{style}] {message.text}{suffix}")
