"""Status command: show the persisted subscription state."""

from __future__ import annotations

import argparse

from rich.console import Console
from rich.table import Table

from modsync import ModSyncConfig, SubscriptionState
from modsync.cli.common import format_ids


def build_status_table(state: SubscriptionState, config: ModSyncConfig) -> Table:
    table = Table(title=f"modsync - game {config.game_id}", show_header=True)
    table.add_column("Field")
    table.add_column("Value")
    table.add_row("Confirmed", format_ids(state.confirmed))
    table.add_row("Effective", format_ids(state.effective()))
    table.add_row("Pending subscribe", format_ids(state.pending_subscribe))
    table.add_row("Pending unsubscribe", format_ids(state.pending_unsubscribe))
    table.add_row("Catalog cursor", str(state.last_catalog_event_id))
    table.add_row("User cursor", str(state.last_user_event_id))
    table.add_row("Credential", "[red]rejected[/red]" if state.credential_rejected else "ok")
    return table


def run_status(args: argparse.Namespace, *, console: Console | None = None) -> SubscriptionState:
    import modsync.cli as cli

    config = cli.load_config(args.config)
    state = cli.load_state(config.state_path)
    (console or Console()).print(build_status_table(state, config))
    return state


__all__ = ["build_status_table", "run_status"]
