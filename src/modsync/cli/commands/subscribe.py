"""Subscribe / unsubscribe commands."""

from __future__ import annotations

import argparse

from modsync.cli.common import format_ids


async def run_action(args: argparse.Namespace) -> bool:
    import modsync.cli as cli

    config = cli.load_config(args.config)
    session = await cli.ModSync.from_config(config, observers=[cli.ConsoleObserver()])
    async with session:
        if args.command == "subscribe":
            changed = await session.subscribe(args.mod_id)
            verb = "subscribed to" if changed else "already subscribed to"
        else:
            changed = await session.unsubscribe(args.mod_id)
            verb = "unsubscribed from" if changed else "not subscribed to"
        print(f"{verb.capitalize()} mod {args.mod_id}")

        if args.push:
            await session.push_pending()
        state = session.state

    if state.pending_subscribe or state.pending_unsubscribe:
        print(
            f"Queued: subscribe {format_ids(state.pending_subscribe)}; "
            f"unsubscribe {format_ids(state.pending_unsubscribe)}"
        )
    return changed


__all__ = ["run_action"]
