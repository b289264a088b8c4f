"""Sync command."""

from __future__ import annotations

import argparse

from modsync import ModSync, ModSyncConfig, SyncResult
from modsync.cli.common import format_ids, plural
from modsync.cli.progress.rich import RichSyncProgress


def format_sync_summary(result: SyncResult, config: ModSyncConfig, *, unresolved: list[int] | None = None) -> str:
    lines = [
        "",
        "modsync - sync complete",
        "",
        f"  Game:        {config.game_id}",
        f"  Remote:      {plural(result.remote_total, 'subscription')}",
        f"  Added:       {format_ids(result.added)}",
        f"  Removed:     {format_ids(result.removed)}",
        f"  Pushed:      {result.subscribes_pushed} subscribe, {result.unsubscribes_pushed} unsubscribe",
    ]
    if result.pending_subscribe or result.pending_unsubscribe:
        lines.append(
            f"  Pending:     subscribe {format_ids(result.pending_subscribe)}; "
            f"unsubscribe {format_ids(result.pending_unsubscribe)}"
        )
    if not result.added and not result.removed:
        lines.append("  Status:      subscriptions up to date")
    if unresolved:
        lines.append(f"  Unresolved:  {format_ids(unresolved)}")
    lines.append("")
    lines.append(f"  State:       {config.state_path}")
    lines.append("")
    return "\n".join(lines)


async def run_sync(args: argparse.Namespace) -> SyncResult:
    import modsync.cli as cli

    config = cli.load_config(args.config)

    if not args.verbose:
        with RichSyncProgress() as progress:
            observer = cli.ConsoleObserver(progress.console)
            session = await cli.ModSync.from_config(config, observers=[observer], progress=progress)
            result, unresolved = await _sync(session, verify=not args.skip_verify)
    else:
        session = await cli.ModSync.from_config(config, observers=[cli.ConsoleObserver()])
        result, unresolved = await _sync(session, verify=not args.skip_verify)

    print(cli._format_sync_summary(result, config, unresolved=unresolved))
    return result


async def _sync(session: ModSync, *, verify: bool) -> tuple[SyncResult, list[int]]:
    async with session:
        result = await session.synchronize()
        unresolved = await session.verify_installations() if verify else []
    return result, unresolved


__all__ = ["format_sync_summary", "run_sync"]
