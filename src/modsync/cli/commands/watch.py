"""Watch command: run the session until interrupted."""

from __future__ import annotations

import argparse
import sys


async def run_watch(args: argparse.Namespace) -> None:
    import modsync.cli as cli

    config = cli.load_config(args.config)
    session = await cli.ModSync.from_config(config, observers=[cli.ConsoleObserver()])
    async with session:
        result = await session.start()
        if result is not None:
            print(cli._format_sync_summary(result, config))
        elif not session.is_authenticated:
            print("No valid user token; watching catalog updates only.", file=sys.stderr)
        print(
            f"Polling catalog every {config.catalog_poll_seconds:.0f}s"
            + (f", user events every {config.user_poll_seconds:.0f}s" if session.is_authenticated else "")
            + ". Press Ctrl+C to stop.",
            file=sys.stderr,
        )
        await session.wait()


__all__ = ["run_watch"]
