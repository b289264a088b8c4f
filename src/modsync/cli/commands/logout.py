"""Logout command: drop local subscription data."""

from __future__ import annotations

import argparse


async def run_logout(args: argparse.Namespace) -> None:
    import modsync.cli as cli

    config = cli.load_config(args.config)
    session = await cli.ModSync.from_config(config)
    async with session:
        await session.logout()
    print(f"Cleared {config.state_path} and {config.cache_dir}")


__all__ = ["run_logout"]
