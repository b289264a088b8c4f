"""Login command: accept a new user token after a rejection."""

from __future__ import annotations

import argparse


async def run_login(args: argparse.Namespace) -> None:
    import modsync.cli as cli

    config = cli.load_config(args.config)
    token = await cli.create_token_resolver(config).resolve()
    session = await cli.ModSync.from_config(config)
    async with session:
        await session.login(token)
    print("User token accepted; run 'modsync sync' to reconcile subscriptions.")


__all__ = ["run_login"]
