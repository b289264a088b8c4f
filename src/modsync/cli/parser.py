"""CLI parser construction."""

from __future__ import annotations

import argparse
from importlib.metadata import PackageNotFoundError, version


def _package_version() -> str:
    try:
        return version("modsync")
    except PackageNotFoundError:
        return "0.0.0"


def _mod_id(value: str) -> int:
    try:
        mod_id = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid mod id: {value!r}") from None
    if mod_id <= 0:
        raise argparse.ArgumentTypeError(f"mod id must be positive: {value!r}")
    return mod_id


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", default="./modsync.json", help="Path to modsync.json")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="modsync")
    parser.add_argument("--version", action="version", version=f"%(prog)s {_package_version()}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init", help="Generate a modsync.json config file")
    init_parser.add_argument(
        "--output",
        "-o",
        default="modsync.json",
        help="Output file path (default: modsync.json)",
    )
    init_parser.add_argument("--defaults", action="store_true", help="Use defaults without prompting")
    init_parser.add_argument("--game-id", type=int, default=None, help="Game id for --defaults mode")

    sync_parser = subparsers.add_parser("sync", help="Reconcile local subscriptions with the server once")
    _add_common(sync_parser)
    sync_parser.add_argument(
        "--skip-verify", action="store_true", help="Do not request installation of the subscribed builds"
    )

    watch_parser = subparsers.add_parser("watch", help="Sync, then poll for changes until interrupted")
    _add_common(watch_parser)

    for name, help_text in (("subscribe", "Subscribe to a mod"), ("unsubscribe", "Unsubscribe from a mod")):
        action_parser = subparsers.add_parser(name, help=help_text)
        action_parser.add_argument("mod_id", type=_mod_id, help="Mod id")
        action_parser.add_argument("--push", action="store_true", help="Push queued actions to the server now")
        _add_common(action_parser)

    status_parser = subparsers.add_parser("status", help="Show local subscription state")
    _add_common(status_parser)

    login_parser = subparsers.add_parser("login", help="Clear a rejected credential and use the configured token")
    _add_common(login_parser)

    logout_parser = subparsers.add_parser("logout", help="Clear local subscription state and cached profiles")
    _add_common(logout_parser)

    return parser


__all__ = ["build_parser"]
