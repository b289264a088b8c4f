"""CLI app entrypoint and error mapping."""

from __future__ import annotations

import sys

from modsync import AuthenticationError, ConfigError, GatewayError, PersistenceError, SyncError


def main(argv: list[str] | None = None) -> int:
    import modsync.cli as cli

    parser = cli.build_parser()
    args = parser.parse_args(argv)

    if args.command == "init":
        return cli._run_init(args)

    if args.verbose:
        cli.logging.basicConfig(level=cli.logging.DEBUG, format="%(name)s %(message)s", stream=sys.stderr)

    try:
        if args.command == "sync":
            cli.asyncio.run(cli._run_sync(args))
        elif args.command == "watch":
            cli.asyncio.run(cli._run_watch(args))
        elif args.command in {"subscribe", "unsubscribe"}:
            cli.asyncio.run(cli._run_action(args))
        elif args.command == "status":
            cli._run_status(args)
        elif args.command == "login":
            cli.asyncio.run(cli._run_login(args))
        elif args.command == "logout":
            cli.asyncio.run(cli._run_logout(args))
        return 0
    except KeyboardInterrupt:
        print("\nStopped.", file=sys.stderr)
        return 0
    except (ConfigError, PersistenceError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 3
    except (AuthenticationError, GatewayError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 4
    except SyncError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 5
    except Exception as exc:  # pragma: no cover - fallback for unexpected failures
        print(f"error: {exc}", file=sys.stderr)
        return 1


__all__ = ["main"]
