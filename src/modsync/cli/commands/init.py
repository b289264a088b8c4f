"""Init command handlers."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

_DEFAULT_GAME_ID = 1


def run_init(args: argparse.Namespace) -> int:
    """Run the init wizard or defaults mode."""
    output = Path(args.output)

    if output.exists():
        if args.defaults:
            print(f"error: {output} already exists (use a different --output path)", file=sys.stderr)
            return 2
        try:
            import questionary

            if not questionary.confirm(f"{output} already exists. Overwrite?", default=False).ask():
                print("Aborted.")
                return 2
        except KeyboardInterrupt:
            print("\nAborted.")
            return 2

    if args.defaults:
        return run_init_defaults(output, game_id=args.game_id)
    return run_init_interactive(output)


def run_init_defaults(output: Path, *, game_id: int | None = None) -> int:
    """Generate config with defaults, no prompts."""
    import modsync.cli as cli

    try:
        config = cli.scaffold_config(game_id=game_id or _DEFAULT_GAME_ID, include_defaults=True)
    except cli.ConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 3

    cli.write_config(config, output)
    print(f"Config written to {output}")
    if game_id is None:
        print("\nSet game_id to your game's id, then run:")
    else:
        print("\nNext, run:")
    print(f"  MODSYNC_TOKEN=... modsync sync --config {output}")
    return 0


def _validate_positive_int(value: str) -> bool | str:
    candidate = value.strip()
    if not candidate.isdigit() or int(candidate) <= 0:
        return "Enter a positive integer"
    return True


def run_init_interactive(output: Path) -> int:
    """Run the interactive wizard using questionary."""
    import questionary

    import modsync.cli as cli

    try:
        game_id = questionary.text("Game id:", validate=_validate_positive_int).ask()
        if game_id is None:
            raise KeyboardInterrupt

        auth = questionary.select(
            "Authentication strategy:",
            choices=[
                questionary.Choice("Environment variable (MODSYNC_TOKEN)", value="env"),
                questionary.Choice("Static token", value="token"),
            ],
            default="env",
        ).ask()
        if auth is None:
            raise KeyboardInterrupt
        auth_token: str | None = None
        if auth == "token":
            auth_token = questionary.password(
                "User access token:",
                validate=lambda v: len(v.strip()) > 0 or "Token is required for static token auth",
            ).ask()
            if auth_token is None:
                raise KeyboardInterrupt
            auth_token = auth_token.strip()

        api_key = questionary.text("API key (optional, used without a user token):", default="").ask()
        if api_key is None:
            raise KeyboardInterrupt

        state_path = questionary.text("State file path:", default="modsync-state.json").ask()
        cache_dir = questionary.text("Profile cache directory:", default="modsync-cache").ask()
        if state_path is None or cache_dir is None:
            raise KeyboardInterrupt

        catalog_poll = 120.0
        user_poll = 15.0
        max_concurrent = 4
        show_advanced = questionary.confirm("Configure advanced options?", default=False).ask()
        if show_advanced is None:
            raise KeyboardInterrupt
        if show_advanced:
            cp = questionary.text(
                "Catalog poll interval (seconds):", default="120", validate=_validate_positive_int
            ).ask()
            up = questionary.text(
                "User poll interval (seconds):", default="15", validate=_validate_positive_int
            ).ask()
            mc = questionary.text(
                "Max concurrent push requests (1-20):",
                default="4",
                validate=lambda v: v.isdigit() and 1 <= int(v) <= 20,
            ).ask()
            if None in {cp, up, mc}:
                raise KeyboardInterrupt
            catalog_poll = float(cp)
            user_poll = float(up)
            max_concurrent = int(mc)

        if auth == "token":
            print(
                "warning: static token auth stores the token in plaintext in modsync.json; "
                "prefer env auth when possible",
                file=sys.stderr,
            )

        config = cli.scaffold_config(
            game_id=int(game_id),
            api_key=api_key.strip() or None,
            auth=auth,
            token=auth_token,
            state_path=state_path,
            cache_dir=cache_dir,
            catalog_poll_seconds=catalog_poll,
            user_poll_seconds=user_poll,
            max_concurrent=max_concurrent,
            include_defaults=True,
        )
        cli.write_config(config, output)

        print(f"\nConfig written to {output}")
        print("\nNext steps:")
        print(f"  1. Sync once:  modsync sync --config {output}")
        print(f"  2. Watch:      modsync watch --config {output}")
        return 0

    except KeyboardInterrupt:
        print("\nAborted.")
        return 2
    except cli.ConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 3


__all__ = ["run_init", "run_init_defaults", "run_init_interactive"]
