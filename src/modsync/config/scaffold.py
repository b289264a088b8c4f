"""Starter config generation for ``modsync init``."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from modsync.contracts.config import ModSyncConfig
from modsync.contracts.exceptions import ConfigError

_DEFAULTS = ModSyncConfig(game_id=1)


def scaffold_config(
    *,
    game_id: int,
    api_url: str = _DEFAULTS.api_url,
    api_key: str | None = None,
    auth: str = "env",
    token: str | None = None,
    state_path: str = str(_DEFAULTS.state_path),
    cache_dir: str = str(_DEFAULTS.cache_dir),
    catalog_poll_seconds: float = _DEFAULTS.catalog_poll_seconds,
    user_poll_seconds: float = _DEFAULTS.user_poll_seconds,
    max_concurrent: int = _DEFAULTS.max_concurrent,
    include_defaults: bool = False,
) -> dict[str, Any]:
    raw: dict[str, Any] = {"game_id": game_id}

    if include_defaults or api_url != _DEFAULTS.api_url:
        raw["api_url"] = api_url
    if api_key:
        raw["api_key"] = api_key
    if include_defaults or auth != "env":
        raw["auth"] = auth
    if token is not None:
        raw["token"] = token
    if include_defaults or state_path != str(_DEFAULTS.state_path):
        raw["state_path"] = state_path
    if include_defaults or cache_dir != str(_DEFAULTS.cache_dir):
        raw["cache_dir"] = cache_dir
    if include_defaults or catalog_poll_seconds != _DEFAULTS.catalog_poll_seconds:
        raw["catalog_poll_seconds"] = catalog_poll_seconds
    if include_defaults or user_poll_seconds != _DEFAULTS.user_poll_seconds:
        raw["user_poll_seconds"] = user_poll_seconds
    if include_defaults or max_concurrent != _DEFAULTS.max_concurrent:
        raw["max_concurrent"] = max_concurrent

    try:
        ModSyncConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"invalid config: {exc}") from exc

    return raw


def write_config(config: dict[str, Any], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(config, indent=2) + "\n", encoding="utf-8")
