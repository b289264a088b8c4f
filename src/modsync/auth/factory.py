"""Token resolver factory."""

from __future__ import annotations

from modsync.auth.base import TokenResolver
from modsync.auth.resolvers.env import EnvTokenResolver
from modsync.auth.resolvers.static import StaticTokenResolver
from modsync.contracts.config import ModSyncConfig
from modsync.contracts.exceptions import ConfigError

RESOLVERS: dict[str, type[TokenResolver]] = {
    "env": EnvTokenResolver,
    "token": StaticTokenResolver,
}


def create_token_resolver(config: ModSyncConfig) -> TokenResolver:
    auth_mode = config.auth
    if auth_mode not in RESOLVERS:
        raise ConfigError(f"Unknown auth mode: {auth_mode}")

    if auth_mode == "env":
        return EnvTokenResolver()
    return StaticTokenResolver(token=config.token or "")
