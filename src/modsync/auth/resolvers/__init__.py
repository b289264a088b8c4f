"""Concrete token resolvers."""

from modsync.auth.resolvers.env import TOKEN_ENV_VAR, EnvTokenResolver
from modsync.auth.resolvers.static import StaticTokenResolver

__all__ = ["TOKEN_ENV_VAR", "EnvTokenResolver", "StaticTokenResolver"]
