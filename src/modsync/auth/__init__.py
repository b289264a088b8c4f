"""User token resolution."""

from modsync.auth.base import TokenResolver
from modsync.auth.factory import create_token_resolver
from modsync.auth.resolvers import TOKEN_ENV_VAR, EnvTokenResolver, StaticTokenResolver

__all__ = [
    "TOKEN_ENV_VAR",
    "EnvTokenResolver",
    "StaticTokenResolver",
    "TokenResolver",
    "create_token_resolver",
]
