"""Environment token resolver."""

from __future__ import annotations

import os

from modsync.auth.base import TokenResolver
from modsync.contracts.exceptions import AuthenticationError

TOKEN_ENV_VAR = "MODSYNC_TOKEN"


class EnvTokenResolver(TokenResolver):
    def __init__(self, variable: str = TOKEN_ENV_VAR) -> None:
        self._variable = variable

    async def resolve(self) -> str:
        token = (os.getenv(self._variable) or "").strip()
        if not token:
            raise AuthenticationError(f"{self._variable} is not set or empty")
        return token
