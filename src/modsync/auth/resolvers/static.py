"""Static token resolver."""

from __future__ import annotations

from modsync.auth.base import TokenResolver
from modsync.contracts.exceptions import AuthenticationError


class StaticTokenResolver(TokenResolver):
    def __init__(self, *, token: str) -> None:
        self._token = token.strip()

    async def resolve(self) -> str:
        if not self._token:
            raise AuthenticationError("Static token is empty")
        return self._token
