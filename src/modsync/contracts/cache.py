"""Profile cache contract."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable

from modsync.contracts.mod import ModProfile


class ProfileCache(ABC):
    @abstractmethod
    def get(self, mod_id: int) -> ModProfile | None: ...  # pragma: no cover

    @abstractmethod
    def put(self, profiles: Iterable[ModProfile]) -> None: ...  # pragma: no cover

    @abstractmethod
    def purge(self, mod_id: int) -> None: ...  # pragma: no cover

    @abstractmethod
    def clear(self) -> None: ...  # pragma: no cover
