"""Remote catalog gateway contract.

Every concrete gateway (HTTP, in-memory fakes, ...) implements this interface
so the reconciliation engine and the event pollers can talk to the remote
authority without knowing its wire format. Failures are reported by raising
:class:`~modsync.contracts.exceptions.GatewayError`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from types import TracebackType

from modsync.contracts.mod import EventFilter, ModEvent, ModProfile, Page, Pagination, UserEvent


class CatalogGateway(ABC):
    @abstractmethod
    async def __aenter__(self) -> CatalogGateway: ...  # pragma: no cover

    @abstractmethod
    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None: ...  # pragma: no cover

    @property
    @abstractmethod
    def has_credential(self) -> bool:
        """Whether a user token is installed for user-scoped calls."""

    @abstractmethod
    def set_token(self, token: str | None) -> None:
        """Install (or drop, with ``None``) the user token."""

    @abstractmethod
    async def get_subscriptions(self, game_id: int, pagination: Pagination) -> Page[ModProfile]: ...  # pragma: no cover

    @abstractmethod
    async def subscribe(self, mod_id: int) -> ModProfile: ...  # pragma: no cover

    @abstractmethod
    async def unsubscribe(self, mod_id: int) -> None: ...  # pragma: no cover

    @abstractmethod
    async def get_catalog_events(
        self, filters: EventFilter, pagination: Pagination
    ) -> Page[ModEvent]: ...  # pragma: no cover

    @abstractmethod
    async def get_user_events(
        self, filters: EventFilter, pagination: Pagination
    ) -> Page[UserEvent]: ...  # pragma: no cover

    @abstractmethod
    async def get_mod_profiles(self, mod_ids: list[int]) -> list[ModProfile]: ...  # pragma: no cover
