"""REST catalog gateway over ``httpx``."""

from __future__ import annotations

import logging
from collections.abc import Callable
from types import TracebackType
from typing import Any, TypeVar

import httpx
from pydantic import ValidationError

from modsync.contracts.exceptions import AuthenticationError, GatewayError
from modsync.contracts.gateway import CatalogGateway
from modsync.contracts.mod import (
    BuildDescriptor,
    EventFilter,
    ModEvent,
    ModProfile,
    Page,
    Pagination,
    UserEvent,
)
from modsync.gateway.errors import error_from_response, error_from_transport

_LOG = logging.getLogger(__name__)

T = TypeVar("T")

_MAX_LIMIT = 100


def parse_build(payload: Any) -> BuildDescriptor | None:
    if not isinstance(payload, dict) or not payload.get("id"):
        return None
    filehash = payload.get("filehash") or {}
    download = payload.get("download") or {}
    return BuildDescriptor(
        mod_id=payload["mod_id"],
        modfile_id=payload["id"],
        version=payload.get("version"),
        filesize=payload.get("filesize") or 0,
        md5=filehash.get("md5"),
        download_url=download.get("binary_url"),
    )


def parse_profile(payload: Any) -> ModProfile:
    if not isinstance(payload, dict):
        raise ValueError(f"expected a mod object, got {type(payload).__name__}")
    return ModProfile(
        id=payload["id"],
        name=payload.get("name") or "",
        date_updated=payload.get("date_updated") or 0,
        current_build=parse_build(payload.get("modfile")),
    )


def parse_page(payload: Any, parse_item: Callable[[Any], T], requested: Pagination | None = None) -> Page[T]:
    """Parse a result page; fields the server omits fall back to the *requested* window."""
    if not isinstance(payload, dict):
        raise ValueError(f"expected a result page, got {type(payload).__name__}")
    items = [parse_item(item) for item in payload.get("data") or []]
    return Page(
        items=items,
        result_offset=_int_field(payload, "result_offset", requested.offset if requested else 0),
        result_limit=_int_field(payload, "result_limit", requested.limit if requested else len(items)),
        result_total=payload.get("result_total") or 0,
    )


def _int_field(payload: dict[str, Any], key: str, default: int) -> int:
    value = payload.get(key)
    return default if value is None else value


class HttpCatalogGateway(CatalogGateway):
    """Catalog gateway for a mod.io-style REST API.

    Catalog reads authenticate with the user token when one is installed and
    fall back to ``api_key``; user-scoped calls require the token.
    """

    def __init__(
        self,
        *,
        game_id: int,
        api_url: str = "https://api.mod.io/v1",
        api_key: str | None = None,
        token: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._game_id = game_id
        self._api_url = api_url.rstrip("/")
        self._api_key = api_key
        self._token = token or None
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> HttpCatalogGateway:
        self._client = httpx.AsyncClient(
            base_url=self._api_url,
            transport=self._transport,
            headers={"Accept": "application/json"},
            limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
            timeout=httpx.Timeout(self._timeout),
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def has_credential(self) -> bool:
        return self._token is not None

    def set_token(self, token: str | None) -> None:
        self._token = token or None

    def _require_client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise GatewayError("Gateway is not open. Use 'async with'.", unresolvable=True)
        return self._client

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        user_scoped: bool = False,
    ) -> Any:
        client = self._require_client()
        description = f"{method} {path}"
        if user_scoped and self._token is None:
            raise AuthenticationError(f"{description} requires a user token")

        headers: dict[str, str] = {}
        query = dict(params or {})
        if self._token is not None:
            headers["Authorization"] = f"Bearer {self._token}"
        elif self._api_key:
            query["api_key"] = self._api_key

        try:
            response = await client.request(method, path, params=query, headers=headers)
        except httpx.TransportError as exc:
            raise error_from_transport(exc, description) from exc

        if response.is_error:
            error = error_from_response(response, description)
            _LOG.debug("%s failed: status=%d ref=%s", description, error.status_code, error.error_ref)
            raise error
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise GatewayError(
                f"{description} returned invalid JSON", status_code=response.status_code, unresolvable=True
            ) from exc

    @staticmethod
    def _page_params(pagination: Pagination) -> dict[str, Any]:
        return {"_offset": pagination.offset, "_limit": pagination.limit}

    @staticmethod
    def _event_params(filters: EventFilter) -> dict[str, Any]:
        params: dict[str, Any] = {"_sort": "-id" if filters.latest_first else "id"}
        if filters.after_id > 0:
            params["id-gt"] = filters.after_id
        if filters.mod_ids:
            params["mod_id-in"] = ",".join(str(mod_id) for mod_id in filters.mod_ids)
        return params

    def _parse(self, description: str, parse: Callable[[], T]) -> T:
        try:
            return parse()
        except (KeyError, ValueError, ValidationError) as exc:
            raise GatewayError(f"{description}: unexpected response payload", unresolvable=True) from exc

    async def get_subscriptions(self, game_id: int, pagination: Pagination) -> Page[ModProfile]:
        params = {"game_id": game_id, **self._page_params(pagination)}
        payload = await self._request("GET", "/me/subscribed", params=params, user_scoped=True)
        return self._parse("subscriptions", lambda: parse_page(payload, parse_profile, pagination))

    async def subscribe(self, mod_id: int) -> ModProfile:
        payload = await self._request(
            "POST", f"/games/{self._game_id}/mods/{mod_id}/subscribe", user_scoped=True
        )
        return self._parse("subscribe", lambda: parse_profile(payload))

    async def unsubscribe(self, mod_id: int) -> None:
        await self._request("DELETE", f"/games/{self._game_id}/mods/{mod_id}/subscribe", user_scoped=True)

    async def get_catalog_events(self, filters: EventFilter, pagination: Pagination) -> Page[ModEvent]:
        params = {**self._event_params(filters), **self._page_params(pagination)}
        payload = await self._request("GET", f"/games/{self._game_id}/mods/events", params=params)
        return self._parse("catalog events", lambda: parse_page(payload, ModEvent.model_validate, pagination))

    async def get_user_events(self, filters: EventFilter, pagination: Pagination) -> Page[UserEvent]:
        params = {"game_id": self._game_id, **self._event_params(filters), **self._page_params(pagination)}
        payload = await self._request("GET", "/me/events", params=params, user_scoped=True)
        return self._parse("user events", lambda: parse_page(payload, UserEvent.model_validate, pagination))

    async def get_mod_profiles(self, mod_ids: list[int]) -> list[ModProfile]:
        if not mod_ids:
            return []
        profiles: list[ModProfile] = []
        for start in range(0, len(mod_ids), _MAX_LIMIT):
            chunk = mod_ids[start : start + _MAX_LIMIT]
            params = {"id-in": ",".join(str(mod_id) for mod_id in chunk), "_limit": len(chunk)}
            payload = await self._request("GET", f"/games/{self._game_id}/mods", params=params)
            page = self._parse("mod profiles", lambda payload=payload: parse_page(payload, parse_profile))
            profiles.extend(page.items)
        return profiles
