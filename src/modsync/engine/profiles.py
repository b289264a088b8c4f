"""Cache-first mod profile resolution."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from modsync.contracts.cache import ProfileCache
from modsync.contracts.gateway import CatalogGateway
from modsync.contracts.mod import BuildDescriptor, ModProfile

_LOG = logging.getLogger(__name__)

_MAX_IDS_PER_REQUEST = 100


class ProfileResolver:
    def __init__(self, gateway: CatalogGateway, cache: ProfileCache) -> None:
        self._gateway = gateway
        self._cache = cache

    @property
    def cache(self) -> ProfileCache:
        return self._cache

    async def resolve(self, mod_ids: Iterable[int], *, refresh: bool = False) -> dict[int, ModProfile]:
        """Return profiles for *mod_ids*, fetching cache misses (or all, with *refresh*).

        Ids the gateway does not return are simply absent from the result.
        """
        wanted = sorted(set(mod_ids))
        resolved: dict[int, ModProfile] = {}
        missing: list[int] = []
        for mod_id in wanted:
            cached = None if refresh else self._cache.get(mod_id)
            if cached is None:
                missing.append(mod_id)
            else:
                resolved[mod_id] = cached

        for start in range(0, len(missing), _MAX_IDS_PER_REQUEST):
            chunk = missing[start : start + _MAX_IDS_PER_REQUEST]
            fetched = await self._gateway.get_mod_profiles(chunk)
            self._cache.put(fetched)
            resolved.update({profile.id: profile for profile in fetched if profile.id in chunk})

        if missing:
            _LOG.debug("Resolved %d profiles (%d fetched)", len(resolved), len(missing))
        return resolved


def builds_for(profiles: dict[int, ModProfile], mod_ids: Iterable[int]) -> list[BuildDescriptor]:
    builds: list[BuildDescriptor] = []
    for mod_id in sorted(set(mod_ids)):
        profile = profiles.get(mod_id)
        if profile is not None and profile.current_build is not None:
            builds.append(profile.current_build)
    return builds
