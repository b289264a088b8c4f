"""File-backed profile cache: one JSON document per mod."""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable
from pathlib import Path

from pydantic import ValidationError

from modsync.contracts.cache import ProfileCache
from modsync.contracts.exceptions import PersistenceError
from modsync.contracts.mod import ModProfile

_LOG = logging.getLogger(__name__)


class JsonProfileCache(ProfileCache):
    def __init__(self, directory: Path) -> None:
        self._directory = directory

    def _entry_path(self, mod_id: int) -> Path:
        return self._directory / f"mod_{mod_id}.json"

    def get(self, mod_id: int) -> ModProfile | None:
        path = self._entry_path(mod_id)
        if not path.exists():
            return None
        try:
            return ModProfile.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError):
            _LOG.warning("Discarding unreadable cache entry %s", path)
            path.unlink(missing_ok=True)
            return None

    def put(self, profiles: Iterable[ModProfile]) -> None:
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            for profile in profiles:
                self._entry_path(profile.id).write_text(profile.model_dump_json(indent=2), encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(f"failed to write profile cache: {self._directory}") from exc

    def purge(self, mod_id: int) -> None:
        try:
            self._entry_path(mod_id).unlink(missing_ok=True)
        except OSError as exc:
            raise PersistenceError(f"failed to purge cached profile {mod_id}") from exc

    def clear(self) -> None:
        if not self._directory.exists():
            return
        try:
            shutil.rmtree(self._directory)
        except OSError as exc:
            raise PersistenceError(f"failed to clear profile cache: {self._directory}") from exc
