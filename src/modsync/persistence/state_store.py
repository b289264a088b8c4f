"""Subscription-state persistence.

The store owns the single :class:`SubscriptionState` instance of a session and
writes it to disk after every mutation. It does not lock: all mutating callers
run on one event loop and never await inside a :meth:`SubscriptionStore.mutate`
block, so each block is applied and persisted as one step.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from modsync.contracts.exceptions import PersistenceError
from modsync.contracts.state import SubscriptionState

_LOG = logging.getLogger(__name__)


def load_state(path: Path) -> SubscriptionState:
    if not path.exists():
        return SubscriptionState()
    try:
        payload: Any = json.loads(path.read_text(encoding="utf-8"))
        return SubscriptionState.model_validate(payload)
    except (OSError, json.JSONDecodeError, ValidationError) as exc:
        raise PersistenceError(f"invalid subscription state file: {path}") from exc


def persist_state(state: SubscriptionState, path: Path) -> None:
    tmp_path = path.with_name(f"{path.name}.tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_text(state.model_dump_json(indent=2), encoding="utf-8")
        os.replace(tmp_path, path)
    except OSError as exc:
        raise PersistenceError(f"failed to persist subscription state: {path}") from exc


class SubscriptionStore:
    def __init__(self, path: Path, state: SubscriptionState | None = None) -> None:
        self._path = path
        self._state = state if state is not None else SubscriptionState()

    @classmethod
    def open(cls, path: Path) -> SubscriptionStore:
        return cls(path, load_state(path))

    @property
    def path(self) -> Path:
        return self._path

    def snapshot(self) -> SubscriptionState:
        """Return a detached copy that readers may hold without blocking writers."""
        return self._state.model_copy(deep=True)

    @contextmanager
    def mutate(self) -> Iterator[SubscriptionState]:
        """Yield a working copy; commit and persist it only if the block succeeds."""
        working = self._state.model_copy(deep=True)
        yield working
        working.validate_queues_disjoint()
        persist_state(working, self._path)
        self._state = working
        _LOG.debug(
            "State committed: confirmed=%d pending_subscribe=%s pending_unsubscribe=%s cursors=(%d, %d)",
            len(working.confirmed),
            working.pending_subscribe,
            working.pending_unsubscribe,
            working.last_catalog_event_id,
            working.last_user_event_id,
        )

    def clear(self) -> None:
        state = SubscriptionState()
        persist_state(state, self._path)
        self._state = state
        _LOG.debug("State cleared: %s", self._path)
