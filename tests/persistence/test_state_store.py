from __future__ import annotations

import json
from pathlib import Path

import pytest

from modsync.contracts.exceptions import PersistenceError
from modsync.contracts.state import SubscriptionState
from modsync.persistence.state_store import SubscriptionStore, load_state, persist_state


def test_load_state_defaults_when_missing(tmp_path: Path) -> None:
    assert load_state(tmp_path / "missing.json") == SubscriptionState()


def test_load_state_rejects_invalid_json(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(PersistenceError, match="invalid subscription state file"):
        load_state(path)


def test_load_state_rejects_overlapping_queues(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    path.write_text(json.dumps({"pending_subscribe": [1], "pending_unsubscribe": [1]}), encoding="utf-8")

    with pytest.raises(PersistenceError):
        load_state(path)


def test_persist_state_round_trips_and_leaves_no_temp_file(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "state.json"
    state = SubscriptionState(confirmed={3, 1}, pending_subscribe=[4], last_catalog_event_id=12)

    persist_state(state, path)

    assert load_state(path) == state
    assert json.loads(path.read_text(encoding="utf-8"))["confirmed"] == [1, 3]
    assert not path.with_name("state.json.tmp").exists()


def test_persist_state_wraps_os_errors(tmp_path: Path) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("", encoding="utf-8")

    with pytest.raises(PersistenceError, match="failed to persist"):
        persist_state(SubscriptionState(), blocker / "state.json")


class TestSubscriptionStore:
    def test_open_reads_existing_file(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        persist_state(SubscriptionState(confirmed={7}), path)

        assert SubscriptionStore.open(path).snapshot().confirmed == {7}

    def test_mutate_commits_and_persists(self, tmp_path: Path) -> None:
        store = SubscriptionStore(tmp_path / "state.json")

        with store.mutate() as state:
            state.confirmed.add(1)
            state.advance_user_cursor(9)

        assert store.snapshot().confirmed == {1}
        assert load_state(store.path).last_user_event_id == 9

    def test_failed_mutation_is_discarded(self, tmp_path: Path) -> None:
        store = SubscriptionStore(tmp_path / "state.json")

        with pytest.raises(RuntimeError):
            with store.mutate() as state:
                state.confirmed.add(1)
                state.advance_catalog_cursor(5)
                raise RuntimeError("boom")

        assert store.snapshot() == SubscriptionState()
        assert not store.path.exists()

    def test_mutation_breaking_queue_invariant_is_rejected(self, tmp_path: Path) -> None:
        store = SubscriptionStore(tmp_path / "state.json")

        with pytest.raises(ValueError, match="both subscribe and unsubscribe"):
            with store.mutate() as state:
                state.pending_subscribe.append(2)
                state.pending_unsubscribe.append(2)

        assert store.snapshot().pending_subscribe == []

    def test_snapshot_is_detached(self, tmp_path: Path) -> None:
        store = SubscriptionStore(tmp_path / "state.json")

        store.snapshot().confirmed.add(5)

        assert store.snapshot().confirmed == set()

    def test_clear_resets_and_persists(self, tmp_path: Path) -> None:
        store = SubscriptionStore(tmp_path / "state.json", SubscriptionState(confirmed={1}, credential_rejected=True))

        store.clear()

        assert store.snapshot() == SubscriptionState()
        assert load_state(store.path) == SubscriptionState()
