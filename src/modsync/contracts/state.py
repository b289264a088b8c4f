"""Local subscription state contracts.

The state is two-phase: ``confirmed`` mirrors the remote authority while the
pending queues carry local intent that has not been acknowledged yet. What
observers see is the merge computed by :func:`effective_subscriptions`.
"""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel, Field, field_serializer, model_validator


def effective_subscriptions(
    confirmed: Iterable[int],
    pending_subscribe: Iterable[int],
    pending_unsubscribe: Iterable[int],
) -> set[int]:
    """Return ``confirmed - pending_unsubscribe + pending_subscribe``."""
    return (set(confirmed) - set(pending_unsubscribe)) | set(pending_subscribe)


class SubscriptionState(BaseModel):
    confirmed: set[int] = Field(default_factory=set)
    pending_subscribe: list[int] = Field(default_factory=list)
    pending_unsubscribe: list[int] = Field(default_factory=list)
    last_catalog_event_id: int = 0
    last_user_event_id: int = 0
    credential_rejected: bool = False

    @model_validator(mode="after")
    def validate_queues_disjoint(self) -> SubscriptionState:
        overlap = set(self.pending_subscribe) & set(self.pending_unsubscribe)
        if overlap:
            raise ValueError(f"mod ids queued for both subscribe and unsubscribe: {sorted(overlap)}")
        return self

    @field_serializer("confirmed")
    def _serialize_confirmed(self, value: set[int]) -> list[int]:
        return sorted(value)

    def effective(self) -> set[int]:
        return effective_subscriptions(self.confirmed, self.pending_subscribe, self.pending_unsubscribe)

    def known_ids(self) -> set[int]:
        return self.confirmed | set(self.pending_subscribe) | set(self.pending_unsubscribe)

    def queue_subscribe(self, mod_id: int) -> bool:
        """Record a local subscribe intent; returns False if already effective."""
        if mod_id in self.effective():
            return False
        _discard(self.pending_unsubscribe, mod_id)
        self.pending_subscribe.append(mod_id)
        return True

    def queue_unsubscribe(self, mod_id: int) -> bool:
        """Record a local unsubscribe intent; returns False if not effective."""
        if mod_id not in self.effective():
            return False
        _discard(self.pending_subscribe, mod_id)
        self.pending_unsubscribe.append(mod_id)
        return True

    def confirm_subscribed(self, mod_id: int) -> None:
        _discard(self.pending_subscribe, mod_id)
        self.confirmed.add(mod_id)

    def confirm_unsubscribed(self, mod_id: int) -> None:
        _discard(self.pending_unsubscribe, mod_id)
        self.confirmed.discard(mod_id)

    def forget(self, mod_id: int) -> None:
        """Drop every trace of a mod that no longer exists remotely."""
        self.confirmed.discard(mod_id)
        _discard(self.pending_subscribe, mod_id)
        _discard(self.pending_unsubscribe, mod_id)

    def advance_catalog_cursor(self, event_id: int) -> bool:
        if event_id <= self.last_catalog_event_id:
            return False
        self.last_catalog_event_id = event_id
        return True

    def advance_user_cursor(self, event_id: int) -> bool:
        if event_id <= self.last_user_event_id:
            return False
        self.last_user_event_id = event_id
        return True


def _discard(queue: list[int], mod_id: int) -> None:
    while mod_id in queue:
        queue.remove(mod_id)
