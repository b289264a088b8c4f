"""Sync result contracts."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field

from modsync.contracts.mod import ModProfile


class SubscriptionDelta(BaseModel):
    added: set[int] = Field(default_factory=set)
    removed: set[int] = Field(default_factory=set)

    @property
    def is_empty(self) -> bool:
        return not self.added and not self.removed

    @classmethod
    def between(cls, before: set[int], after: set[int]) -> SubscriptionDelta:
        return cls(added=after - before, removed=before - after)

    def then(self, later: SubscriptionDelta) -> SubscriptionDelta:
        """Net delta of applying ``self`` followed by ``later``."""
        return SubscriptionDelta(
            added=(self.added - later.removed) | (later.added - self.removed),
            removed=(self.removed - later.added) | (later.removed - self.added),
        )


class PushResult(BaseModel):
    confirmed: list[ModProfile] = Field(default_factory=list)
    confirmed_ids: list[int] = Field(default_factory=list)
    gone: list[int] = Field(default_factory=list)
    failed: list[int] = Field(default_factory=list)


class SyncResult(BaseModel):
    added: list[int] = Field(default_factory=list)
    removed: list[int] = Field(default_factory=list)
    subscribes_pushed: int = 0
    unsubscribes_pushed: int = 0
    pending_subscribe: list[int] = Field(default_factory=list)
    pending_unsubscribe: list[int] = Field(default_factory=list)
    remote_total: int = 0


class MessageLevel(StrEnum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class SyncMessage(BaseModel):
    level: MessageLevel
    text: str
    retry_in_seconds: float | None = None
