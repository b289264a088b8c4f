"""Catalog entity contracts exchanged with the remote gateway."""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field, field_validator

T = TypeVar("T")


class BuildDescriptor(BaseModel):
    """The specific file version of a mod that should be present locally."""

    mod_id: int
    modfile_id: int
    version: str | None = None
    filesize: int = 0
    md5: str | None = None
    download_url: str | None = None


class ModProfile(BaseModel):
    id: int
    name: str = ""
    date_updated: int = 0
    current_build: BuildDescriptor | None = None


class ModEventType(StrEnum):
    EDITED = "MOD_EDITED"
    FILE_CHANGED = "MODFILE_CHANGED"
    DELETED = "MOD_DELETED"
    UNAVAILABLE = "MOD_UNAVAILABLE"
    UNKNOWN = "UNKNOWN"


class UserEventType(StrEnum):
    SUBSCRIBED = "USER_SUBSCRIBE"
    UNSUBSCRIBED = "USER_UNSUBSCRIBE"
    UNKNOWN = "UNKNOWN"


def _coerce_event_type(value: Any, enum_type: type[StrEnum]) -> Any:
    if isinstance(value, str) and value not in {member.value for member in enum_type}:
        return enum_type("UNKNOWN")
    return value


class ModEvent(BaseModel):
    id: int
    mod_id: int
    event_type: ModEventType
    date_added: int = 0

    @field_validator("event_type", mode="before")
    @classmethod
    def _unknown_event_type(cls, value: Any) -> Any:
        return _coerce_event_type(value, ModEventType)


class UserEvent(BaseModel):
    id: int
    mod_id: int
    event_type: UserEventType
    date_added: int = 0

    @field_validator("event_type", mode="before")
    @classmethod
    def _unknown_event_type(cls, value: Any) -> Any:
        return _coerce_event_type(value, UserEventType)


class Pagination(BaseModel):
    offset: int = Field(default=0, ge=0)
    limit: int = Field(default=100, ge=1, le=100)


class EventFilter(BaseModel):
    """Selects events strictly newer than ``after_id``.

    ``mod_ids`` narrows catalog events to the given mods; ``latest_first``
    reverses the id ordering (used to read the newest event id only).
    """

    after_id: int = 0
    mod_ids: list[int] | None = None
    latest_first: bool = False


class Page(BaseModel, Generic[T]):
    items: list[T] = Field(default_factory=list)
    result_offset: int = 0
    result_limit: int = 100
    result_total: int = 0

    @property
    def next_offset(self) -> int:
        return self.result_offset + len(self.items)

    @property
    def has_more(self) -> bool:
        return bool(self.items) and self.next_offset < self.result_total
