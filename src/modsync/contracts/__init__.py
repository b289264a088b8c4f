"""Public contracts for modsync."""

from modsync.contracts.cache import ProfileCache
from modsync.contracts.config import ModSyncConfig
from modsync.contracts.exceptions import (
    AuthenticationError,
    ConfigError,
    GatewayError,
    ModSyncError,
    PersistenceError,
    SyncError,
    SyncHalted,
)
from modsync.contracts.gateway import CatalogGateway
from modsync.contracts.mod import (
    BuildDescriptor,
    EventFilter,
    ModEvent,
    ModEventType,
    ModProfile,
    Page,
    Pagination,
    UserEvent,
    UserEventType,
)
from modsync.contracts.observer import SubscriptionObserver
from modsync.contracts.state import SubscriptionState, effective_subscriptions
from modsync.contracts.sync import MessageLevel, PushResult, SubscriptionDelta, SyncMessage, SyncResult

__all__ = [
    "AuthenticationError",
    "BuildDescriptor",
    "CatalogGateway",
    "ConfigError",
    "EventFilter",
    "GatewayError",
    "MessageLevel",
    "ModEvent",
    "ModEventType",
    "ModProfile",
    "ModSyncConfig",
    "ModSyncError",
    "Page",
    "Pagination",
    "PersistenceError",
    "ProfileCache",
    "PushResult",
    "SubscriptionDelta",
    "SubscriptionObserver",
    "SubscriptionState",
    "SyncError",
    "SyncHalted",
    "SyncMessage",
    "SyncResult",
    "UserEvent",
    "UserEventType",
    "effective_subscriptions",
]
