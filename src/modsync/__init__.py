"""Public API surface for modsync."""

__version__ = "0.1.0"

from modsync.auth import create_token_resolver
from modsync.config import load_config, scaffold_config, write_config
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
from modsync.contracts.mod import BuildDescriptor, ModEvent, ModProfile, UserEvent
from modsync.contracts.observer import SubscriptionObserver
from modsync.contracts.state import SubscriptionState
from modsync.contracts.sync import MessageLevel, PushResult, SubscriptionDelta, SyncMessage, SyncResult
from modsync.engine.progress import SyncProgress
from modsync.sdk import ModSync

__all__ = [
    "AuthenticationError",
    "BuildDescriptor",
    "CatalogGateway",
    "ConfigError",
    "GatewayError",
    "MessageLevel",
    "ModEvent",
    "ModProfile",
    "ModSync",
    "ModSyncConfig",
    "ModSyncError",
    "PersistenceError",
    "ProfileCache",
    "PushResult",
    "SubscriptionDelta",
    "SubscriptionObserver",
    "SubscriptionState",
    "SyncError",
    "SyncHalted",
    "SyncMessage",
    "SyncProgress",
    "SyncResult",
    "UserEvent",
    "__version__",
    "create_token_resolver",
    "load_config",
    "scaffold_config",
    "write_config",
]
