"""Synchronization engine: reconciliation, event polling and user actions."""

from modsync.engine.actions import SubscriptionActions
from modsync.engine.broadcaster import SubscriptionBroadcaster
from modsync.engine.classifier import ErrorKind, RetryDecision, classify
from modsync.engine.poller import CatalogEventPoller, EventPoller, PollerState, UserEventPoller
from modsync.engine.profiles import ProfileResolver
from modsync.engine.progress import NullSyncProgress, SyncProgress
from modsync.engine.reconciler import ReconciliationEngine
from modsync.engine.retry import RetryPolicy

__all__ = [
    "CatalogEventPoller",
    "ErrorKind",
    "EventPoller",
    "NullSyncProgress",
    "PollerState",
    "ProfileResolver",
    "ReconciliationEngine",
    "RetryDecision",
    "RetryPolicy",
    "SubscriptionActions",
    "SubscriptionBroadcaster",
    "SyncProgress",
    "UserEventPoller",
    "classify",
]
