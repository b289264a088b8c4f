"""Persistence helpers for local subscription state and cached profiles."""

from modsync.persistence.profile_cache import JsonProfileCache
from modsync.persistence.state_store import SubscriptionStore, load_state, persist_state

__all__ = [
    "JsonProfileCache",
    "SubscriptionStore",
    "load_state",
    "persist_state",
]
