"""Failure classification for remote gateway calls.

Retry intervals are fixed rather than exponential: the pollers already run
periodically, so a failed call only needs to wait for the next short slot.
"""

from __future__ import annotations

import time
from enum import StrEnum

from pydantic import BaseModel

from modsync.contracts.exceptions import GatewayError

DEFAULT_TRANSIENT_DELAY = 15.0
DEFAULT_UNREACHABLE_DELAY = 60.0
NO_RETRY = -1.0


class ErrorKind(StrEnum):
    AUTHENTICATION_INVALID = "authentication-invalid"
    RATE_LIMITED = "rate-limited"
    UNRESOLVABLE = "unresolvable"
    TRANSIENT = "transient"


class RetryDecision(BaseModel):
    kind: ErrorKind
    delay_seconds: float

    model_config = {"frozen": True}

    @property
    def should_retry(self) -> bool:
        return self.delay_seconds >= 0


def classify(
    error: GatewayError,
    *,
    now: float | None = None,
    transient_delay: float = DEFAULT_TRANSIENT_DELAY,
    unreachable_delay: float = DEFAULT_UNREACHABLE_DELAY,
) -> RetryDecision:
    if error.status_code == 401:
        return RetryDecision(kind=ErrorKind.AUTHENTICATION_INVALID, delay_seconds=NO_RETRY)
    if error.limited_until is not None:
        current = time.time() if now is None else now
        return RetryDecision(kind=ErrorKind.RATE_LIMITED, delay_seconds=max(0.0, error.limited_until - current))
    if error.unresolvable:
        return RetryDecision(kind=ErrorKind.UNRESOLVABLE, delay_seconds=NO_RETRY)
    delay = unreachable_delay if error.server_unreachable else transient_delay
    return RetryDecision(kind=ErrorKind.TRANSIENT, delay_seconds=delay)
