"""Bounded fixed-interval retry of a single gateway operation."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from modsync.contracts.exceptions import AuthenticationError, GatewayError, SyncHalted
from modsync.engine.classifier import (
    DEFAULT_TRANSIENT_DELAY,
    DEFAULT_UNREACHABLE_DELAY,
    ErrorKind,
    RetryDecision,
    classify,
)

_LOG = logging.getLogger(__name__)

T = TypeVar("T")

RetryListener = Callable[[str, GatewayError, RetryDecision], None]


class RetryPolicy:
    """Re-runs an operation after classifier-provided delays.

    Authentication failures are re-raised as :class:`AuthenticationError`,
    unresolvable failures are re-raised unchanged. Waits are cooperative:
    setting the *stop* event interrupts them with :class:`SyncHalted`.
    """

    def __init__(
        self,
        *,
        transient_delay: float = DEFAULT_TRANSIENT_DELAY,
        unreachable_delay: float = DEFAULT_UNREACHABLE_DELAY,
        on_retry: RetryListener | None = None,
    ) -> None:
        self._transient_delay = transient_delay
        self._unreachable_delay = unreachable_delay
        self._on_retry = on_retry

    def classify(self, error: GatewayError) -> RetryDecision:
        return classify(
            error,
            transient_delay=self._transient_delay,
            unreachable_delay=self._unreachable_delay,
        )

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        description: str,
        stop: asyncio.Event | None = None,
        max_attempts: int | None = None,
    ) -> T:
        attempt = 0
        while True:
            if stop is not None and stop.is_set():
                raise SyncHalted(f"{description} halted")
            attempt += 1
            try:
                return await operation()
            except GatewayError as exc:
                decision = self.classify(exc)
                if decision.kind is ErrorKind.AUTHENTICATION_INVALID:
                    if isinstance(exc, AuthenticationError):
                        raise
                    raise AuthenticationError(
                        f"{description}: credential rejected", display_message=exc.display_message
                    ) from exc
                if not decision.should_retry:
                    raise
                if max_attempts is not None and attempt >= max_attempts:
                    raise
                _LOG.warning(
                    "%s failed (%s, %s); retrying in %.0fs",
                    description,
                    decision.kind,
                    exc,
                    decision.delay_seconds,
                )
                if self._on_retry is not None:
                    self._on_retry(description, exc, decision)
                await self.pause(decision.delay_seconds, stop)

    @staticmethod
    async def pause(seconds: float, stop: asyncio.Event | None = None) -> None:
        """Sleep for *seconds*, raising :class:`SyncHalted` if *stop* is set meanwhile."""
        if stop is None:
            await asyncio.sleep(max(0.0, seconds))
            return
        if stop.is_set():
            raise SyncHalted("stopped")
        try:
            await asyncio.wait_for(stop.wait(), timeout=max(0.0, seconds))
        except TimeoutError:
            return
        raise SyncHalted("stopped")
