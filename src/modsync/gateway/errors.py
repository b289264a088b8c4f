"""Interpretation of failed HTTP responses as :class:`GatewayError` values."""

from __future__ import annotations

import logging
import time
from email.utils import parsedate_to_datetime
from typing import Any

import httpx

from modsync.contracts.exceptions import AuthenticationError, GatewayError

_LOG = logging.getLogger(__name__)

DEFAULT_RATE_LIMIT_SECONDS = 60
RATE_LIMIT_HEADER = "X-Ratelimit-RetryAfter"

_UNREACHABLE_STATUSES = frozenset({408, 503})

_DEFAULT_DISPLAY = {
    400: "Error synchronizing with the catalog servers. [Error Code: 400]",
    401: "Your authentication details have changed. Try logging in again.",
    403: "Your account does not have the required permissions.",
    404: "A networking error occurred.",
    408: "The catalog servers could not be reached. Please check your internet connection.",
    410: "A networking error occurred.",
    500: "There was an error with the catalog servers.",
    503: "The catalog servers are currently offline.",
}


def server_timestamp(response: httpx.Response) -> float:
    """Return the response's ``Date`` header as a Unix timestamp, or local time."""
    raw = response.headers.get("Date")
    if raw:
        try:
            return parsedate_to_datetime(raw).timestamp()
        except (TypeError, ValueError):
            _LOG.debug("Unparseable Date header: %r", raw)
    return time.time()


def _api_error(response: httpx.Response) -> tuple[int | None, str | None, dict[str, str]]:
    try:
        payload: Any = response.json()
    except ValueError:
        return None, None, {}
    error = payload.get("error") if isinstance(payload, dict) else None
    if not isinstance(error, dict):
        return None, None, {}
    error_ref = error.get("error_ref")
    message = error.get("message")
    fields = error.get("errors")
    return (
        error_ref if isinstance(error_ref, int) else None,
        message if isinstance(message, str) and message else None,
        {str(k): str(v) for k, v in fields.items()} if isinstance(fields, dict) else {},
    )


def _retry_after(response: httpx.Response) -> int:
    raw = response.headers.get(RATE_LIMIT_HEADER)
    try:
        return int(raw) if raw is not None else DEFAULT_RATE_LIMIT_SECONDS
    except ValueError:
        _LOG.warning("Rate limited without a valid %s header", RATE_LIMIT_HEADER)
        return DEFAULT_RATE_LIMIT_SECONDS


def error_from_response(response: httpx.Response, description: str = "request") -> GatewayError:
    status = response.status_code
    error_ref, api_message, field_messages = _api_error(response)
    message = f"{description} returned {status}"
    if api_message:
        message = f"{message}: {api_message}"

    if status == 401:
        return AuthenticationError(message, display_message=api_message or _DEFAULT_DISPLAY[401])

    if status == 429:
        retry_after = _retry_after(response)
        return GatewayError(
            message,
            status_code=status,
            error_ref=error_ref,
            limited_until=server_timestamp(response) + retry_after,
            display_message=api_message
            or f"Too many requests have been made to the catalog servers. Reconnecting in {retry_after} seconds.",
        )

    if status == 422:
        lines = ["The submitted data contained error(s)."]
        lines.extend(f"- [{field}] {text}" for field, text in field_messages.items())
        return GatewayError(
            message, status_code=status, error_ref=error_ref, unresolvable=True, display_message="\n".join(lines)
        )

    if status in _UNREACHABLE_STATUSES:
        return GatewayError(
            message,
            status_code=status,
            error_ref=error_ref,
            server_unreachable=True,
            display_message=api_message or _DEFAULT_DISPLAY[status],
        )

    # Anything else that produced a response cannot be fixed by repeating it.
    return GatewayError(
        message,
        status_code=status,
        error_ref=error_ref,
        unresolvable=True,
        display_message=api_message
        or _DEFAULT_DISPLAY.get(status, f"Error synchronizing with the catalog servers. [Error Code: {status}]"),
    )


def error_from_transport(exc: httpx.TransportError, description: str) -> GatewayError:
    return GatewayError(
        f"{description} failed: {exc}",
        status_code=0,
        server_unreachable=True,
        display_message="The catalog servers could not be reached. Please check your internet connection.",
    )
