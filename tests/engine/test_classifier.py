import pytest

from modsync.contracts.exceptions import AuthenticationError, GatewayError
from modsync.engine.classifier import NO_RETRY, ErrorKind, RetryDecision, classify


def test_unauthorized_never_retries() -> None:
    decision = classify(AuthenticationError("expired"))

    assert decision == RetryDecision(kind=ErrorKind.AUTHENTICATION_INVALID, delay_seconds=NO_RETRY)
    assert decision.should_retry is False


def test_rate_limit_waits_until_limit_expires() -> None:
    error = GatewayError("slow down", status_code=429, limited_until=1_000.0)

    decision = classify(error, now=970.0)

    assert decision.kind is ErrorKind.RATE_LIMITED
    assert decision.delay_seconds == 30.0


def test_expired_rate_limit_retries_immediately() -> None:
    error = GatewayError("slow down", status_code=429, limited_until=1_000.0)

    assert classify(error, now=1_500.0).delay_seconds == 0.0


def test_rate_limit_takes_precedence_over_unresolvable() -> None:
    error = GatewayError("slow down", status_code=429, limited_until=10.0, unresolvable=True)

    assert classify(error, now=0.0).kind is ErrorKind.RATE_LIMITED


def test_unresolvable_never_retries() -> None:
    decision = classify(GatewayError("bad input", status_code=422, unresolvable=True))

    assert decision.kind is ErrorKind.UNRESOLVABLE
    assert decision.should_retry is False


@pytest.mark.parametrize(
    ("unreachable", "expected"),
    [
        (True, 60.0),
        (False, 15.0),
    ],
)
def test_transient_delays(unreachable: bool, expected: float) -> None:
    decision = classify(GatewayError("down", server_unreachable=unreachable))

    assert decision.kind is ErrorKind.TRANSIENT
    assert decision.delay_seconds == expected


def test_transient_delays_are_configurable() -> None:
    error = GatewayError("down", server_unreachable=True)

    assert classify(error, transient_delay=1.0, unreachable_delay=2.0).delay_seconds == 2.0
