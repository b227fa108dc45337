"""Tests for error classification and the retry combinator."""

import json

import pytest

from potability.errors import (
    ErrorType,
    PredictionServiceError,
    classify_status,
    is_recoverable,
    parse_error_body,
)
from potability.retry import RetryPolicy, linear_delay, retry_async

from conftest import RecordingSleep


@pytest.mark.parametrize(
    "status,error_type,transient",
    [
        (400, ErrorType.CLIENT_ERROR, False),
        (401, ErrorType.AUTHENTICATION, False),
        (403, ErrorType.AUTHORIZATION, False),
        (404, ErrorType.NOT_FOUND, False),
        (418, ErrorType.CLIENT_ERROR, False),
        (422, ErrorType.CLIENT_ERROR, False),
        (429, ErrorType.RATE_LIMITED, True),
        (500, ErrorType.SERVER_ERROR, True),
        (504, ErrorType.SERVER_ERROR, True),
        (599, ErrorType.SERVER_ERROR, True),
    ],
)
def test_status_classification(status, error_type, transient):
    error = classify_status(status, "")
    assert error.error_type == error_type
    assert error.is_transient is transient
    assert is_recoverable(error) is transient
    assert error.status_code == status


def test_unknown_status_gets_generic_message():
    assert classify_status(418).user_message == "Network error (418). Please try again."


def test_detail_string_body():
    message, details = parse_error_body(json.dumps({"detail": "Model unavailable"}))
    assert message == "Model unavailable"
    assert details is None


def test_detail_list_without_msg():
    message, details = parse_error_body(json.dumps({"detail": [{"loc": ["ph"]}]}))
    assert details == ["Validation error"]
    assert message == "Input validation failed: Validation error"


def test_unrecognized_body():
    assert parse_error_body(json.dumps({"message": "?"})) == (None, None)
    assert parse_error_body("not json") == (None, None)


def test_technical_message_kept_separate():
    error = classify_status(503, "upstream connect error")
    assert "upstream connect error" in error.message
    assert error.user_message == "Service unavailable. Please try again later."


def test_linear_delay():
    assert [linear_delay(n) for n in (1, 2, 3)] == [1.0, 2.0, 3.0]


def test_policy_requires_an_attempt():
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)


@pytest.mark.asyncio
async def test_retry_until_success():
    sleep = RecordingSleep()
    seen = []

    async def operation(attempt):
        seen.append(attempt)
        if attempt < 2:
            raise ConnectionError("down")
        return "ok"

    result = await retry_async(operation, RetryPolicy(max_attempts=3), lambda e: True, sleep=sleep)

    assert result == "ok"
    assert seen == [0, 1, 2]
    assert sleep.delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_retry_reraises_last_error():
    sleep = RecordingSleep()

    async def operation(attempt):
        raise ConnectionError(f"down {attempt}")

    with pytest.raises(ConnectionError, match="down 1"):
        await retry_async(operation, RetryPolicy(max_attempts=2), lambda e: True, sleep=sleep)
    assert sleep.delays == [1.0]


@pytest.mark.asyncio
async def test_non_retryable_error_propagates_immediately():
    sleep = RecordingSleep()
    calls = []

    async def operation(attempt):
        calls.append(attempt)
        raise PredictionServiceError(ErrorType.CLIENT_ERROR, "400", "bad")

    with pytest.raises(PredictionServiceError):
        await retry_async(
            operation, RetryPolicy(max_attempts=5), lambda e: e.is_transient, sleep=sleep
        )
    assert calls == [0]
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_custom_delay_function():
    sleep = RecordingSleep()

    async def operation(attempt):
        raise TimeoutError()

    policy = RetryPolicy(max_attempts=4, delay=lambda n: 2 ** (n - 1))
    with pytest.raises(TimeoutError):
        await retry_async(operation, policy, lambda e: True, sleep=sleep)
    assert sleep.delays == [1, 2, 4]
