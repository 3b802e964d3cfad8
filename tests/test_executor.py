import asyncio

import httpx
import pytest

from lookbook.core.exceptions import (
    ExhaustedError,
    MissingArtifactError,
    MissingCredentialError,
    OperationFailedError,
    RateLimitError,
    TransientNetworkError,
)
from lookbook.workflow.executor import (
    FailureClassification,
    RemoteCallExecutor,
    RetryPolicy,
    classify_failure,
    parse_retry_hint,
)


class ScriptedOperation:
    """Raises the scripted errors in order, then returns ``result``."""

    def __init__(self, errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


class Credentials:
    def __init__(self, available):
        self.available = available
        self.requests = 0
        self.credential_env = "LOOKBOOK_TEST_KEY"

    def has_credential(self):
        return self.available

    def request_credential(self):
        self.requests += 1
        return self.available


def make_executor(sleep, **policy):
    return RemoteCallExecutor(RetryPolicy(**policy), sleep=sleep)


def test_parse_retry_hint():
    assert parse_retry_hint("Quota exceeded. Please retry in 12.5s.") == 12.5
    assert parse_retry_hint("RESOURCE_EXHAUSTED: Retry in 3 s") == 3.0
    assert parse_retry_hint("quota exceeded") is None


def test_classify_rate_limit_from_message():
    verdict = classify_failure(RuntimeError("429 Too Many Requests, retry in 2s"))
    assert verdict == FailureClassification(retryable=True, wait_hint=2.0, reason="rate_limited")


def test_classify_rate_limit_uses_retry_after():
    verdict = classify_failure(RateLimitError("slow down", retry_after=30))
    assert verdict.retryable
    assert verdict.wait_hint == 30


def test_classify_other_errors():
    assert classify_failure(ValueError("bad prompt")).retryable is False
    assert classify_failure(MissingCredentialError("no key")).reason == "credential"
    assert classify_failure(TransientNetworkError("reset")).reason == "transient"
    assert classify_failure(httpx.ConnectError("refused")).retryable


def test_succeeds_first_try_without_sleeping(sleep):
    executor = make_executor(sleep)
    operation = ScriptedOperation([])

    assert asyncio.run(executor.execute_with_retry(operation)) == "ok"
    assert operation.calls == 1
    assert sleep.delays == []


def test_waits_hint_plus_padding_then_succeeds(sleep):
    executor = make_executor(sleep, max_attempts=6, base_delay=15.0)
    error = RateLimitError("429 RESOURCE_EXHAUSTED. Please retry in 3s.")
    operation = ScriptedOperation([error, error], result="image")

    assert asyncio.run(executor.execute_with_retry(operation)) == "image"
    assert operation.calls == 3
    assert sleep.delays == [8.0, 8.0]


def test_exponential_backoff_without_hint(sleep):
    executor = make_executor(sleep, max_attempts=4, base_delay=1.0)
    operation = ScriptedOperation([RuntimeError("quota exceeded")] * 4)

    with pytest.raises(ExhaustedError) as exc_info:
        asyncio.run(executor.execute_with_retry(operation))

    assert operation.calls == 4
    assert sleep.delays == [1.0, 2.0, 4.0]
    assert exc_info.value.attempts == 4
    assert "quota exceeded" in str(exc_info.value.__cause__)


def test_max_attempts_override(sleep):
    executor = make_executor(sleep, max_attempts=6, base_delay=1.0)
    operation = ScriptedOperation([RateLimitError("429")] * 6)

    with pytest.raises(ExhaustedError):
        asyncio.run(executor.execute_with_retry(operation, max_attempts=2))

    assert operation.calls == 2
    assert sleep.delays == [1.0]


def test_non_retryable_error_propagates_unchanged(sleep):
    executor = make_executor(sleep)
    error = ValueError("safety filter rejected the prompt")
    operation = ScriptedOperation([error])

    with pytest.raises(ValueError) as exc_info:
        asyncio.run(executor.execute_with_retry(operation))

    assert exc_info.value is error
    assert operation.calls == 1
    assert sleep.delays == []


def test_failed_operation_is_not_retried_even_when_it_mentions_quota(sleep):
    executor = make_executor(sleep)
    error = OperationFailedError("Video operation failed: 429 quota exceeded", status_code=429)
    operation = ScriptedOperation([error])

    with pytest.raises(OperationFailedError) as exc_info:
        asyncio.run(executor.execute_with_retry(operation, label="video poll"))

    assert exc_info.value is error
    assert operation.calls == 1
    assert sleep.delays == []
    assert classify_failure(error) == FailureClassification(retryable=False, reason="operation_failed")


def test_transient_errors_retry_unless_disabled(sleep):
    executor = make_executor(sleep, base_delay=2.0)
    operation = ScriptedOperation([TransientNetworkError("connection reset")])
    assert asyncio.run(executor.execute_with_retry(operation)) == "ok"
    assert sleep.delays == [2.0]

    strict = make_executor(sleep, retry_transient=False)
    operation = ScriptedOperation([TransientNetworkError("connection reset")])
    with pytest.raises(TransientNetworkError):
        asyncio.run(strict.execute_with_retry(operation))
    assert operation.calls == 1


def test_missing_payload_is_not_retried(sleep):
    executor = make_executor(sleep)
    operation = ScriptedOperation([], result={"candidates": []})

    with pytest.raises(MissingArtifactError):
        asyncio.run(executor.execute_with_retry(operation, extract=lambda r: None, label="combine"))

    assert operation.calls == 1
    assert sleep.delays == []


def test_extract_returns_payload(sleep):
    executor = make_executor(sleep)
    operation = ScriptedOperation([], result={"payload": "cell"})

    result = asyncio.run(executor.execute_with_retry(operation, extract=lambda r: r["payload"]))

    assert result == "cell"


def test_missing_credential_blocks_the_call(sleep):
    credentials = Credentials(available=False)
    executor = RemoteCallExecutor(RetryPolicy(), credentials=credentials, sleep=sleep)
    operation = ScriptedOperation([])

    with pytest.raises(MissingCredentialError) as exc_info:
        asyncio.run(executor.execute_with_retry(operation))

    assert operation.calls == 0
    assert credentials.requests == 1
    assert exc_info.value.details["env_key"] == "LOOKBOOK_TEST_KEY"


def test_credential_error_during_call_is_not_retried(sleep):
    executor = make_executor(sleep)
    operation = ScriptedOperation([MissingCredentialError("API key invalid")])

    with pytest.raises(MissingCredentialError):
        asyncio.run(executor.execute_with_retry(operation))

    assert operation.calls == 1


def test_custom_classifier(sleep):
    def retry_everything(error):
        return FailureClassification(retryable=True, wait_hint=0.0)

    executor = RemoteCallExecutor(
        RetryPolicy(max_attempts=3, hint_padding=1.0, classifier=retry_everything),
        sleep=sleep,
    )
    operation = ScriptedOperation([ValueError("a"), ValueError("b")])

    assert asyncio.run(executor.execute_with_retry(operation)) == "ok"
    assert sleep.delays == [1.0, 1.0]
