"""
Remote Call Executor
====================

Runs one remote operation with classification-driven retry.

Rate-limited failures wait for the provider's suggested delay (plus a
padding) or for an exponential backoff, then retry. Everything the
classifier does not mark retryable propagates unchanged on the first
failure.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Optional, Callable, Awaitable, TypeVar, Any

import httpx

from ..core.config import RetryConfig
from ..core.exceptions import (
    ExhaustedError,
    MissingArtifactError,
    MissingCredentialError,
    OperationFailedError,
    RateLimitError,
    TransientNetworkError,
)
from ..core.security import redact_api_key

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# Failure Classification
# =============================================================================


RATE_LIMIT_MARKERS = ("429", "quota", "resource_exhausted", "resource exhausted")

RETRY_HINT_PATTERN = re.compile(r"retry in\s+(\d+(?:\.\d+)?)\s*s", re.IGNORECASE)


@dataclass(frozen=True)
class FailureClassification:
    """Verdict on one failed attempt."""

    retryable: bool
    wait_hint: Optional[float] = None
    reason: str = "other"


def parse_retry_hint(text: str) -> Optional[float]:
    """Extract a "retry in N s" duration from an error message."""
    match = RETRY_HINT_PATTERN.search(text or "")
    if match:
        return float(match.group(1))
    return None


def is_rate_limited(error: BaseException) -> bool:
    if isinstance(error, RateLimitError):
        return True
    text = str(error).lower()
    return any(marker in text for marker in RATE_LIMIT_MARKERS)


def classify_failure(error: BaseException) -> FailureClassification:
    """
    Default classifier.

    Rate limiting is retryable with an optional hint. Transport failures
    are retryable without a hint. Missing credentials and operations that
    already finished in failure never are, whatever their message says.
    """
    if isinstance(error, MissingCredentialError):
        return FailureClassification(retryable=False, reason="credential")
    if isinstance(error, OperationFailedError):
        return FailureClassification(retryable=False, reason="operation_failed")

    if is_rate_limited(error):
        hint = parse_retry_hint(str(error))
        if hint is None and isinstance(error, RateLimitError):
            hint = error.retry_after
        return FailureClassification(retryable=True, wait_hint=hint, reason="rate_limited")

    if isinstance(error, (TransientNetworkError, httpx.TransportError)):
        return FailureClassification(retryable=True, reason="transient")

    return FailureClassification(retryable=False, reason="other")


@dataclass
class RetryPolicy:
    """How many attempts to make and how long to wait between them."""

    max_attempts: int = 6
    base_delay: float = 15.0
    hint_padding: float = 5.0
    retry_transient: bool = True
    classifier: Callable[[BaseException], FailureClassification] = classify_failure

    @classmethod
    def from_config(cls, config: RetryConfig) -> "RetryPolicy":
        return cls(
            max_attempts=config.max_attempts,
            base_delay=config.base_delay,
            hint_padding=config.hint_padding,
            retry_transient=config.retry_transient,
        )

    def classify(self, error: BaseException) -> FailureClassification:
        verdict = self.classifier(error)
        if verdict.reason == "transient" and not self.retry_transient:
            return FailureClassification(retryable=False, reason="transient")
        return verdict

    def delay_for(self, attempt: int, verdict: FailureClassification) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (0-based)."""
        if verdict.wait_hint is not None:
            return verdict.wait_hint + self.hint_padding
        return self.base_delay * (2 ** attempt)


# =============================================================================
# Executor
# =============================================================================


class RemoteCallExecutor:
    """
    Executes remote operations with retry.

    Shared by every stage, by the extraction scheduler and by scene tasks.
    Holds no per-call state, so concurrent calls do not interfere.
    """

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        credentials: Optional[Any] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the executor.

        Args:
            policy: Retry policy (defaults to 6 attempts, 15s base delay)
            credentials: Object with has_credential()/request_credential(),
                usually the provider
            sleep: Awaitable sleep used between attempts
        """
        self.policy = policy or RetryPolicy()
        self.credentials = credentials
        self._sleep = sleep

    def ensure_credential(self) -> None:
        """Fail before any call is issued when no credential is available."""
        if self.credentials is None or self.credentials.has_credential():
            return
        self.credentials.request_credential()
        if not self.credentials.has_credential():
            raise MissingCredentialError(
                "An API key is required before any remote call can be made",
                env_key=getattr(self.credentials, "credential_env", None),
            )

    async def execute_with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        max_attempts: Optional[int] = None,
        extract: Optional[Callable[[T], Any]] = None,
        label: str = "remote call",
    ) -> Any:
        """
        Run ``operation`` until it succeeds, fails permanently or runs out
        of attempts.

        Args:
            operation: Zero-argument coroutine factory, invoked once per attempt
            max_attempts: Override for the policy's attempt count
            extract: Payload recognizer applied to a successful result;
                returning None raises MissingArtifactError (not retried)
            label: Name used in log lines and errors

        Returns:
            The extracted payload, or the raw result when no extractor is given

        Raises:
            ExhaustedError: All attempts failed with retryable errors
            MissingArtifactError: The result carried no payload
            MissingCredentialError: No credential was available
        """
        attempts = max_attempts or self.policy.max_attempts
        self.ensure_credential()

        last_error: Optional[BaseException] = None
        result = None
        succeeded = False

        for attempt in range(attempts):
            try:
                logger.debug(f"{label}: attempt {attempt + 1}/{attempts}")
                result = await operation()
                succeeded = True
                break
            except Exception as e:
                verdict = self.policy.classify(e)
                if not verdict.retryable:
                    logger.error(f"{label} failed ({verdict.reason}): {redact_api_key(str(e))}")
                    raise

                last_error = e
                if attempt + 1 >= attempts:
                    break

                delay = self.policy.delay_for(attempt, verdict)
                logger.warning(
                    f"{label}: {verdict.reason} on attempt {attempt + 1}/{attempts}, "
                    f"retrying in {delay:.1f}s"
                )
                await self._sleep(delay)

        if not succeeded:
            logger.error(f"{label}: giving up after {attempts} attempts")
            raise ExhaustedError(
                f"{label} failed after {attempts} attempts: {redact_api_key(str(last_error))}",
                attempts=attempts,
            ) from last_error

        if extract is None:
            return result

        payload = extract(result)
        if payload is None:
            raise MissingArtifactError(f"{label} returned no payload", operation=label)
        return payload
