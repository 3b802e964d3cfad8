"""
Custom Exceptions
=================

Unified exception hierarchy for the lookbook pipeline.

The classes map onto the failure taxonomy the executor and orchestrator
reason about: rate limiting, transient transport failures, missing
credentials, missing payloads, unmet preconditions and exhausted retries.
"""

from typing import Optional, Dict, Any


class LookbookError(Exception):
    """Base exception for all lookbook errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        self.recoverable = recoverable

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


class ConfigurationError(LookbookError):
    """Configuration-related errors."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        expected_type: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if config_key:
            details["config_key"] = config_key
        if expected_type:
            details["expected_type"] = expected_type
        super().__init__(message, details=details, **kwargs)


class ProviderError(LookbookError):
    """Provider/API-related errors."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if provider:
            details["provider"] = provider
        if status_code:
            details["status_code"] = status_code
        if response_body:
            details["response_body"] = response_body[:500] if len(response_body) > 500 else response_body

        self.status_code = status_code
        recoverable = kwargs.pop("recoverable", status_code in (429, 500, 502, 503, 504) if status_code else False)
        super().__init__(message, recoverable=recoverable, details=details, **kwargs)


class RateLimitError(ProviderError):
    """Quota exhausted / HTTP 429 responses."""

    def __init__(
        self,
        message: str,
        retry_after: Optional[float] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if retry_after:
            details["retry_after_seconds"] = retry_after
        self.retry_after = retry_after
        kwargs.setdefault("status_code", 429)
        super().__init__(message, recoverable=True, details=details, **kwargs)


class TransientNetworkError(ProviderError):
    """Connection resets, timeouts and 5xx responses."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, recoverable=True, **kwargs)


class OperationFailedError(ProviderError):
    """A long-running operation reached ``done`` carrying an error; polling again cannot help."""

    def __init__(self, message: str, operation_name: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if operation_name:
            details["operation_name"] = operation_name
        super().__init__(message, recoverable=False, details=details, **kwargs)


class MissingCredentialError(LookbookError):
    """No API key is available; the caller must supply one before retrying."""

    def __init__(self, message: str, env_key: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if env_key:
            details["env_key"] = env_key
        super().__init__(message, recoverable=False, details=details, **kwargs)


class MissingArtifactError(LookbookError):
    """The service answered without the expected image or video payload."""

    def __init__(self, message: str, operation: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if operation:
            details["operation"] = operation
        super().__init__(message, recoverable=False, details=details, **kwargs)


class MissingInputError(LookbookError):
    """A precondition artifact or parameter is absent, so no call was issued."""

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        self.field = field
        super().__init__(message, recoverable=False, details=details, **kwargs)


class ExhaustedError(LookbookError):
    """Every retry attempt was consumed without success."""

    def __init__(self, message: str, attempts: int = 0, **kwargs):
        details = kwargs.pop("details", {})
        details["attempts"] = attempts
        self.attempts = attempts
        super().__init__(message, recoverable=True, details=details, **kwargs)


class OperationTimeoutError(LookbookError):
    """A long-running remote operation did not finish within its poll budget."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if operation:
            details["operation"] = operation
        if timeout_seconds:
            details["timeout_seconds"] = timeout_seconds
        super().__init__(message, recoverable=True, details=details, **kwargs)


class StageLockedError(LookbookError):
    """Navigation to a stage whose precondition artifact does not exist."""

    def __init__(self, message: str, stage: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if stage:
            details["stage"] = stage
        super().__init__(message, recoverable=False, details=details, **kwargs)


class SceneTaskError(LookbookError):
    """Failure of a per-scene task, scoped to a single scene."""

    def __init__(self, message: str, scene_id: int, operation: str, **kwargs):
        details = kwargs.pop("details", {})
        details["scene_id"] = scene_id
        details["operation"] = operation
        self.scene_id = scene_id
        self.operation = operation
        super().__init__(message, recoverable=True, details=details, **kwargs)
