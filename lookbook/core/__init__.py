"""
Core Module
===========

Configuration, exceptions and security helpers for lookbook.
"""

from .config import (
    Config,
    ProviderConfig,
    RetryConfig,
    ImageConfig,
    VideoConfig,
    ExtractionConfig,
    ProgressConfig,
    get_config,
    set_config,
    reset_config,
)
from .exceptions import (
    LookbookError,
    ConfigurationError,
    ProviderError,
    RateLimitError,
    TransientNetworkError,
    MissingCredentialError,
    MissingArtifactError,
    MissingInputError,
    ExhaustedError,
    OperationFailedError,
    OperationTimeoutError,
    StageLockedError,
    SceneTaskError,
)
from .security import sanitize_prompt, redact_api_key

__all__ = [
    # Configuration
    "Config",
    "ProviderConfig",
    "RetryConfig",
    "ImageConfig",
    "VideoConfig",
    "ExtractionConfig",
    "ProgressConfig",
    "get_config",
    "set_config",
    "reset_config",
    # Exceptions
    "LookbookError",
    "ConfigurationError",
    "ProviderError",
    "RateLimitError",
    "TransientNetworkError",
    "MissingCredentialError",
    "MissingArtifactError",
    "MissingInputError",
    "ExhaustedError",
    "OperationFailedError",
    "OperationTimeoutError",
    "StageLockedError",
    "SceneTaskError",
    # Security
    "sanitize_prompt",
    "redact_api_key",
]
