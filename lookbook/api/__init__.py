"""
API Integration Layer
=====================

Capability interface to the remote generative service.

Usage:
    from lookbook.api import get_provider

    provider = get_provider("gemini")
    response = await provider.generate_image(request)
    artifact = provider.extract_image(response)
"""

from .base import (
    Artifact,
    BaseGenerativeProvider,
    ImageRequest,
    VideoRequest,
    OperationHandle,
    PollResult,
)
from .factory import get_provider, list_providers, register_provider
from .gemini import GeminiProvider

__all__ = [
    "Artifact",
    "BaseGenerativeProvider",
    "ImageRequest",
    "VideoRequest",
    "OperationHandle",
    "PollResult",
    "GeminiProvider",
    "get_provider",
    "list_providers",
    "register_provider",
]
