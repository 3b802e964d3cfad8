"""
Lookbook
========

Turns a model photo and a product photo into nine styled, branded and
optionally animated storyboard scenes by driving a rate-limited generative
service.

Features:
- Upload -> Refine -> Storyboard -> Results stage machine gated on artifacts
- Retry with provider-suggested or exponential backoff on quota errors
- Sequential, paced extraction of the 3x3 storyboard cells
- Per-scene image-to-video and upscaling
- Cosmetic progress for calls of unknown duration

Quick Start:
    from lookbook import (
        CustomizationOptions, StageOrchestrator, get_provider, load_image_artifact,
    )

    async with get_provider("gemini") as provider:
        studio = StageOrchestrator(provider)
        studio.set_model_image(load_image_artifact("model.png"))
        studio.set_product_image(load_image_artifact("dress.png"))

        await studio.combine()
        await studio.refine(CustomizationOptions(neon_text="LUXE"))
        await studio.generate_storyboard(neon_text="LUXE")
        report = await studio.extract_scenes()
        await studio.generate_scene_video(0, "slow dolly in")
"""

__version__ = "0.1.0"

from .core.config import Config, get_config
from .core.exceptions import (
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
from .api import Artifact, get_provider, list_providers
from .context import Session, Scene, Stage, StageRequest, OperationKind, CustomizationOptions
from .workflow import (
    StageOrchestrator,
    RemoteCallExecutor,
    RetryPolicy,
    ExtractionScheduler,
    ExtractionReport,
    SceneTaskRunner,
    ProgressEstimator,
)
from .utils import load_image_artifact

__all__ = [
    "__version__",
    # Core
    "Config",
    "get_config",
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
    # API
    "Artifact",
    "get_provider",
    "list_providers",
    # Context
    "Session",
    "Scene",
    "Stage",
    "StageRequest",
    "OperationKind",
    "CustomizationOptions",
    # Workflow
    "StageOrchestrator",
    "RemoteCallExecutor",
    "RetryPolicy",
    "ExtractionScheduler",
    "ExtractionReport",
    "SceneTaskRunner",
    "ProgressEstimator",
    # Utilities
    "load_image_artifact",
]
