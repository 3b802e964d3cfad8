"""
Configuration System
====================

Centralized, validated configuration management with typed dataclasses.
"""

import os
import re
import logging
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Optional, Dict, Any, Union
import yaml

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Dataclasses
# =============================================================================


@dataclass
class ProviderConfig:
    """Remote service settings."""

    name: str = "gemini"
    api_key_env: str = "GEMINI_API_KEY"
    base_url: Optional[str] = None
    timeout: int = 120

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Validate configuration values."""
        if not self.name:
            raise ConfigurationError("Provider name is required", config_key="provider.name")
        if self.timeout <= 0:
            raise ConfigurationError(
                f"timeout must be positive, got {self.timeout}",
                config_key="provider.timeout",
            )


@dataclass
class RetryConfig:
    """Retry and backoff settings for remote calls."""

    max_attempts: int = 6
    base_delay: float = 15.0
    hint_padding: float = 5.0
    retry_transient: bool = True

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Validate configuration values."""
        if not 1 <= self.max_attempts <= 10:
            raise ConfigurationError(
                f"max_attempts must be 1-10, got {self.max_attempts}",
                config_key="retry.max_attempts",
            )
        if self.base_delay < 0 or self.hint_padding < 0:
            raise ConfigurationError(
                "Delays must not be negative",
                config_key="retry.base_delay",
            )


@dataclass
class ImageConfig:
    """Image generation settings per operation."""

    model: str = "gemini-3-pro-image-preview"
    aspect_ratio: str = "9:16"
    image_size: str = "1K"
    storyboard_size: str = "2K"
    upscale_size: str = "4K"

    VALID_SIZES = {"1K", "2K", "4K"}
    VALID_ASPECT_RATIOS = {"1:1", "3:4", "4:3", "9:16", "16:9"}

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Validate configuration values."""
        for name, value in [
            ("image_size", self.image_size),
            ("storyboard_size", self.storyboard_size),
            ("upscale_size", self.upscale_size),
        ]:
            if value not in self.VALID_SIZES:
                raise ConfigurationError(
                    f"Invalid {name}: {value}",
                    config_key=f"image.{name}",
                )
        if self.aspect_ratio not in self.VALID_ASPECT_RATIOS:
            raise ConfigurationError(
                f"Invalid aspect ratio: {self.aspect_ratio}",
                config_key="image.aspect_ratio",
            )


@dataclass
class VideoConfig:
    """Scene video settings."""

    model: str = "veo-3.1-fast-generate-preview"
    resolution: str = "720p"
    aspect_ratio: str = "9:16"
    poll_interval: float = 10.0
    max_polls: int = 60

    VALID_RESOLUTIONS = {"720p", "1080p"}
    VALID_ASPECT_RATIOS = {"16:9", "9:16"}

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Validate configuration values."""
        if self.resolution not in self.VALID_RESOLUTIONS:
            raise ConfigurationError(
                f"Invalid resolution: {self.resolution}",
                config_key="video.resolution",
            )
        if self.aspect_ratio not in self.VALID_ASPECT_RATIOS:
            raise ConfigurationError(
                f"Invalid aspect ratio: {self.aspect_ratio}",
                config_key="video.aspect_ratio",
            )
        if self.max_polls < 1:
            raise ConfigurationError(
                f"max_polls must be at least 1, got {self.max_polls}",
                config_key="video.max_polls",
            )


@dataclass
class ExtractionConfig:
    """Storyboard cell extraction pacing."""

    pacing_delay: float = 8.0

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Validate configuration values."""
        if not 0 <= self.pacing_delay <= 60:
            raise ConfigurationError(
                f"pacing_delay must be 0-60 seconds, got {self.pacing_delay}",
                config_key="extraction.pacing_delay",
            )


@dataclass
class ProgressConfig:
    """Cosmetic progress indicator settings."""

    tick_interval: float = 0.2
    smoothing: float = 20.0
    epsilon: float = 0.1
    ceiling: float = 99.0
    reset_delay: float = 1.0

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Validate configuration values."""
        if not 0 < self.ceiling < 100:
            raise ConfigurationError(
                f"ceiling must be between 0 and 100 (exclusive), got {self.ceiling}",
                config_key="progress.ceiling",
            )
        if self.smoothing < 1:
            raise ConfigurationError(
                f"smoothing must be >= 1, got {self.smoothing}",
                config_key="progress.smoothing",
            )
        if self.tick_interval <= 0 or self.epsilon <= 0:
            raise ConfigurationError(
                "tick_interval and epsilon must be positive",
                config_key="progress.tick_interval",
            )


# =============================================================================
# Main Configuration Class
# =============================================================================


SECTIONS = ["provider", "retry", "image", "video", "extraction", "progress"]


@dataclass
class Config:
    """
    Main configuration container with validation and loading.

    Provides a unified interface to all configuration settings with:
    - Type-safe access to configuration values
    - Validation on load
    - Environment variable interpolation
    - Sensible defaults for all values
    """

    provider: ProviderConfig = field(default_factory=ProviderConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    image: ImageConfig = field(default_factory=ImageConfig)
    video: VideoConfig = field(default_factory=VideoConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    progress: ProgressConfig = field(default_factory=ProgressConfig)

    _raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> "Config":
        """
        Load configuration from file with environment variable interpolation.

        Args:
            path: Path to YAML config file (defaults.yaml)

        Returns:
            Validated Config instance
        """
        search_paths = [
            Path("./config/defaults.yaml"),
            Path("./defaults.yaml"),
            Path.home() / ".lookbook" / "config.yaml",
        ]

        if path:
            search_paths.insert(0, Path(path))

        config_data = {}

        for search_path in search_paths:
            if search_path.exists():
                logger.info(f"Loading config from: {search_path}")
                try:
                    with open(search_path, "r") as f:
                        config_data = yaml.safe_load(f) or {}
                    break
                except yaml.YAMLError as e:
                    raise ConfigurationError(
                        f"Invalid YAML in config file: {e}",
                        config_key=str(search_path),
                    )
        else:
            logger.info("No config file found, using defaults")

        config_data = cls._interpolate_env_vars(config_data)

        return cls.from_dict(config_data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create Config from dictionary with validation."""
        try:
            return cls(
                provider=ProviderConfig(**data.get("provider", {})),
                retry=RetryConfig(**data.get("retry", {})),
                image=ImageConfig(**data.get("image", {})),
                video=VideoConfig(**data.get("video", {})),
                extraction=ExtractionConfig(**data.get("extraction", {})),
                progress=ProgressConfig(**data.get("progress", {})),
                _raw=data,
            )
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration: {e}")

    @staticmethod
    def _interpolate_env_vars(data: Any) -> Any:
        """Recursively interpolate ${VAR} patterns with environment variables."""
        if isinstance(data, str):
            pattern = r"\$\{([^}:]+)(?::-([^}]*))?\}"

            def replace(match):
                var_name = match.group(1)
                default = match.group(2) or ""
                return os.environ.get(var_name, default)

            return re.sub(pattern, replace, data)
        elif isinstance(data, dict):
            return {k: Config._interpolate_env_vars(v) for k, v in data.items()}
        elif isinstance(data, list):
            return [Config._interpolate_env_vars(item) for item in data]
        return data

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return {section: asdict(getattr(self, section)) for section in SECTIONS}


# =============================================================================
# Convenience Functions
# =============================================================================


_global_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance (lazily loaded)."""
    global _global_config
    if _global_config is None:
        _global_config = Config.load()
    return _global_config


def set_config(config: Config) -> None:
    """Set the global configuration instance."""
    global _global_config
    _global_config = config


def reset_config() -> None:
    """Reset global configuration to None (forces reload on next access)."""
    global _global_config
    _global_config = None
