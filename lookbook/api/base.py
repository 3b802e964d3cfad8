"""
Base Generative Provider
========================

Abstract base class for the remote image/video generation service and the
opaque value types exchanged with it.
"""

import asyncio
import base64
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any

import httpx

logger = logging.getLogger(__name__)


DEFAULT_TIMEOUT = 120


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class Artifact:
    """
    Opaque reference to generated image or video content.

    Inline images are carried as ``data:`` URIs; videos are carried as the
    provider's download link.
    """

    uri: str
    mime_type: str = "image/png"

    @classmethod
    def from_base64(cls, data: str, mime_type: str = "image/png") -> "Artifact":
        return cls(uri=f"data:{mime_type};base64,{data}", mime_type=mime_type)

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: str = "image/png") -> "Artifact":
        return cls.from_base64(base64.b64encode(data).decode("utf-8"), mime_type)

    @property
    def is_inline(self) -> bool:
        return self.uri.startswith("data:")

    @property
    def base64_data(self) -> str:
        """Raw base64 payload of an inline artifact."""
        if not self.is_inline:
            raise ValueError("Artifact is not inline data")
        return self.uri.split(",", 1)[1]

    def __repr__(self) -> str:
        preview = self.uri if len(self.uri) <= 48 else self.uri[:45] + "..."
        return f"Artifact(uri={preview!r}, mime_type={self.mime_type!r})"


@dataclass
class ImageRequest:
    """Request parameters for image generation."""

    prompt: str
    images: List[Artifact] = field(default_factory=list)
    aspect_ratio: str = "9:16"
    image_size: str = "1K"
    model: Optional[str] = None


@dataclass
class VideoRequest:
    """Request parameters for image-to-video generation."""

    start_image: Artifact
    motion_prompt: str
    resolution: str = "720p"
    aspect_ratio: str = "9:16"
    model: Optional[str] = None


@dataclass(frozen=True)
class OperationHandle:
    """Handle of a long-running remote operation."""

    name: str
    provider: Optional[str] = None


@dataclass
class PollResult:
    """Result of one status check on a long-running operation."""

    done: bool = False
    artifact: Optional[Artifact] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def pending(self) -> bool:
        return not self.done


# =============================================================================
# Base Provider Class
# =============================================================================


class BaseGenerativeProvider(ABC):
    """
    Abstract base class for generative providers.

    Subclasses implement the transport; the workflow layer only relies on
    the capability methods declared here.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: int = DEFAULT_TIMEOUT,
        env_key_name: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the provider.

        Args:
            api_key: API key (or read from environment)
            base_url: Base URL for the API
            timeout: Request timeout in seconds
            env_key_name: Override for the environment variable holding the key
            transport: Optional httpx transport (used by tests)
        """
        self._env_key_override = env_key_name
        self.api_key = api_key or self._get_api_key_from_env()
        self.base_url = (base_url or self._get_default_base_url()).rstrip("/")
        self.timeout = timeout
        self._transport = transport

        self._client: Optional[httpx.AsyncClient] = None
        self._client_lock = asyncio.Lock()

        self._validate_config()

    # -------------------------------------------------------------------------
    # Abstract Methods (must be implemented by subclasses)
    # -------------------------------------------------------------------------

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @property
    @abstractmethod
    def env_key_name(self) -> str:
        """Return the default environment variable name for the API key."""
        pass

    @abstractmethod
    def _get_default_base_url(self) -> str:
        """Return the default base URL for this provider."""
        pass

    @abstractmethod
    async def generate_image(self, request: ImageRequest) -> Dict[str, Any]:
        """
        Issue one image generation call.

        Returns:
            Raw API response; use extract_image() to find the payload
        """
        pass

    @abstractmethod
    def extract_image(self, response: Dict[str, Any]) -> Optional[Artifact]:
        """Return the image payload of a response, or None if there is none."""
        pass

    @abstractmethod
    async def submit_video(self, request: VideoRequest) -> OperationHandle:
        """Start a long-running video generation job."""
        pass

    @abstractmethod
    async def poll_operation(self, handle: OperationHandle) -> PollResult:
        """Check a long-running job once."""
        pass

    @abstractmethod
    async def download(self, artifact: Artifact) -> bytes:
        """Fetch the bytes behind an artifact."""
        pass

    # -------------------------------------------------------------------------
    # Credentials
    # -------------------------------------------------------------------------

    @property
    def credential_env(self) -> str:
        return self._env_key_override or self.env_key_name

    def has_credential(self) -> bool:
        """Whether a remote call may be attempted at all."""
        return bool(self.api_key)

    def request_credential(self) -> bool:
        """
        Ask for a credential.

        Re-reads the environment so a key exported after start-up is picked
        up. Returns True when a key is now available.
        """
        if not self.api_key:
            self.api_key = self._get_api_key_from_env()
        if not self.api_key:
            logger.warning(
                f"No API key available for {self.provider_name}. "
                f"Set the {self.credential_env} environment variable."
            )
            return False
        return True

    def _get_api_key_from_env(self) -> Optional[str]:
        """Get API key from environment variable."""
        return os.getenv(self.credential_env)

    def _validate_config(self) -> None:
        """Validate the provider configuration."""
        if not self.api_key:
            logger.warning(
                f"No API key found for {self.provider_name}. "
                f"Set {self.credential_env} environment variable or pass api_key parameter."
            )

    # -------------------------------------------------------------------------
    # HTTP Client
    # -------------------------------------------------------------------------

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    timeout=httpx.Timeout(self.timeout),
                    headers=self._get_headers(),
                    transport=self._transport,
                    follow_redirects=True,
                )
            return self._client

    def _get_headers(self) -> Dict[str, str]:
        """Get default headers for requests."""
        return {
            "Content-Type": "application/json",
        }

    async def close(self) -> None:
        """Close the HTTP client."""
        async with self._client_lock:
            if self._client:
                await self._client.aclose()
                self._client = None

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
