"""
Gemini Provider
===============

Direct integration with the Generative Language REST API.

Features:
- Multi-image prompts for compositing, refining and cell extraction
- Output aspect ratio and size control (1K / 2K / 4K)
- Veo image-to-video through long-running operations
"""

import base64
import logging
from typing import Optional, Dict, Any, List

import httpx

from .base import (
    Artifact,
    BaseGenerativeProvider,
    ImageRequest,
    OperationHandle,
    PollResult,
    VideoRequest,
)
from .factory import register_provider
from ..core.exceptions import (
    MissingArtifactError,
    MissingCredentialError,
    OperationFailedError,
    ProviderError,
    RateLimitError,
    TransientNetworkError,
)
from ..core.security import redact_api_key

logger = logging.getLogger(__name__)


DEFAULT_IMAGE_MODEL = "gemini-3-pro-image-preview"
DEFAULT_VIDEO_MODEL = "veo-3.1-fast-generate-preview"


@register_provider("gemini")
class GeminiProvider(BaseGenerativeProvider):
    """
    Google Gemini image and Veo video provider.

    Every transport failure is translated into the lookbook error taxonomy
    so the executor can classify it.
    """

    @property
    def provider_name(self) -> str:
        return "Gemini"

    @property
    def env_key_name(self) -> str:
        return "GEMINI_API_KEY"

    def _get_default_base_url(self) -> str:
        return "https://generativelanguage.googleapis.com/v1beta"

    def _auth_headers(self) -> Dict[str, str]:
        if not self.api_key:
            raise MissingCredentialError(
                f"{self.provider_name} API key is not set",
                env_key=self.credential_env,
            )
        return {"x-goog-api-key": self.api_key}

    # -------------------------------------------------------------------------
    # Images
    # -------------------------------------------------------------------------

    async def generate_image(self, request: ImageRequest) -> Dict[str, Any]:
        """
        Generate an image from reference images plus an instruction.

        Args:
            request: Image request parameters

        Returns:
            Raw generateContent response
        """
        model = request.model or DEFAULT_IMAGE_MODEL
        endpoint = f"{self.base_url}/models/{model}:generateContent"

        parts: List[Dict[str, Any]] = [self._image_part(img) for img in request.images]
        parts.append({"text": request.prompt})

        payload = {
            "contents": [{"parts": parts}],
            "generationConfig": {
                "responseModalities": ["TEXT", "IMAGE"],
                "imageConfig": {
                    "aspectRatio": request.aspect_ratio,
                    "imageSize": request.image_size,
                },
            },
        }

        logger.info(f"Generating image with {model} ({request.image_size}, {request.aspect_ratio})")
        return await self._post(endpoint, payload, operation="generate_image")

    def extract_image(self, response: Dict[str, Any]) -> Optional[Artifact]:
        """Return the first inline image part of a generateContent response."""
        for candidate in response.get("candidates") or []:
            content = candidate.get("content") or {}
            for part in content.get("parts") or []:
                inline = part.get("inlineData") or part.get("inline_data")
                if inline and inline.get("data"):
                    mime_type = inline.get("mimeType") or inline.get("mime_type") or "image/png"
                    return Artifact.from_base64(inline["data"], mime_type)
        return None

    @staticmethod
    def _image_part(image: Artifact) -> Dict[str, Any]:
        if image.is_inline:
            return {"inlineData": {"mimeType": image.mime_type, "data": image.base64_data}}
        return {"fileData": {"mimeType": image.mime_type, "fileUri": image.uri}}

    # -------------------------------------------------------------------------
    # Video
    # -------------------------------------------------------------------------

    async def submit_video(self, request: VideoRequest) -> OperationHandle:
        """Start a Veo image-to-video operation."""
        model = request.model or DEFAULT_VIDEO_MODEL
        endpoint = f"{self.base_url}/models/{model}:predictLongRunning"

        start = request.start_image
        if not start.is_inline:
            raise MissingArtifactError(
                "Video generation needs an inline start image",
                operation="submit_video",
            )

        payload = {
            "instances": [{
                "prompt": request.motion_prompt,
                "image": {
                    "bytesBase64Encoded": start.base64_data,
                    "mimeType": start.mime_type,
                },
            }],
            "parameters": {
                "aspectRatio": request.aspect_ratio,
                "resolution": request.resolution,
                "sampleCount": 1,
            },
        }

        logger.info(f"Submitting video with {model} ({request.resolution}, {request.aspect_ratio})")
        data = await self._post(endpoint, payload, operation="submit_video")

        if not data.get("name"):
            raise MissingArtifactError("No operation name in response", operation="submit_video")
        return OperationHandle(name=data["name"], provider=self.provider_name)

    async def poll_operation(self, handle: OperationHandle) -> PollResult:
        """Check a Veo operation once."""
        endpoint = f"{self.base_url}/{handle.name}"
        data = await self._request("GET", endpoint, operation="poll_operation")

        if not data.get("done"):
            return PollResult(done=False, raw=data)

        if "error" in data:
            error = data["error"] or {}
            raise OperationFailedError(
                f"Video operation failed: {error.get('message', 'Unknown error')}",
                operation_name=handle.name,
                provider=self.provider_name,
                status_code=error.get("code"),
            )

        return PollResult(done=True, artifact=self._parse_video(data.get("response") or {}), raw=data)

    @staticmethod
    def _parse_video(response: Dict[str, Any]) -> Optional[Artifact]:
        """Find the video link in either the REST or the SDK response shape."""
        samples = (
            (response.get("generateVideoResponse") or {}).get("generatedSamples")
            or response.get("generatedVideos")
            or []
        )
        for sample in samples:
            uri = (sample.get("video") or {}).get("uri")
            if uri:
                return Artifact(uri=uri, mime_type="video/mp4")
        return None

    async def download(self, artifact: Artifact) -> bytes:
        """Download a video (or decode an inline image)."""
        if artifact.is_inline:
            return base64.b64decode(artifact.base64_data)

        client = await self._get_client()
        try:
            response = await client.get(artifact.uri, headers=self._auth_headers())
        except httpx.TransportError as e:
            raise TransientNetworkError(
                f"Download failed: {redact_api_key(str(e))}",
                provider=self.provider_name,
            ) from e

        if response.status_code != 200:
            self._raise_for_status(response, "download")
        return response.content

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    async def _post(self, endpoint: str, payload: Dict[str, Any], operation: str) -> Dict[str, Any]:
        return await self._request("POST", endpoint, operation=operation, json=payload)

    async def _request(self, method: str, endpoint: str, operation: str, **kwargs) -> Dict[str, Any]:
        headers = self._auth_headers()
        client = await self._get_client()

        try:
            response = await client.request(method, endpoint, headers=headers, **kwargs)
        except httpx.TransportError as e:
            raise TransientNetworkError(
                f"{operation} transport error: {redact_api_key(str(e))}",
                provider=self.provider_name,
            ) from e

        if response.status_code != 200:
            self._raise_for_status(response, operation)

        return response.json()

    def _raise_for_status(self, response: httpx.Response, operation: str) -> None:
        """Translate a non-200 response into the error taxonomy."""
        status = response.status_code
        body = redact_api_key(response.text)
        message = f"{operation} failed: {status} - {body[:500]}"

        if status == 429 or "RESOURCE_EXHAUSTED" in body:
            retry_after = None
            header = response.headers.get("retry-after")
            if header:
                try:
                    retry_after = float(header)
                except ValueError:
                    retry_after = None
            raise RateLimitError(
                message,
                retry_after=retry_after,
                provider=self.provider_name,
                response_body=body,
            )

        if status in (401, 403) and "api key" in body.lower():
            raise MissingCredentialError(message, env_key=self.credential_env)

        if status >= 500:
            raise TransientNetworkError(
                message,
                provider=self.provider_name,
                status_code=status,
                response_body=body,
            )

        raise ProviderError(
            message,
            provider=self.provider_name,
            status_code=status,
            response_body=body,
        )
