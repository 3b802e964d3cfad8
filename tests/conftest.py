import base64
from typing import Callable, Dict, List, Optional, Any

import pytest

from lookbook.api.base import (
    Artifact,
    BaseGenerativeProvider,
    ImageRequest,
    OperationHandle,
    PollResult,
    VideoRequest,
)
from lookbook.core.config import Config


def image_response(payload: str, mime_type: str = "image/png") -> Dict[str, Any]:
    data = base64.b64encode(payload.encode()).decode()
    return {"candidates": [{"content": {"parts": [{"inlineData": {"mimeType": mime_type, "data": data}}]}}]}


def decode(artifact: Artifact) -> str:
    return base64.b64decode(artifact.base64_data).decode()


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeProvider(BaseGenerativeProvider):
    """In-process provider with scriptable responses."""

    def __init__(self, api_key: Optional[str] = "test-key", **kwargs):
        super().__init__(api_key=api_key, **kwargs)
        self.image_requests: List[ImageRequest] = []
        self.video_requests: List[VideoRequest] = []
        self.polls: List[str] = []
        # Return an exception to raise it, a dict to answer with it, None for the default image
        self.on_image: Optional[Callable[[ImageRequest], Any]] = None
        self.polls_until_done = 1
        self.video_uri: Optional[str] = "https://videos.example/clip.mp4"
        self.credential_requests = 0

    @property
    def provider_name(self) -> str:
        return "Fake"

    @property
    def env_key_name(self) -> str:
        return "LOOKBOOK_FAKE_KEY"

    def _get_default_base_url(self) -> str:
        return "https://fake.example/v1"

    async def generate_image(self, request: ImageRequest) -> Dict[str, Any]:
        self.image_requests.append(request)
        outcome = self.on_image(request) if self.on_image else None
        if hasattr(outcome, "__await__"):
            outcome = await outcome
        if isinstance(outcome, Exception):
            raise outcome
        if outcome is not None:
            return outcome
        return image_response(f"image-{len(self.image_requests)}")

    def extract_image(self, response: Dict[str, Any]) -> Optional[Artifact]:
        for part in response.get("candidates", [{}])[0].get("content", {}).get("parts", []):
            inline = part.get("inlineData")
            if inline:
                return Artifact.from_base64(inline["data"], inline["mimeType"])
        return None

    async def submit_video(self, request: VideoRequest) -> OperationHandle:
        self.video_requests.append(request)
        return OperationHandle(name=f"operations/{len(self.video_requests)}", provider=self.provider_name)

    async def poll_operation(self, handle: OperationHandle) -> PollResult:
        self.polls.append(handle.name)
        if len(self.polls) < self.polls_until_done:
            return PollResult(done=False)
        artifact = Artifact(uri=self.video_uri, mime_type="video/mp4") if self.video_uri else None
        return PollResult(done=True, artifact=artifact)

    async def download(self, artifact: Artifact) -> bytes:
        return b"bytes"

    def request_credential(self) -> bool:
        self.credential_requests += 1
        return super().request_credential()


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def config():
    return Config.from_dict({
        "retry": {"max_attempts": 3, "base_delay": 1.0, "hint_padding": 5.0},
        "extraction": {"pacing_delay": 4.0},
        "video": {"poll_interval": 10.0, "max_polls": 5},
        "progress": {"tick_interval": 0.01, "reset_delay": 0.01},
    })


@pytest.fixture
def model_image():
    return Artifact.from_base64(base64.b64encode(b"model").decode())


@pytest.fixture
def product_image():
    return Artifact.from_base64(base64.b64encode(b"product").decode())
