"""
Scene Tasks
===========

On-demand work on a single extracted scene: image-to-video and upscaling.

Tasks on different scenes run concurrently with each other and with the
extraction loop. The only guard is the scene's own busy flag for that
operation, so a second request of the same kind on the same scene is
skipped while the first is running.
"""

import asyncio
import logging
from typing import Optional, Callable, Awaitable

from ..api.base import Artifact, BaseGenerativeProvider, OperationHandle
from ..context.requests import StageRequest, DEFAULT_MOTION_PROMPT
from ..context.session import Session
from ..core.config import ImageConfig, VideoConfig
from ..core.exceptions import MissingArtifactError, OperationTimeoutError, SceneTaskError
from ..core.security import redact_api_key
from .executor import RemoteCallExecutor

logger = logging.getLogger(__name__)


class SceneTaskRunner:
    """Runs video generation and upscaling against one session's scenes."""

    def __init__(
        self,
        session: Session,
        provider: BaseGenerativeProvider,
        executor: RemoteCallExecutor,
        image_config: Optional[ImageConfig] = None,
        video_config: Optional[VideoConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.session = session
        self.provider = provider
        self.executor = executor
        self.image_config = image_config or ImageConfig()
        self.video_config = video_config or VideoConfig()
        self._sleep = sleep

    # -------------------------------------------------------------------------
    # Video
    # -------------------------------------------------------------------------

    async def generate_video(
        self,
        scene_id: int,
        motion_prompt: str = DEFAULT_MOTION_PROMPT,
    ) -> Optional[Artifact]:
        """
        Animate a scene's image.

        Returns:
            The video artifact, or None when the scene has no image yet or
            a video job for it is already running

        Raises:
            SceneTaskError: The job failed; only this scene is affected
        """
        scene = self.session.scene(scene_id)
        if scene.image is None:
            logger.info(f"Scene {scene_id} has no image, skipping video")
            return None
        if scene.is_generating_video:
            logger.warning(f"Scene {scene_id} already generating video, skipping")
            return None

        request = StageRequest.video(scene.image, motion_prompt).to_video_request(self.video_config)
        self.session.update_scene(scene_id, is_generating_video=True)

        try:
            handle = await self.executor.execute_with_retry(
                lambda: self.provider.submit_video(request),
                label=f"scene {scene_id} video submit",
            )
            video = await self._wait_for_video(scene_id, handle)
        except Exception as e:
            self.session.update_scene(scene_id, is_generating_video=False)
            logger.error(f"Scene {scene_id} video failed: {redact_api_key(str(e))}")
            raise SceneTaskError(
                f"Video generation failed for scene {scene_id}: {e}",
                scene_id=scene_id,
                operation="generate_video",
            ) from e

        self.session.update_scene(scene_id, video_url=video, is_generating_video=False)
        logger.info(f"Scene {scene_id} video ready")
        return video

    async def _wait_for_video(self, scene_id: int, handle: OperationHandle) -> Artifact:
        """Poll until the operation is done, up to ``max_polls`` polls."""
        interval = self.video_config.poll_interval
        max_polls = self.video_config.max_polls

        for poll in range(max_polls):
            await self._sleep(interval)
            status = await self.executor.execute_with_retry(
                lambda: self.provider.poll_operation(handle),
                label=f"scene {scene_id} video poll",
            )
            if status.done:
                if status.artifact is None:
                    raise MissingArtifactError(
                        f"Video operation {handle.name} finished without a video",
                        operation="generate_video",
                    )
                return status.artifact
            logger.debug(f"Scene {scene_id} video pending (poll {poll + 1}/{max_polls})")

        raise OperationTimeoutError(
            f"Video operation {handle.name} not done after {max_polls} polls",
            operation="generate_video",
            timeout_seconds=interval * max_polls,
        )

    # -------------------------------------------------------------------------
    # Upscale
    # -------------------------------------------------------------------------

    async def upscale(self, scene_id: int) -> Optional[Artifact]:
        """
        Replace a scene's image with a higher resolution rendition.

        Returns:
            The upscaled artifact, or None when there is nothing to do

        Raises:
            SceneTaskError: The call failed; the original image is kept
        """
        scene = self.session.scene(scene_id)
        if scene.image is None:
            logger.info(f"Scene {scene_id} has no image, skipping upscale")
            return None
        if scene.is_upscaling:
            logger.warning(f"Scene {scene_id} already upscaling, skipping")
            return None

        request = StageRequest.upscale(scene.image).to_image_request(self.image_config)
        self.session.update_scene(scene_id, is_upscaling=True)

        try:
            image = await self.executor.execute_with_retry(
                lambda: self.provider.generate_image(request),
                extract=self.provider.extract_image,
                label=f"scene {scene_id} upscale",
            )
        except Exception as e:
            self.session.update_scene(scene_id, is_upscaling=False)
            logger.error(f"Scene {scene_id} upscale failed: {redact_api_key(str(e))}")
            raise SceneTaskError(
                f"Upscale failed for scene {scene_id}: {e}",
                scene_id=scene_id,
                operation="upscale",
            ) from e

        self.session.update_scene(scene_id, image=image, is_upscaling=False)
        logger.info(f"Scene {scene_id} upscaled")
        return image
