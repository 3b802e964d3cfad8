"""
Stage Orchestrator
==================

State machine driving a session through Upload -> Refine -> Storyboard ->
Results.

Each stage consumes the previous stage's artifact, so stage-level calls
are issued one at a time. A failed call leaves the stage and every stored
artifact untouched and re-raises for the caller to retry.
"""

import asyncio
import logging
from typing import Optional, List, Callable, Awaitable

from ..api.base import Artifact, BaseGenerativeProvider
from ..context.requests import CustomizationOptions, StageRequest, DEFAULT_MOTION_PROMPT
from ..context.session import Session, Stage, SCENE_COUNT
from ..core.config import Config
from ..core.exceptions import LookbookError, MissingInputError, StageLockedError
from .executor import RemoteCallExecutor, RetryPolicy
from .extraction import ExtractionReport, ExtractionScheduler
from .progress import ProgressEstimator
from .scene_tasks import SceneTaskRunner

logger = logging.getLogger(__name__)


class StageOrchestrator:
    """
    Main entry point for a lookbook run.

    Handles:
    - Stage gating on artifact presence
    - Stage-level calls with retry and progress indication
    - Extraction of the nine storyboard scenes
    - Per-scene video and upscale tasks
    """

    def __init__(
        self,
        provider: BaseGenerativeProvider,
        session: Optional[Session] = None,
        config: Optional[Config] = None,
        executor: Optional[RemoteCallExecutor] = None,
        progress: Optional[ProgressEstimator] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the orchestrator.

        Args:
            provider: Generative provider used for every remote call
            session: Session to drive (a fresh one by default)
            config: Configuration (defaults when omitted)
            executor: Shared executor (built from config.retry by default)
            progress: Progress indicator for stage-level calls
            sleep: Awaitable sleep used for backoff, pacing and polling
        """
        self.provider = provider
        self.session = session or Session()
        self.config = config or Config()
        self.executor = executor or RemoteCallExecutor(
            RetryPolicy.from_config(self.config.retry),
            credentials=provider,
            sleep=sleep,
        )
        self.progress = progress or ProgressEstimator.from_config(self.config.progress)
        self.last_error: Optional[Exception] = None
        self._stage_busy = False

        self.scheduler = ExtractionScheduler(
            self.session,
            provider,
            self.executor,
            image_config=self.config.image,
            pacing_delay=self.config.extraction.pacing_delay,
            sleep=sleep,
            on_cell_start=self._announce_cell,
        )
        self.scene_tasks = SceneTaskRunner(
            self.session,
            provider,
            self.executor,
            image_config=self.config.image,
            video_config=self.config.video,
            sleep=sleep,
        )

    @property
    def stage(self) -> Stage:
        return self.session.stage

    # -------------------------------------------------------------------------
    # Gating
    # -------------------------------------------------------------------------

    def is_unlocked(self, stage: Stage) -> bool:
        """Whether ``stage`` is reachable given the artifacts present."""
        if stage is Stage.UPLOAD:
            return True
        if stage is Stage.REFINE:
            return self.session.combined_image is not None
        if stage is Stage.STORYBOARD:
            return self.session.storyboard_grid is not None
        return self.session.has_scene_images()

    def unlocked_stages(self) -> List[Stage]:
        return [stage for stage in Stage if self.is_unlocked(stage)]

    def navigate(self, stage: Stage) -> None:
        """Move to an already reachable stage without issuing any call."""
        if not self.is_unlocked(stage):
            raise StageLockedError(f"Stage {stage.value} is not unlocked yet", stage=stage.value)
        self.session.set_stage(stage)

    # -------------------------------------------------------------------------
    # Inputs
    # -------------------------------------------------------------------------

    def set_model_image(self, artifact: Artifact) -> None:
        self.session.set_model_image(artifact)

    def set_product_image(self, artifact: Artifact) -> None:
        self.session.set_product_image(artifact)

    # -------------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------------

    async def combine(self, instruction: Optional[str] = None) -> Artifact:
        """Upload -> Refine: composite the product onto the model."""
        request = StageRequest.combine(
            self.session.model_image,
            self.session.product_image,
            instruction,
        )
        image = await self._run_stage(request, "Combining assets")
        self.session.set_combined_image(image)
        self.session.set_stage(Stage.REFINE)
        return image

    async def refine(self, options: Optional[CustomizationOptions] = None) -> Artifact:
        """Restyle the combined image in place; the stage does not change."""
        request = StageRequest.refine(self.session.combined_image, options or CustomizationOptions())
        image = await self._run_stage(request, "Refining image")
        self.session.set_combined_image(image)
        return image

    async def generate_storyboard(self, neon_text: str = "") -> Artifact:
        """Refine -> Storyboard: render the 3x3 grid."""
        request = StageRequest.storyboard(self.session.combined_image, neon_text)
        grid = await self._run_stage(request, "Building storyboard")
        self.session.set_storyboard_grid(grid)
        self.session.set_stage(Stage.STORYBOARD)
        return grid

    async def extract_scenes(self) -> ExtractionReport:
        """
        Storyboard -> Results: enter Results immediately, then extract the
        nine scenes sequentially.

        Refused with ``StageBusy`` while any scene video or upscale is running.
        """
        if self.session.storyboard_grid is None:
            raise MissingInputError("storyboard_grid is required to extract scenes", field="storyboard_grid")
        self.executor.ensure_credential()
        self.scheduler.check_idle()
        self._claim_pipeline()

        self.session.set_stage(Stage.RESULTS)
        try:
            report = await self.scheduler.run()
        finally:
            self._stage_busy = False
        if report.failures:
            failed = ", ".join(str(i) for i in sorted(report.failures))
            logger.warning(f"Scenes without images: {failed}")
        return report

    # -------------------------------------------------------------------------
    # Scene tasks
    # -------------------------------------------------------------------------

    async def generate_scene_video(
        self,
        scene_id: int,
        motion_prompt: str = DEFAULT_MOTION_PROMPT,
    ) -> Optional[Artifact]:
        return await self.scene_tasks.generate_video(scene_id, motion_prompt)

    async def upscale_scene(self, scene_id: int) -> Optional[Artifact]:
        return await self.scene_tasks.upscale(scene_id)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _run_stage(self, request: StageRequest, message: str) -> Artifact:
        """Issue one stage-level call under the progress indicator."""
        image_request = request.to_image_request(self.config.image)
        self._claim_pipeline()
        try:
            async with self.progress.track(message):
                image = await self.executor.execute_with_retry(
                    lambda: self.provider.generate_image(image_request),
                    extract=self.provider.extract_image,
                    label=request.label,
                )
        except Exception as e:
            self.last_error = e
            logger.error(f"Stage {self.stage.value}: {request.label} failed, staying put")
            raise
        finally:
            self._stage_busy = False

        self.last_error = None
        return image

    def _claim_pipeline(self) -> None:
        if self._stage_busy:
            raise LookbookError("Another stage call is already running", code="StageBusy")
        self._stage_busy = True

    def _announce_cell(self, index: int) -> None:
        self.progress.set_message(f"Extracting scene {index + 1}/{SCENE_COUNT}")
