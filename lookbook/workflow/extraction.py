"""
Extraction Scheduler
====================

Turns one storyboard grid into nine scene images.

Cells are processed strictly one after another with a fixed pause between
calls so the sequence stays under the provider's rate limit. Running them
in parallel would exhaust the quota; keep this loop sequential.

Continuation policy is best-effort: a cell that still fails after the
executor's retries is recorded in the report and the scheduler moves on to
the next cell.

A run starts by clearing every scene, so it refuses to start while a video or
upscale job is still writing to one of them.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional, Dict, List, Callable, Awaitable

from ..api.base import BaseGenerativeProvider
from ..context.requests import StageRequest
from ..context.session import Session, SCENE_COUNT
from ..core.config import ImageConfig
from ..core.exceptions import LookbookError, MissingInputError
from ..core.security import redact_api_key
from .executor import RemoteCallExecutor

logger = logging.getLogger(__name__)


DEFAULT_PACING_DELAY = 8.0


@dataclass
class ExtractionReport:
    """Outcome of one extraction run."""

    completed: List[int] = field(default_factory=list)
    failures: Dict[int, Exception] = field(default_factory=dict)
    progress_history: List[int] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.failures and len(self.completed) == SCENE_COUNT


def progress_after(index: int) -> int:
    """Extraction progress once cell ``index`` has completed."""
    return round((index + 1) / SCENE_COUNT * 100)


class ExtractionScheduler:
    """Sequential, paced cell extraction."""

    def __init__(
        self,
        session: Session,
        provider: BaseGenerativeProvider,
        executor: RemoteCallExecutor,
        image_config: Optional[ImageConfig] = None,
        pacing_delay: float = DEFAULT_PACING_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        on_cell_start: Optional[Callable[[int], None]] = None,
    ):
        self.session = session
        self.provider = provider
        self.executor = executor
        self.image_config = image_config or ImageConfig()
        self.pacing_delay = pacing_delay
        self._sleep = sleep
        self._on_cell_start = on_cell_start

    async def run(self) -> ExtractionReport:
        """
        Extract all nine cells of the session's storyboard grid.

        Resets every scene first, then visits indices 0..8 in order.
        """
        grid = self.session.storyboard_grid
        if grid is None:
            raise MissingInputError("storyboard_grid is required to extract scenes", field="storyboard_grid")

        self.check_idle()
        self.session.begin_extraction()
        report = ExtractionReport()
        logger.info(f"Extracting {SCENE_COUNT} scenes (pacing {self.pacing_delay:.1f}s)")

        for index in range(SCENE_COUNT):
            if self._on_cell_start:
                self._on_cell_start(index)
            await self._extract_one(grid, index, report)

            if index < SCENE_COUNT - 1 and self.pacing_delay > 0:
                await self._sleep(self.pacing_delay)

        logger.info(
            f"Extraction finished: {len(report.completed)}/{SCENE_COUNT} scenes, "
            f"{len(report.failures)} failed"
        )
        return report

    def check_idle(self) -> None:
        """Raise when a scene task would be orphaned by a new run."""
        busy = self.session.running_scene_tasks()
        if busy:
            raise LookbookError(
                f"Scene tasks still running on scenes {busy}; wait for them before extracting again",
                code="StageBusy",
                details={"scene_ids": busy},
            )

    async def _extract_one(self, grid, index: int, report: ExtractionReport) -> None:
        request = StageRequest.extract_cell(grid, index)
        image_request = request.to_image_request(self.image_config)

        self.session.update_scene(index, is_extracting=True)
        try:
            image = await self.executor.execute_with_retry(
                lambda: self.provider.generate_image(image_request),
                extract=self.provider.extract_image,
                label=f"scene {index} {request.label}",
            )
        except Exception as e:
            self.session.update_scene(index, is_extracting=False)
            report.failures[index] = e
            logger.error(f"Scene {index} extraction failed: {redact_api_key(str(e))}")
            return

        self.session.update_scene(index, image=image, is_extracting=False)
        progress = progress_after(index)
        self.session.set_extraction_progress(progress)
        report.completed.append(index)
        report.progress_history.append(progress)
        logger.info(f"Scene {index + 1}/{SCENE_COUNT} extracted ({progress}%)")
