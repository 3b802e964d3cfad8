"""
Session State
=============

The single mutable aggregate of a lookbook run: source images, derived
artifacts, the nine storyboard scenes and extraction progress.

All writes go through narrow mutation methods. None of them awaits, so on
the event loop each one is applied atomically with respect to every other.
Scenes are replaced copy-on-write, which keeps concurrent updates to
different scenes from clobbering each other.
"""

import logging
from dataclasses import dataclass, replace, asdict
from enum import Enum
from typing import Optional, Dict, Any, List, Tuple

from ..api.base import Artifact

logger = logging.getLogger(__name__)


SCENE_COUNT = 9


def describe_artifact(artifact: Optional[Artifact]) -> Optional[str]:
    """Short printable form of an artifact; inline payloads are not copied."""
    if artifact is None:
        return None
    if artifact.is_inline:
        return f"inline:{artifact.mime_type}"
    return artifact.uri


class Stage(Enum):
    """Top-level pipeline stages."""

    UPLOAD = "upload"
    REFINE = "refine"
    STORYBOARD = "storyboard"
    RESULTS = "results"


@dataclass(frozen=True)
class Scene:
    """One storyboard cell and the work done on it."""

    id: int
    image: Optional[Artifact] = None
    video_url: Optional[Artifact] = None
    is_extracting: bool = False
    is_generating_video: bool = False
    is_upscaling: bool = False

    @property
    def is_busy(self) -> bool:
        return self.is_extracting or self.is_generating_video or self.is_upscaling

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["image"] = describe_artifact(self.image)
        data["video_url"] = describe_artifact(self.video_url)
        return data


SCENE_FIELDS = {"image", "video_url", "is_extracting", "is_generating_video", "is_upscaling"}


class Session:
    """
    Owned state of one pipeline run.

    Created once at start-up and never destroyed during the run. Only the
    orchestrator, the extraction scheduler and scene tasks mutate it.
    """

    def __init__(self):
        self.stage = Stage.UPLOAD
        self.model_image: Optional[Artifact] = None
        self.product_image: Optional[Artifact] = None
        self.combined_image: Optional[Artifact] = None
        self.storyboard_grid: Optional[Artifact] = None
        self.extraction_progress = 0
        self._scenes: Tuple[Scene, ...] = tuple(Scene(id=i) for i in range(SCENE_COUNT))

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    @property
    def scenes(self) -> Tuple[Scene, ...]:
        return self._scenes

    def scene(self, scene_id: int) -> Scene:
        if not 0 <= scene_id < SCENE_COUNT:
            raise IndexError(f"Scene id out of range: {scene_id}")
        return self._scenes[scene_id]

    def has_scene_images(self) -> bool:
        return any(scene.image is not None for scene in self._scenes)

    def running_scene_tasks(self) -> List[int]:
        """Ids of scenes with a video or upscale job in flight."""
        return [
            scene.id for scene in self._scenes
            if scene.is_generating_video or scene.is_upscaling
        ]

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def set_stage(self, stage: Stage) -> None:
        """Touches: stage."""
        if stage is not self.stage:
            logger.info(f"Stage {self.stage.value} -> {stage.value}")
        self.stage = stage

    def set_model_image(self, artifact: Optional[Artifact]) -> None:
        """Touches: model_image."""
        self.model_image = artifact

    def set_product_image(self, artifact: Optional[Artifact]) -> None:
        """Touches: product_image."""
        self.product_image = artifact

    def set_combined_image(self, artifact: Artifact) -> None:
        """Touches: combined_image."""
        self.combined_image = artifact

    def set_storyboard_grid(self, artifact: Artifact) -> None:
        """Touches: storyboard_grid."""
        self.storyboard_grid = artifact

    def update_scene(self, scene_id: int, **changes) -> Scene:
        """
        Replace one scene with a copy carrying ``changes``.

        Touches: the named fields of scenes[scene_id] only.
        """
        unknown = set(changes) - SCENE_FIELDS
        if unknown:
            raise AttributeError(f"Unknown scene fields: {sorted(unknown)}")

        updated = replace(self.scene(scene_id), **changes)
        scenes = list(self._scenes)
        scenes[scene_id] = updated
        self._scenes = tuple(scenes)
        return updated

    def begin_extraction(self) -> None:
        """
        Start a fresh extraction run.

        Touches: every scene (images, videos and flags cleared),
        extraction_progress (reset to 0).
        Callers check ``running_scene_tasks()`` first.
        """
        self._scenes = tuple(Scene(id=i) for i in range(SCENE_COUNT))
        self.extraction_progress = 0

    def set_extraction_progress(self, value: int) -> None:
        """Touches: extraction_progress. Never moves backwards within a run."""
        if not 0 <= value <= 100:
            raise ValueError(f"Progress out of range: {value}")
        if value < self.extraction_progress:
            raise ValueError(
                f"Extraction progress cannot decrease ({self.extraction_progress} -> {value})"
            )
        self.extraction_progress = value

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Summary of the session for metadata files."""
        return {
            "stage": self.stage.value,
            "model_image": describe_artifact(self.model_image),
            "product_image": describe_artifact(self.product_image),
            "combined_image": describe_artifact(self.combined_image),
            "storyboard_grid": describe_artifact(self.storyboard_grid),
            "extraction_progress": self.extraction_progress,
            "scenes": [scene.to_dict() for scene in self._scenes],
        }

