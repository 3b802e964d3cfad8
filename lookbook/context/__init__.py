"""
Context Management
==================

Session state and the request descriptors built from it.

Components:
- Session: the single mutable aggregate of a run
- Scene: one of the nine storyboard cells
- StageRequest: descriptor of one remote operation
"""

from .session import Session, Scene, Stage, SCENE_COUNT, describe_artifact
from .requests import (
    StageRequest,
    OperationKind,
    CustomizationOptions,
    CELL_POSITIONS,
    DEFAULT_MOTION_PROMPT,
)

__all__ = [
    "Session",
    "Scene",
    "Stage",
    "SCENE_COUNT",
    "describe_artifact",
    "StageRequest",
    "OperationKind",
    "CustomizationOptions",
    "CELL_POSITIONS",
    "DEFAULT_MOTION_PROMPT",
]
