"""
Workflow Orchestration
======================

Orchestration core of the lookbook pipeline.

Components:
- StageOrchestrator: Upload -> Refine -> Storyboard -> Results state machine
- RemoteCallExecutor: retry with rate-limit aware backoff
- ExtractionScheduler: sequential, paced extraction of the nine scenes
- SceneTaskRunner: per-scene video generation and upscaling
- ProgressEstimator: cosmetic progress for calls of unknown duration
"""

from .executor import (
    RemoteCallExecutor,
    RetryPolicy,
    FailureClassification,
    classify_failure,
    parse_retry_hint,
)
from .progress import ProgressEstimator, ProgressState
from .extraction import ExtractionScheduler, ExtractionReport, progress_after
from .scene_tasks import SceneTaskRunner
from .orchestrator import StageOrchestrator

__all__ = [
    "RemoteCallExecutor",
    "RetryPolicy",
    "FailureClassification",
    "classify_failure",
    "parse_retry_hint",
    "ProgressEstimator",
    "ProgressState",
    "ExtractionScheduler",
    "ExtractionReport",
    "progress_after",
    "SceneTaskRunner",
    "StageOrchestrator",
]
