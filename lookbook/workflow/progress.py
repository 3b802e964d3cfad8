"""
Progress Estimator
==================

Cosmetic completion signal for remote calls of unknown duration.

The estimator only promises to approach, and never reach, 100 until it is
told the call finished. It reads nothing from the pipeline, so imprecise
timing cannot affect pipeline state.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Optional, Callable, List

from ..core.config import ProgressConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressState:
    """Displayed percentage plus whether a call is outstanding."""

    percentage: float = 0.0
    running: bool = False
    message: str = ""


class ProgressEstimator:
    """
    Asymptotic progress ticker.

    Each tick advances by ``max(epsilon, (100 - current) / smoothing)``,
    capped at ``ceiling``. Only one ticker runs at a time.
    """

    def __init__(
        self,
        tick_interval: float = 0.2,
        smoothing: float = 20.0,
        epsilon: float = 0.1,
        ceiling: float = 99.0,
        reset_delay: float = 1.0,
    ):
        self.tick_interval = tick_interval
        self.smoothing = smoothing
        self.epsilon = epsilon
        self.ceiling = ceiling
        self.reset_delay = reset_delay

        self._state = ProgressState()
        self._ticker: Optional[asyncio.Task] = None
        self._reset_handle: Optional[asyncio.TimerHandle] = None
        self._listeners: List[Callable[[ProgressState], None]] = []

    @classmethod
    def from_config(cls, config: ProgressConfig) -> "ProgressEstimator":
        return cls(
            tick_interval=config.tick_interval,
            smoothing=config.smoothing,
            epsilon=config.epsilon,
            ceiling=config.ceiling,
            reset_delay=config.reset_delay,
        )

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def state(self) -> ProgressState:
        return self._state

    @property
    def percentage(self) -> float:
        return self._state.percentage

    @property
    def running(self) -> bool:
        return self._state.running

    def add_listener(self, callback: Callable[[ProgressState], None]) -> None:
        """Register a callback invoked on every state change."""
        self._listeners.append(callback)

    def _set(self, state: ProgressState) -> None:
        self._state = state
        for callback in self._listeners:
            callback(state)

    # -------------------------------------------------------------------------
    # Control
    # -------------------------------------------------------------------------

    def start(self, message: str = "") -> None:
        """Begin ticking from 0. Any previous ticker is stopped first."""
        self._stop_ticker()
        self._cancel_reset()
        self._set(ProgressState(percentage=0.0, running=True, message=message))
        self._ticker = asyncio.get_running_loop().create_task(self._run())

    def set_message(self, message: str) -> None:
        self._set(ProgressState(self._state.percentage, self._state.running, message))

    def advance(self) -> float:
        """Apply one asymptotic step."""
        current = self._state.percentage
        step = max(self.epsilon, (100.0 - current) / self.smoothing)
        self._set(ProgressState(min(current + step, self.ceiling), True, self._state.message))
        return self._state.percentage

    def finish(self) -> None:
        """Jump to 100 now and fall back to 0 after ``reset_delay``."""
        self._stop_ticker()
        self._cancel_reset()
        self._set(ProgressState(percentage=100.0, running=False, message=self._state.message))
        self._reset_handle = asyncio.get_running_loop().call_later(self.reset_delay, self.reset)

    def reset(self) -> None:
        """Stop ticking and show 0."""
        self._stop_ticker()
        self._cancel_reset()
        self._set(ProgressState())

    @asynccontextmanager
    async def track(self, message: str = ""):
        """Run the enclosed call under a ticker; failure resets immediately."""
        self.start(message)
        try:
            yield self
        except BaseException:
            self.reset()
            raise
        self.finish()

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.tick_interval)
            self.advance()

    def _stop_ticker(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None

    def _cancel_reset(self) -> None:
        if self._reset_handle is not None:
            self._reset_handle.cancel()
            self._reset_handle = None
