"""
Continuous auto-scroll over the rendered feed.
"""
import logging
from typing import Optional, Protocol

from core.entities import ScrollState
from services.scheduler import FrameHandle, FrameScheduler

logger = logging.getLogger(__name__)

MIN_SPEED = 10
MAX_SPEED = 100
DEFAULT_SPEED = 50
STEP_AT_FULL_SPEED = 0.5


class Viewport(Protocol):
    """Scrollable surface; extents are in layout units."""

    @property
    def content_extent(self) -> float: ...

    @property
    def viewport_extent(self) -> float: ...

    def scroll_to(self, position: float) -> None: ...


def clamp_speed(speed: int) -> int:
    return max(MIN_SPEED, min(MAX_SPEED, int(speed)))


class AutoScroller:
    """
    Advances the viewport by a small step every frame and wraps back to the
    top at the end of the content.

    Paused until start(). stop() cancels the pending frame, so no step runs
    after it returns.
    """

    def __init__(
        self,
        viewport: Viewport,
        scheduler: FrameScheduler,
        speed: int = DEFAULT_SPEED,
        position: float = 0.0,
    ):
        self.viewport = viewport
        self.scheduler = scheduler
        self._speed = clamp_speed(speed)
        self._position = max(0.0, position)
        self._handle: Optional[FrameHandle] = None
        # Bumped on every start/stop; a callback from an older run is ignored
        self._generation = 0

    @property
    def running(self) -> bool:
        return self._handle is not None

    @property
    def position(self) -> float:
        return self._position

    @property
    def speed(self) -> int:
        return self._speed

    @speed.setter
    def speed(self, value: int) -> None:
        self._speed = clamp_speed(value)

    @property
    def state(self) -> ScrollState:
        return ScrollState(position=self._position, running=self.running, speed=self._speed)

    def start(self) -> None:
        if self.running:
            return
        self._generation += 1
        self._schedule(self._generation)
        logger.debug(f"Auto-scroll started at {self._position:.1f} (speed {self._speed}%)")

    def stop(self) -> None:
        if self._handle is None:
            return
        self._handle.cancel()
        self._handle = None
        self._generation += 1
        logger.debug(f"Auto-scroll stopped at {self._position:.1f}")

    def toggle(self) -> bool:
        if self.running:
            self.stop()
        else:
            self.start()
        return self.running

    def reset(self) -> None:
        self._position = 0.0
        self.viewport.scroll_to(self._position)

    def _schedule(self, generation: int) -> None:
        self._handle = self.scheduler.request_frame(lambda: self._step(generation))

    def _step(self, generation: int) -> None:
        if generation != self._generation:
            return

        self._position += (self._speed / 100) * STEP_AT_FULL_SPEED
        if self._position >= self.viewport.content_extent - self.viewport.viewport_extent:
            self._position = 0.0

        try:
            self.viewport.scroll_to(self._position)
        except Exception:
            # The fired handle is spent; fall back to Paused so start() works again
            self._handle = None
            self._generation += 1
            raise
        # scroll_to may have stopped us
        if generation == self._generation:
            self._schedule(generation)
