"""
Per-frame scheduling primitives.
A frame callback fires once per display refresh; every request returns a
handle that cancels that one callback.
"""
import asyncio
from abc import ABC, abstractmethod
from typing import Callable, List, Optional


FrameCallback = Callable[[], None]


class FrameHandle(ABC):
    @abstractmethod
    def cancel(self) -> None:
        raise NotImplementedError

    @property
    @abstractmethod
    def cancelled(self) -> bool:
        raise NotImplementedError


class FrameScheduler(ABC):
    @abstractmethod
    def request_frame(self, callback: FrameCallback) -> FrameHandle:
        """Run *callback* once, on the next frame."""
        raise NotImplementedError


class _TimerFrameHandle(FrameHandle):
    def __init__(self, timer: asyncio.TimerHandle):
        self._timer = timer

    def cancel(self) -> None:
        self._timer.cancel()

    @property
    def cancelled(self) -> bool:
        return self._timer.cancelled()


class AsyncioFrameScheduler(FrameScheduler):
    """
    Frames driven by the running event loop at a fixed refresh rate.
    Frames stop when the loop stops running.
    """

    def __init__(self, frame_rate: float = 60.0, loop: Optional[asyncio.AbstractEventLoop] = None):
        if frame_rate <= 0:
            raise ValueError("frame_rate must be positive")
        self.frame_interval = 1.0 / frame_rate
        self._loop = loop

    def request_frame(self, callback: FrameCallback) -> FrameHandle:
        loop = self._loop or asyncio.get_running_loop()
        return _TimerFrameHandle(loop.call_later(self.frame_interval, callback))


class _ManualFrameHandle(FrameHandle):
    def __init__(self, callback: FrameCallback):
        self.callback = callback
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class ManualFrameScheduler(FrameScheduler):
    """
    Frames advance only when tick() is called.
    Used for headless rendering and for simulating frames in tests.
    """

    def __init__(self):
        self._pending: List[_ManualFrameHandle] = []
        self.frames = 0

    @property
    def pending(self) -> int:
        return sum(1 for handle in self._pending if not handle.cancelled)

    def request_frame(self, callback: FrameCallback) -> FrameHandle:
        handle = _ManualFrameHandle(callback)
        self._pending.append(handle)
        return handle

    def tick(self, frames: int = 1) -> None:
        for _ in range(frames):
            due, self._pending = self._pending, []
            self.frames += 1
            for handle in due:
                if not handle.cancelled:
                    handle.callback()
