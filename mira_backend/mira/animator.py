"""
Pulse animation for the two rectangles in the middle of the screen.

The smoothed amplitude eases toward the target (1 while talking, 0 otherwise)
with a fast attack and a slower release. A triangle wave sharpened into a
narrow pulse pushes the rectangles apart and back together along the
diagonal. The frame loop only runs while there is something to draw.
"""
import math
import time
import asyncio
import logging
from typing import Callable, Optional, Tuple

logger = logging.getLogger(__name__)

FREQ = 0.95        # Hz
GAMMA = 6.0
EPS = 0.03
AMP_BASE = 60      # px at REF_SIZE
REF_SIZE = 144
RAMP_IN = 180      # ms
RAMP_OUT = 320     # ms
STOP_EPS = 0.002

Offset = Tuple[float, float]


def ease_amplitude(current: float, target: float, dt_ms: float) -> float:
    ramp = RAMP_IN if target > current else RAMP_OUT
    k = min(1.0, max(0.0, dt_ms / ramp))
    return current + (target - current) * (1 - (1 - k) ** 2)


def pulse_displacement(t: float, current: float, amp_px: float = AMP_BASE) -> float:
    """Signed diagonal displacement at time t (seconds)."""
    phase = (t * FREQ) % 1
    tri = 1 - abs(2 * phase - 1)
    h = tri ** GAMMA
    w = (1 - h) * (1 - EPS) + (1 - tri) * EPS
    sign = -1 if phase < 0.5 else 1
    return sign * (amp_px * w * current) / math.sqrt(2)


def pulse_offsets(t: float, current: float, amp_px: float = AMP_BASE) -> Tuple[Offset, Offset]:
    d = pulse_displacement(t, current, amp_px)
    return (-d, -d), (d, d)


class VisualSink:
    """Two transformable elements and the size of their container."""

    def attached(self) -> bool:
        return True

    def width(self) -> Optional[float]:
        return None

    def set_offsets(self, a: Offset, b: Offset) -> None:
        raise NotImplementedError


class PulsePair(VisualSink):
    def __init__(self, size: Optional[float] = REF_SIZE):
        self.size = size
        self.offset_a: Offset = (0.0, 0.0)
        self.offset_b: Offset = (0.0, 0.0)

    def width(self):
        return self.size

    def set_offsets(self, a, b):
        self.offset_a = a
        self.offset_b = b


class AsyncioFrameScheduler:
    """Fixed-rate stand-in for a display frame callback."""

    def __init__(self, fps: int = 60):
        self.interval = 1.0 / fps

    def now(self) -> float:
        return time.perf_counter() * 1000

    def request(self, callback: Callable[[float], None]):
        loop = asyncio.get_running_loop()
        return loop.call_later(self.interval, lambda: callback(self.now()))

    def cancel(self, handle) -> None:
        handle.cancel()


class AmplitudeAnimator:
    def __init__(self, sink: VisualSink, scheduler=None):
        self.sink = sink
        self.scheduler = scheduler or AsyncioFrameScheduler()
        self.current = 0.0
        self.target = 0.0
        self._frame = None
        self._t_prev = self.scheduler.now()

    @property
    def active(self) -> bool:
        return self.target != 0

    @property
    def running(self) -> bool:
        return self._frame is not None

    def set_active(self, active: bool) -> None:
        self.target = 1.0 if active else 0.0
        if self._frame is None:
            self._t_prev = self.scheduler.now()
            self._frame = self.scheduler.request(self._step)

    def amplitude_px(self) -> float:
        w = self.sink.width()
        if w is None:
            w = REF_SIZE
        return AMP_BASE * (w / REF_SIZE)

    def _step(self, ts: float) -> None:
        self._frame = None
        if not self.sink.attached():
            self._frame = self.scheduler.request(self._step)
            return

        dt = ts - self._t_prev
        self._t_prev = ts
        self.current = ease_amplitude(self.current, self.target, dt)

        a, b = pulse_offsets(ts / 1000, self.current, self.amplitude_px())
        self.sink.set_offsets(a, b)

        if self.target != 0 or abs(self.current) > STOP_EPS:
            self._frame = self.scheduler.request(self._step)
        else:
            self.sink.set_offsets((0.0, 0.0), (0.0, 0.0))

    def close(self) -> None:
        if self._frame is not None:
            self.scheduler.cancel(self._frame)
            self._frame = None
