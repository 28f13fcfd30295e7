import asyncio

import numpy as np

from processing.errors import CaptureAcquisitionFailure, NoFrameAvailable
from state.session import Color

RGB = {
    Color.RED: (200, 50, 50),
    Color.GREEN: (50, 200, 50),
    Color.BLUE: (60, 60, 200),
}


def solid_frame(rgb, width=30, height=20, alpha=255):
    frame = np.empty((height, width, 4), dtype=np.uint8)
    frame[..., :3] = rgb
    frame[..., 3] = alpha
    return frame


class VirtualClock:
    """Stands in for asyncio.sleep: advances virtual time and yields once."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: list[float] = []

    async def sleep(self, seconds: float):
        self.now += seconds
        self.sleeps.append(seconds)
        await asyncio.sleep(0)


class FakeCamera:
    def __init__(self, color: Color | None = None, fail: bool = False):
        self.color = color
        self.fail = fail
        self.acquired = False
        self.acquire_calls = 0
        self.release_calls = 0

    def acquire(self):
        self.acquire_calls += 1
        if self.fail:
            raise CaptureAcquisitionFailure("permission denied")
        self.acquired = True

    def release(self):
        self.release_calls += 1
        self.acquired = False

    def read(self):
        if not self.acquired or self.color is None:
            raise NoFrameAvailable("no frame")
        if self.color == Color.UNKNOWN:
            return solid_frame((0, 0, 0))
        return solid_frame(RGB[self.color])


async def wait_for(predicate, timeout=5.0):
    """Poll once per loop iteration so no intermediate state is skipped."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0)
