import asyncio
import logging
from typing import AsyncIterator, Awaitable, Callable

import numpy as np

from config import DETECTION_TICK_SECONDS
from processing.classifier import classify
from processing.errors import NoFrameAvailable
from state.session import Color

logger = logging.getLogger("uvicorn.error")


class DetectionController:
    """Samples the classifier once per tick over a bounded window."""

    def __init__(
        self,
        grab_frame: Callable[[], np.ndarray],
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        tick_seconds: float = DETECTION_TICK_SECONDS,
    ):
        self.grab_frame = grab_frame
        self.sleep = sleep
        self.tick_seconds = tick_seconds

    def sample(self) -> Color:
        """Grab the current frame and classify it. Runs in a worker thread."""
        try:
            frame = self.grab_frame()
        except NoFrameAvailable as e:
            logger.debug(f"[Detection] no frame: {e}")
            return Color.UNKNOWN
        return classify(frame)

    async def window(self, window_seconds: int) -> AsyncIterator[tuple[int, Color]]:
        """Yield (ticks remaining, verdict) once per tick.

        Each verdict replaces the previous one; the last yielded verdict is the
        one the player confirms.
        """
        for remaining in range(window_seconds - 1, -1, -1):
            await self.sleep(self.tick_seconds)
            verdict = await asyncio.to_thread(self.sample)
            logger.debug(f"[Detection] tick remaining={remaining} verdict={verdict.value}")
            yield remaining, verdict
