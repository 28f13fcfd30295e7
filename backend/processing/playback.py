import asyncio
import logging
from typing import Awaitable, Callable, Sequence

from config import INTER_SYMBOL_GAP_MS
from state.session import Color

logger = logging.getLogger("uvicorn.error")


async def play_sequence(
    sequence: Sequence[Color],
    delay_ms: int,
    show: Callable[[Color | None], None],
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    gap_ms: int = INTER_SYMBOL_GAP_MS,
) -> None:
    """Flash each colour for delay_ms, then blank for gap_ms. Returns when done.

    show(None) means blank. The display is blank when this returns.
    """
    logger.info(f"[Playback] {len(sequence)} colours at {delay_ms}ms")
    for color in sequence:
        show(color)
        await sleep(delay_ms / 1000)
        show(None)
        await sleep(gap_ms / 1000)
