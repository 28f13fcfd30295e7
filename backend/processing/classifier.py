"""
Colour card classifier.

Averages the RGB channels of every pixel inside a brightness band and picks the
dominant channel. Deterministic, no model.

Note on the fallback: BLUE is returned whenever neither red nor green strictly
dominates. Ties (e.g. a grey frame) therefore read as BLUE, the same as a truly
blue card. Clients depend on this; do not turn it into a three-way argmax.
"""

from dataclasses import dataclass

import numpy as np

from config import BRIGHTNESS_MIN, BRIGHTNESS_MAX
from processing.errors import AllPixelsRejected, NoFrameAvailable
from state.session import Color


@dataclass(frozen=True)
class Sample:
    avg_r: float
    avg_g: float
    avg_b: float
    count: int


def compute_sample(frame: np.ndarray | None) -> Sample:
    """Average R, G, B over the pixels whose brightness lies in the band.

    Accepts an HxWx4 RGBA or HxWx3 RGB uint8 buffer; alpha is ignored.
    Raises NoFrameAvailable for a missing/empty frame and AllPixelsRejected when
    every pixel is too dark or too bright.
    """
    if frame is None or frame.size == 0:
        raise NoFrameAvailable("empty frame")

    rgb = frame[..., :3].reshape(-1, 3).astype(np.int64)
    # brightness = (r+g+b)/3, compared on the sum to stay in integers
    total = rgb.sum(axis=1)
    keep = (total >= 3 * BRIGHTNESS_MIN) & (total <= 3 * BRIGHTNESS_MAX)
    count = int(np.count_nonzero(keep))
    if count == 0:
        raise AllPixelsRejected(f"0 of {rgb.shape[0]} pixels in brightness band")

    r_sum, g_sum, b_sum = (int(s) for s in rgb[keep].sum(axis=0))
    return Sample(r_sum / count, g_sum / count, b_sum / count, count)


def classify_sample(sample: Sample) -> Color:
    r, g, b = sample.avg_r, sample.avg_g, sample.avg_b
    if r > g and r > b:
        return Color.RED
    if g > r and g > b:
        return Color.GREEN
    return Color.BLUE


def classify(frame: np.ndarray | None) -> Color:
    """Classify one frame as RED, GREEN, BLUE or UNKNOWN."""
    try:
        sample = compute_sample(frame)
    except (NoFrameAvailable, AllPixelsRejected):
        return Color.UNKNOWN
    return classify_sample(sample)
