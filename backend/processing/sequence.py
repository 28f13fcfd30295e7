import random

from config import (
    SEQUENCE_LENGTH_DEFAULT, SEQUENCE_LENGTH_LONG,
    MIN_DIFFICULTY_MS, DIFFICULTY_STEP_MS, SPEED_MODE_REDUCTION_MS,
)
from state.session import Color, Mode, PALETTE


def sequence_length(mode: Mode) -> int:
    return SEQUENCE_LENGTH_LONG if mode == Mode.LENGTH else SEQUENCE_LENGTH_DEFAULT


def generate_sequence(mode: Mode, rng: random.Random | None = None) -> tuple[Color, ...]:
    """Draw a target sequence uniformly, with replacement, from the palette."""
    rng = rng or random
    return tuple(rng.choice(PALETTE) for _ in range(sequence_length(mode)))


def effective_delay(difficulty: int, mode: Mode) -> int:
    """Flash duration actually used for playback (ms)."""
    if mode == Mode.SPEED:
        return max(difficulty - SPEED_MODE_REDUCTION_MS, MIN_DIFFICULTY_MS)
    return difficulty


def next_difficulty(difficulty: int) -> int:
    return max(difficulty - DIFFICULTY_STEP_MS, MIN_DIFFICULTY_MS)


def sequences_match(target, player) -> bool:
    return len(target) == len(player) and all(t == p for t, p in zip(target, player))
