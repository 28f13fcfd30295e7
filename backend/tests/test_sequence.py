import random

import pytest

from processing.sequence import effective_delay, generate_sequence, next_difficulty, sequences_match
from state.session import Color, Mode, PALETTE


@pytest.mark.parametrize("mode, length", [(Mode.LENGTH, 5), (Mode.SPEED, 3), (Mode.MIX, 3)])
def test_sequence_length_depends_on_mode(mode, length):
    assert len(generate_sequence(mode)) == length


def test_sequence_uses_palette_with_repeats():
    rng = random.Random(0)
    seen = set()
    repeats = False
    for _ in range(200):
        seq = generate_sequence(Mode.LENGTH, rng)
        assert all(c in PALETTE for c in seq)
        seen.update(seq)
        repeats = repeats or len(set(seq)) < len(seq)
    assert seen == set(PALETTE)
    assert repeats


def test_sequence_is_reproducible_with_seeded_rng():
    assert generate_sequence(Mode.MIX, random.Random(42)) == generate_sequence(Mode.MIX, random.Random(42))


def test_effective_delay_only_changes_in_speed_mode():
    assert effective_delay(1000, Mode.MIX) == 1000
    assert effective_delay(1000, Mode.LENGTH) == 1000
    assert effective_delay(1000, Mode.SPEED) == 700
    assert effective_delay(500, Mode.SPEED) == 300
    assert effective_delay(300, Mode.SPEED) == 300


def test_difficulty_floor():
    d = 1000
    for _ in range(100):
        d = next_difficulty(d)
        assert d >= 300
    assert d == 300


def test_sequences_match():
    target = (Color.RED, Color.RED, Color.BLUE)
    assert sequences_match(target, [Color.RED, Color.RED, Color.BLUE])
    assert not sequences_match(target, [Color.RED, Color.BLUE, Color.RED])
    assert not sequences_match(target, [Color.RED, Color.RED])
