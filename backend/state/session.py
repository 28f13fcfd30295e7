from enum import Enum
from dataclasses import dataclass, field

from config import INITIAL_DIFFICULTY_MS


class Color(str, Enum):
    RED = "red"
    GREEN = "green"
    BLUE = "blue"
    UNKNOWN = "unknown"


# Palette order matters for the generator; UNKNOWN is a verdict, never a token
PALETTE = (Color.RED, Color.GREEN, Color.BLUE)


class Mode(str, Enum):
    SPEED = "speed"
    LENGTH = "length"
    MIX = "mix"


class Phase(str, Enum):
    IDLE = "IDLE"
    PRE_COUNTDOWN = "PRE_COUNTDOWN"
    PLAYBACK = "PLAYBACK"
    AWAITING_DETECTION_START = "AWAITING_DETECTION_START"
    DETECTING = "DETECTING"
    RESULT = "RESULT"


class Outcome(str, Enum):
    WIN = "WIN"
    LOSE = "LOSE"


# Phases during which a target sequence exists and the mode is frozen
ROUND_PHASES = (Phase.PLAYBACK, Phase.AWAITING_DETECTION_START, Phase.DETECTING)


@dataclass
class SessionState:
    phase: Phase = Phase.IDLE

    # Session values, survive exit
    level: int = 1
    stars: int = 0
    difficulty: int = field(default_factory=lambda: INITIAL_DIFFICULTY_MS)
    mode: Mode = Mode.MIX
    pending_mode: Mode | None = None
    camera_on: bool = True

    # Round
    target: tuple[Color, ...] = ()
    player_input: list[Color] = field(default_factory=list)
    outcome: Outcome | None = None

    # Live display
    displayed_color: Color | None = None
    countdown: int | None = None
    countdown_label: str | None = None
    detected_color: Color | None = None
    detection_remaining: int | None = None
    detecting: bool = False
    message: str | None = None

    @property
    def progress(self) -> float:
        if not self.target:
            return 0.0
        return len(self.player_input) / len(self.target)

    def clear_round(self):
        self.target = ()
        self.player_input = []
        self.outcome = None
        self.displayed_color = None
        self.countdown = None
        self.countdown_label = None
        self.detected_color = None
        self.detection_remaining = None
        self.detecting = False
        self.message = None

    def reset(self):
        self.clear_round()
        self.phase = Phase.IDLE
