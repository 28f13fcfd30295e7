from typing import Literal

from pydantic import BaseModel

from state.session import Color, Mode, Outcome, Phase


ActionType = Literal[
    "start_game",
    "toggle_camera",
    "set_mode",
    "start_detection",
    "confirm_color",
    "exit_game",
    "advance_after_result",
    "camera_error",
]


class ActionMessage(BaseModel):
    type: ActionType
    mode: Mode | None = None
    accepted: bool | None = None
    message: str | None = None


class CameraRequest(BaseModel):
    type: str = "camera"
    action: Literal["start", "stop"]
    facing_mode: str | None = None
    width: int | None = None
    height: int | None = None


class PromptMessage(BaseModel):
    type: str = "prompt"
    text: str


class ErrorMessage(BaseModel):
    type: str = "error"
    message: str


class GameStateResponse(BaseModel):
    type: str = "state"
    phase: Phase
    level: int
    stars: int
    difficulty: int
    effective_delay_ms: int
    mode: Mode
    pending_mode: Mode | None = None
    camera_on: bool
    displayed_color: Color | None = None
    countdown: int | None = None
    countdown_label: str | None = None
    detected_color: Color | None = None
    detection_remaining: int | None = None
    detecting: bool = False
    step: int
    sequence_length: int
    progress: float
    progress_percent: int
    outcome: Outcome | None = None
    message: str | None = None
