import asyncio
import logging
import random
from typing import Awaitable, Callable

from config import (
    PRE_COUNTDOWN_SECONDS, COUNTDOWN_TICK_SECONDS,
    DETECTION_WINDOW_SECONDS, DETECTION_TICK_SECONDS, AUTO_DETECTION_DELAY_SECONDS,
)
from processing.capture import FrameSource
from processing.detection import DetectionController
from processing.errors import CaptureAcquisitionFailure, InvalidConfirmWhileUnknown, NoFrameAvailable
from processing.playback import play_sequence
from processing.prompts import LoggingPromptSink, PromptSink, speak
from processing.sequence import effective_delay, generate_sequence, next_difficulty, sequences_match
from schemas.messages import GameStateResponse
from state.session import Color, Mode, Outcome, Phase, ROUND_PHASES, SessionState

logger = logging.getLogger("uvicorn.error")

StateListener = Callable[[GameStateResponse], None]


class GameEngine:
    """Session state machine for one player.

    Player actions are plain synchronous methods. Timed work (countdown,
    playback, detection windows) runs in a single owned asyncio task; starting
    new timed work always cancels the previous task first.
    """

    def __init__(
        self,
        capture: FrameSource | None = None,
        prompts: PromptSink | None = None,
        rng: random.Random | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        window_seconds: int = DETECTION_WINDOW_SECONDS,
        tick_seconds: float = DETECTION_TICK_SECONDS,
        auto_detection_delay: float = AUTO_DETECTION_DELAY_SECONDS,
    ):
        self.state = SessionState()
        self.capture = capture
        self.prompts = prompts or LoggingPromptSink()
        self.rng = rng or random.Random()
        self.sleep = sleep
        self.window_seconds = window_seconds
        self.auto_detection_delay = auto_detection_delay
        self.detector = DetectionController(self._grab_frame, sleep=sleep, tick_seconds=tick_seconds)
        self._task: asyncio.Task | None = None
        self._listeners: list[StateListener] = []

    # --- Observation ---

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def snapshot(self) -> GameStateResponse:
        s = self.state
        progress = s.progress
        return GameStateResponse(
            phase=s.phase,
            level=s.level,
            stars=s.stars,
            difficulty=s.difficulty,
            effective_delay_ms=effective_delay(s.difficulty, s.mode),
            mode=s.mode,
            pending_mode=s.pending_mode,
            camera_on=s.camera_on,
            displayed_color=s.displayed_color,
            countdown=s.countdown,
            countdown_label=s.countdown_label,
            detected_color=s.detected_color,
            detection_remaining=s.detection_remaining,
            detecting=s.detecting,
            step=min(len(s.player_input) + 1, len(s.target)),
            sequence_length=len(s.target),
            progress=progress,
            progress_percent=round(progress * 100),
            outcome=s.outcome,
            message=s.message,
        )

    def _publish(self):
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"[Engine] state listener failed: {e}")

    # --- Player actions ---

    def start_game(self):
        if self.state.phase in (Phase.PRE_COUNTDOWN, Phase.PLAYBACK):
            logger.info(f"[Engine] start ignored during {self.state.phase.value}")
            return
        self._begin_round()

    def set_mode(self, mode: Mode):
        s = self.state
        if s.phase in ROUND_PHASES:
            s.pending_mode = None if mode == s.mode else mode
            logger.info(f"[Engine] mode {mode.value} deferred to next round")
        else:
            s.mode = mode
            s.pending_mode = None
            logger.info(f"[Engine] mode -> {mode.value}")
        self._publish()

    def toggle_camera(self):
        s = self.state
        s.camera_on = not s.camera_on
        if s.camera_on:
            self._acquire_camera()
        else:
            if s.detecting:
                self._cancel_task()
                s.detecting = False
                s.detection_remaining = None
            self._release_camera()
        logger.info(f"[Engine] camera {'on' if s.camera_on else 'off'}")
        self._publish()

    def capture_failed(self, reason: str):
        """The rendering side could not open its camera."""
        logger.warning(f"[Engine] capture acquisition failed: {reason}")
        self.state.message = "Camera unavailable. Colours cannot be detected."
        self._publish()

    def start_detection(self):
        s = self.state
        if s.phase == Phase.AWAITING_DETECTION_START or (s.phase == Phase.DETECTING and not s.detecting):
            self._open_window()
            self._spawn(self._run_window())
        else:
            logger.info(f"[Engine] start_detection ignored in {s.phase.value} (detecting={s.detecting})")

    def confirm_color(self):
        s = self.state
        if s.phase != Phase.DETECTING:
            logger.info(f"[Engine] confirm ignored in {s.phase.value}")
            return
        if s.detecting:
            s.message = "Still detecting. Hold your card steady."
            self._publish()
            return

        try:
            self._append_verdict()
        except InvalidConfirmWhileUnknown as e:
            logger.info(f"[Engine] confirm rejected: {e}")
            s.message = str(e)
            speak(self.prompts, str(e))
            self._publish()
            return

        if len(s.player_input) == len(s.target):
            self._finish_round()
        else:
            self._open_window()
            self._spawn(self._run_window())

    def advance_after_result(self, accepted: bool):
        if self.state.phase != Phase.RESULT:
            logger.info(f"[Engine] advance ignored in {self.state.phase.value}")
            return
        if accepted:
            self._begin_round()
        else:
            self.exit_game()

    def exit_game(self):
        self.close()
        self.state.reset()
        logger.info("[Engine] exited to IDLE")
        self._publish()

    def close(self):
        """Cancel timed work and release the camera without publishing."""
        self._cancel_task()
        self._release_camera()

    # --- Transitions ---

    def _begin_round(self):
        self._cancel_task()
        s = self.state
        s.clear_round()
        s.phase = Phase.PRE_COUNTDOWN
        if s.camera_on and self.capture is not None and not self.capture.acquired:
            self._acquire_camera()
        logger.info(f"[Engine] round starting: level={s.level} difficulty={s.difficulty} mode={s.mode.value}")
        self._publish()
        self._spawn(self._run_round())

    async def _run_round(self):
        s = self.state
        await self._countdown()

        if s.pending_mode is not None:
            s.mode = s.pending_mode
            s.pending_mode = None
        s.target = generate_sequence(s.mode, self.rng)
        s.player_input = []
        s.phase = Phase.PLAYBACK
        self._publish()

        await play_sequence(s.target, effective_delay(s.difficulty, s.mode), self._show, self.sleep)

        s.phase = Phase.AWAITING_DETECTION_START
        s.message = "Show your first card to the camera"
        speak(self.prompts, s.message)
        self._publish()

        if self.auto_detection_delay > 0:
            await self.sleep(self.auto_detection_delay)
            self._open_window()
            await self._run_window()

    async def _countdown(self):
        s = self.state
        for n in range(PRE_COUNTDOWN_SECONDS, 0, -1):
            s.countdown = n
            s.countdown_label = str(n)
            speak(self.prompts, str(n))
            self._publish()
            await self.sleep(COUNTDOWN_TICK_SECONDS)
        s.countdown = 0
        s.countdown_label = "GO"
        speak(self.prompts, "Go")
        self._publish()
        await self.sleep(COUNTDOWN_TICK_SECONDS)
        s.countdown = None
        s.countdown_label = None

    def _open_window(self):
        s = self.state
        s.phase = Phase.DETECTING
        s.detecting = True
        s.detected_color = None
        s.detection_remaining = self.window_seconds
        s.message = None
        self._publish()

    async def _run_window(self):
        s = self.state
        try:
            async for remaining, verdict in self.detector.window(self.window_seconds):
                s.detected_color = verdict
                # counts N..1 while sampling; the last verdict is published on close
                if remaining:
                    s.detection_remaining = remaining
                    self._publish()
        finally:
            # A cancelled window must not touch the window that replaced it
            if asyncio.current_task() is self._task:
                s.detecting = False
                s.detection_remaining = None
        logger.info(f"[Engine] window closed, step {len(s.player_input) + 1}/{len(s.target)} verdict={s.detected_color.value if s.detected_color else None}")
        self._publish()

    def _append_verdict(self):
        s = self.state
        verdict = s.detected_color
        if verdict is None or verdict == Color.UNKNOWN:
            raise InvalidConfirmWhileUnknown("No color detected. Try again.")
        s.player_input.append(verdict)
        s.detected_color = None
        s.message = None

    def _finish_round(self):
        self._cancel_task()
        s = self.state
        won = sequences_match(s.target, s.player_input)
        if won:
            s.outcome = Outcome.WIN
            s.level += 1
            s.stars += 1
            s.message = "Level Complete!"
        else:
            # TODO: confirm whether a lost round should also shorten the flash duration
            s.outcome = Outcome.LOSE
            s.level = 1
            s.message = "Wrong sequence!"
        s.difficulty = next_difficulty(s.difficulty)
        s.phase = Phase.RESULT
        logger.info(f"[Engine] round {s.outcome.value}: level={s.level} stars={s.stars} difficulty={s.difficulty}")
        speak(self.prompts, s.message)
        self._publish()

    def _show(self, color: Color | None):
        self.state.displayed_color = color
        self._publish()

    # --- Capture ---

    def _grab_frame(self):
        if not self.state.camera_on or self.capture is None:
            raise NoFrameAvailable("camera off")
        return self.capture.read()

    def _acquire_camera(self):
        if self.capture is None or self.capture.acquired:
            return
        try:
            self.capture.acquire()
        except CaptureAcquisitionFailure as e:
            logger.warning(f"[Engine] {e}")
            self.state.message = "Camera unavailable. Colours cannot be detected."

    def _release_camera(self):
        if self.capture is not None and self.capture.acquired:
            self.capture.release()

    # --- Task ownership ---

    def _spawn(self, coro):
        self._cancel_task()
        self._task = asyncio.get_running_loop().create_task(coro)
        self._task.add_done_callback(self._on_task_done)

    def _cancel_task(self):
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def _on_task_done(self, task: asyncio.Task):
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"[Engine] timed task failed: {type(exc).__name__}: {exc}")
