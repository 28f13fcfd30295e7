import logging
from typing import Callable, Protocol

from schemas.messages import PromptMessage

logger = logging.getLogger("uvicorn.error")


class PromptSink(Protocol):
    def say(self, text: str) -> None: ...


class LoggingPromptSink:
    def say(self, text: str) -> None:
        logger.info(f"[Prompt] {text}")


class WebSocketPromptSink:
    """Sends prompts to the browser, which speaks them with speech synthesis."""

    def __init__(self, send: Callable[[dict], None]):
        self.send = send

    def say(self, text: str) -> None:
        self.send(PromptMessage(text=text).model_dump())


def speak(sink: PromptSink | None, text: str) -> None:
    """Fire-and-forget: a failing sink never affects the game."""
    if sink is None:
        return
    try:
        sink.say(text)
    except Exception as e:
        logger.debug(f"[Prompt] sink failed for {text!r}: {e}")
