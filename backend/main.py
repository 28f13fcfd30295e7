import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from config import CAPTURE_SOURCE, CAMERA_INDEX, FRONTEND_URL
from processing.capture import ClientFrameSource, OpenCVCamera
from processing.engine import GameEngine
from processing.prompts import WebSocketPromptSink
from schemas.messages import ActionMessage, ErrorMessage

logger = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.sessions = 0
    print(f"Colour memory server ready (capture source: {CAPTURE_SOURCE}).")
    yield


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health():
    return {"status": "ok", "sessions": app.state.sessions}


def handle_action(engine: GameEngine, action: ActionMessage) -> None:
    """Route one player action to the engine."""
    if action.type == "start_game":
        engine.start_game()
    elif action.type == "toggle_camera":
        engine.toggle_camera()
    elif action.type == "set_mode":
        if action.mode is None:
            raise ValueError("set_mode requires 'mode'")
        engine.set_mode(action.mode)
    elif action.type == "start_detection":
        engine.start_detection()
    elif action.type == "confirm_color":
        engine.confirm_color()
    elif action.type == "exit_game":
        engine.exit_game()
    elif action.type == "advance_after_result":
        engine.advance_after_result(bool(action.accepted))
    elif action.type == "camera_error":
        engine.capture_failed(action.message or "unknown camera error")


@app.websocket("/ws/game")
async def game_session(websocket: WebSocket):
    await websocket.accept()
    outbox: asyncio.Queue[dict] = asyncio.Queue()

    if CAPTURE_SOURCE == "local":
        frames = None
        capture = OpenCVCamera(CAMERA_INDEX)
    else:
        frames = ClientFrameSource(outbox.put_nowait)
        capture = frames

    engine = GameEngine(capture=capture, prompts=WebSocketPromptSink(outbox.put_nowait))
    engine.subscribe(lambda snapshot: outbox.put_nowait(snapshot.model_dump(mode="json")))
    websocket.app.state.sessions += 1
    frame_count = 0

    logger.info("WS game session started")
    outbox.put_nowait(engine.snapshot().model_dump(mode="json"))

    async def reader():
        """Read actions and camera frames until the client disconnects."""
        nonlocal frame_count
        try:
            while True:
                message = await websocket.receive()

                if message.get("type") == "websocket.disconnect":
                    break

                if message.get("text") is not None:
                    try:
                        action = ActionMessage.model_validate_json(message["text"])
                        handle_action(engine, action)
                    except (ValidationError, ValueError) as e:
                        logger.info(f"WS invalid action: {e}")
                        outbox.put_nowait(ErrorMessage(message=f"Invalid action: {e}").model_dump())

                if message.get("bytes") is not None:
                    frame_count += 1
                    if frames is not None:
                        # Always overwrite, only the latest frame matters
                        frames.push(message["bytes"])

        except (WebSocketDisconnect, RuntimeError):
            pass

    async def writer():
        try:
            while True:
                payload = await outbox.get()
                await websocket.send_json(payload)
        except (WebSocketDisconnect, RuntimeError):
            pass
        except asyncio.CancelledError:
            pass

    try:
        reader_task = asyncio.create_task(reader())
        writer_task = asyncio.create_task(writer())

        # When reader finishes (disconnect), cancel writer
        await reader_task
        writer_task.cancel()
        try:
            await writer_task
        except asyncio.CancelledError:
            pass

    except (WebSocketDisconnect, RuntimeError) as e:
        logger.info(f"WS game session ended: {type(e).__name__}: {e}")
    finally:
        logger.info(f"WS cleanup: received {frame_count} frames, releasing camera")
        engine.close()
        websocket.app.state.sessions -= 1
