import logging
import sys
import threading
from typing import Callable, Protocol

import cv2
import numpy as np

from config import CAMERA_FACING_MODE, FRAME_WIDTH, FRAME_HEIGHT
from processing.errors import CaptureAcquisitionFailure, NoFrameAvailable
from schemas.messages import CameraRequest

logger = logging.getLogger("uvicorn.error")


class FrameSource(Protocol):
    def acquire(self) -> None: ...

    def release(self) -> None: ...

    def read(self) -> np.ndarray: ...

    @property
    def acquired(self) -> bool: ...


def draw_frame(frame_bgr: np.ndarray, size: tuple[int, int] = (FRAME_WIDTH, FRAME_HEIGHT)) -> np.ndarray:
    """Scale a BGR camera frame into a fixed-size RGBA pixel buffer."""
    resized = cv2.resize(frame_bgr, size, interpolation=cv2.INTER_AREA)
    return cv2.cvtColor(resized, cv2.COLOR_BGR2RGBA)


class ClientFrameSource:
    """Frames streamed by the browser over the WebSocket.

    Only the latest JPEG is kept. acquire()/release() ask the client to start or
    stop its camera stream through the send callback.
    """

    def __init__(self, send: Callable[[dict], None], size: tuple[int, int] = (FRAME_WIDTH, FRAME_HEIGHT)):
        self.send = send
        self.size = size
        self._acquired = False
        self._latest: bytes | None = None

    @property
    def acquired(self) -> bool:
        return self._acquired

    def acquire(self) -> None:
        w, h = self.size
        self.send(CameraRequest(action="start", facing_mode=CAMERA_FACING_MODE, width=w, height=h).model_dump())
        self._acquired = True

    def release(self) -> None:
        self._acquired = False
        self._latest = None
        self.send(CameraRequest(action="stop").model_dump())

    def push(self, jpeg_bytes: bytes) -> None:
        # Frames arriving while released are stale tracks still shutting down
        if not self._acquired:
            return
        self._latest = jpeg_bytes

    def read(self) -> np.ndarray:
        jpeg_bytes = self._latest
        if not self._acquired or jpeg_bytes is None:
            raise NoFrameAvailable("no frame received from client")
        frame = cv2.imdecode(np.frombuffer(jpeg_bytes, np.uint8), cv2.IMREAD_COLOR)
        if frame is None:
            raise NoFrameAvailable("could not decode frame")
        return draw_frame(frame, self.size)


class OpenCVCamera:
    """Camera attached to the server, read with OpenCV.

    read() runs in a worker thread while acquire()/release() run on the event
    loop, so every access to the capture handle holds the lock.
    """

    def __init__(self, index: int, target_size: tuple[int, int] = (FRAME_WIDTH, FRAME_HEIGHT)):
        self.index = index
        self.target_size = target_size
        self.cap: cv2.VideoCapture | None = None
        self._lock = threading.Lock()

    @property
    def acquired(self) -> bool:
        return self.cap is not None

    def acquire(self) -> None:
        backend = cv2.CAP_DSHOW if sys.platform.startswith("win") else 0
        with self._lock:
            if self.cap is not None:
                return
            cap = cv2.VideoCapture(self.index, backend)
            if not cap.isOpened():
                cap.release()
                raise CaptureAcquisitionFailure(f"cannot open camera {self.index}")
            self.cap = cap
        logger.info(f"[Capture] camera {self.index} opened")

    def read(self) -> np.ndarray:
        with self._lock:
            cap = self.cap
            if cap is None:
                raise NoFrameAvailable("camera not acquired")
            ok, frame = cap.read()
        if not ok or frame is None:
            raise NoFrameAvailable(f"camera {self.index} returned no frame")
        return draw_frame(frame, self.target_size)

    def release(self) -> None:
        with self._lock:
            cap, self.cap = self.cap, None
            if cap is None:
                return
            cap.release()
        logger.info(f"[Capture] camera {self.index} released")
