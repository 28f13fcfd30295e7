import threading

import numpy as np
import pytest

from processing import capture
from processing.capture import OpenCVCamera
from processing.errors import CaptureAcquisitionFailure, NoFrameAvailable


class StubVideoCapture:
    """Stands in for cv2.VideoCapture; read() can be held open by the test."""

    def __init__(self, index, backend=0, opened=True, block=False):
        self.index = index
        self.opened = opened
        self.released = False
        self.read_started = threading.Event()
        self.proceed = threading.Event()
        if not block:
            self.proceed.set()

    def isOpened(self):
        return self.opened

    def read(self):
        self.read_started.set()
        self.proceed.wait(2)
        if self.released:
            raise RuntimeError("read on a released capture")
        return True, np.full((480, 640, 3), (50, 50, 200), dtype=np.uint8)

    def release(self):
        self.released = True


def install(monkeypatch, **kwargs):
    created = []

    def factory(index, backend=0):
        stub = StubVideoCapture(index, backend, **kwargs)
        created.append(stub)
        return stub

    monkeypatch.setattr(capture.cv2, "VideoCapture", factory)
    return created


def test_unopened_device_raises_and_is_released(monkeypatch):
    created = install(monkeypatch, opened=False)
    camera = OpenCVCamera(3)

    with pytest.raises(CaptureAcquisitionFailure):
        camera.acquire()

    assert not camera.acquired
    assert created[0].released
    with pytest.raises(NoFrameAvailable):
        camera.read()


def test_read_draws_fixed_size_rgba(monkeypatch):
    install(monkeypatch)
    camera = OpenCVCamera(0)
    camera.acquire()

    frame = camera.read()

    assert frame.shape == (200, 300, 4)
    r, g, b = frame[10, 10, :3]
    assert r > g and r > b


def test_release_waits_for_read_in_flight(monkeypatch):
    created = install(monkeypatch, block=True)
    camera = OpenCVCamera(0)
    camera.acquire()
    stub = created[0]
    results, errors = [], []

    def do_read():
        try:
            results.append(camera.read())
        except Exception as e:
            errors.append(e)

    reader = threading.Thread(target=do_read)
    reader.start()
    assert stub.read_started.wait(2)

    releaser = threading.Thread(target=camera.release)
    releaser.start()
    releaser.join(0.1)
    assert releaser.is_alive()
    assert not stub.released

    stub.proceed.set()
    reader.join(2)
    releaser.join(2)

    assert errors == []
    assert results[0].shape == (200, 300, 4)
    assert stub.released
    assert not camera.acquired
    with pytest.raises(NoFrameAvailable):
        camera.read()
