class GameError(Exception):
    """Base class for recoverable game-engine errors."""


class NoFrameAvailable(GameError):
    """Capture device not ready, or no frame received yet."""


class AllPixelsRejected(GameError):
    """Every pixel of the frame fell outside the brightness band."""


class CaptureAcquisitionFailure(GameError):
    """Camera permission denied, device missing or busy."""


class InvalidConfirmWhileUnknown(GameError):
    """Player confirmed without a valid colour verdict."""
