import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent / ".env")
load_dotenv(Path(__file__).resolve().parent / ".env")

# Difficulty (flash duration per colour, ms)
INITIAL_DIFFICULTY_MS = int(os.getenv("INITIAL_DIFFICULTY_MS", "1000"))
MIN_DIFFICULTY_MS = 300
DIFFICULTY_STEP_MS = 50
SPEED_MODE_REDUCTION_MS = 300

# Sequence
SEQUENCE_LENGTH_DEFAULT = 3
SEQUENCE_LENGTH_LONG = 5

# Playback / countdown timing
INTER_SYMBOL_GAP_MS = 200
PRE_COUNTDOWN_SECONDS = 3
COUNTDOWN_TICK_SECONDS = 1.0

# Detection window
DETECTION_WINDOW_SECONDS = int(os.getenv("DETECTION_WINDOW_SECONDS", "5"))
DETECTION_TICK_SECONDS = float(os.getenv("DETECTION_TICK_SECONDS", "1.0"))
# 0 disables auto-start; the player has to press "start detection"
AUTO_DETECTION_DELAY_SECONDS = float(os.getenv("AUTO_DETECTION_DELAY_SECONDS", "0"))

# Colour classification (per-pixel brightness band, 0-255)
BRIGHTNESS_MIN = 50
BRIGHTNESS_MAX = 240

# Capture
CAPTURE_SOURCE = os.getenv("CAPTURE_SOURCE", "client")  # "client" | "local"
CAMERA_INDEX = int(os.getenv("CAMERA_INDEX", "0"))
CAMERA_FACING_MODE = os.getenv("CAMERA_FACING_MODE", "environment")
FRAME_WIDTH = 300
FRAME_HEIGHT = 200

# Server
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")
