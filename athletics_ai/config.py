"""
Central configuration values shared across the athletic-test entrypoints.

Importing these constants keeps the CLI scripts, the video pipeline and the
test state machines aligned while letting us tweak defaults in one place.
"""

from pathlib import Path

# Paths
BASE_DIR = Path(__file__).resolve().parent.parent
MODELS_DIR = BASE_DIR / "models"
DATA_DIR = BASE_DIR / ".athletics"
STORE_PATH = DATA_DIR / "store.json"

# Model weights
DETECTOR_WEIGHTS = str(MODELS_DIR / "yolo11m.pt")
POSE_WEIGHTS = str(MODELS_DIR / "yolo11n-pose.pt")

# Classes
BALL_CLASS_ID = 32

# Detection + pose thresholds
DET_CONF = 0.25
POSE_CONF = 0.4
MIN_LANDMARK_VISIBILITY = 0.5

# Calibration (meter marks clicked in order, per test kind)
JUMP_METER_VALUES = (0.0, 3.0)
SPRINT_METER_VALUES = (0.0, 15.0, 30.0)
KICK_METER_VALUES = (0.0, 10.0)
COLLINEARITY_TOLERANCE_PX = 10.0
CALIBRATION_STORAGE_KEY = "athleticTestCalibrations"

# Event detection
PARALLEL_EPSILON = 1e-10
AXIS_EPSILON = 1e-10
MIN_VERTICAL_SPEED_PX = 2.0

# Jump test
JUMP_GROUND_LEVEL_RATIO = 0.8  # Ground y as a fraction of image height
JUMP_SETTLE_DELAY_MS = 1000.0

# Sprint test
SPRINT_SPEED_SMOOTHING = 5
SPRINT_ACCEL_WINDOW = 3

# Kick test
KICK_MPS_TO_KMH = 3.6

# Ball tracking
BALL_MIN_RADIUS_PX = 5.0
BALL_MAX_RADIUS_PX = 50.0
BALL_MIN_SPEED_PX_MS = 1.0
BALL_MAX_SPEED_PX_MS = 100.0
BALL_ACCEPT_SCORE = 0.5
BALL_PREDICT_STEP_MS = 16.0
BALL_MAX_ANGLE_CHANGE_RAD = 0.7853981633974483  # 45 degrees
BALL_FRAME_BOUND_PX = 1000.0
BALL_STILL_RADIUS_PX = 5.0  # Movement below this refreshes a resting ball
BALL_MAX_GAP_MS = 100.0  # Speed gate and line crossings only across shorter gaps

# Smoothing utilities
DEFAULT_SMOOTHING_WINDOW = 5
DEFAULT_EMA_ALPHA = 0.3

# Body measurements (segment length as a fraction of standing height)
UPPER_ARM_TO_HEIGHT = 0.186
FOREARM_TO_HEIGHT = 0.146
THIGH_TO_HEIGHT = 0.245
SHIN_TO_HEIGHT = 0.246
MIN_BODY_HEIGHT_PX = 100.0
SHOULDER_TO_ANKLE_HEIGHT_FACTOR = 1.15
HIP_TO_NOSE_HEIGHT_FACTOR = 3.33
PROPORTION_WARN_LOW = 0.7
PROPORTION_WARN_HIGH = 1.3
PROPORTION_CLAMP_LOW = 0.5
PROPORTION_CLAMP_HIGH = 2.0

# User input
MIN_USER_HEIGHT_CM = 100.0
MAX_USER_HEIGHT_CM = 250.0

# Persistence
MAX_SAVED_RESULTS = 50
EXPORT_VERSION = "1.0"
REPORT_MAX_RECORDS = 2000

# Unit system toggle
USE_METRIC_DISPLAY = True  # True = m/s and meters, False = km/h and km

__all__ = [name for name in globals() if name.isupper()]
