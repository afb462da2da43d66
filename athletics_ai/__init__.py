"""
Calibrated athletic tests (broad jump, sprint, kick) from body-landmark and
ball-position streams.

The package keeps the pure pieces (smoothing, calibration, event detection,
test state machines) separate from the adapters that talk to ultralytics,
OpenCV and the on-disk store, so the core can be driven by any pose engine.
"""

from athletics_ai import config  # noqa: F401
from athletics_ai.athletic_tests import (  # noqa: F401
    AthleticTest,
    FrameScale,
    JumpResult,
    KickResult,
    SprintResult,
    TestKind,
    TestState,
    create_test,
    get_test_definition,
    get_test_names,
)
from athletics_ai.calibration import LineCalibration, LinesCalibrator  # noqa: F401
from athletics_ai.errors import (  # noqa: F401
    AthleticsError,
    CalibrationError,
    MeasurementError,
    PreconditionError,
    ValidationWarning,
)
from athletics_ai.events import EventDetector  # noqa: F401
from athletics_ai.geometry import Point2D  # noqa: F401
from athletics_ai.landmarks import Landmark, LandmarkSnapshot  # noqa: F401
from athletics_ai.options import TestOptions  # noqa: F401
from athletics_ai.smoothing import AccelerationCalculator, SmoothingFilter, SpeedSmoother  # noqa: F401
from athletics_ai.storage import JsonFileStorage, MemoryStorage, ResultStore  # noqa: F401

__all__ = [
    "config",
    "AthleticTest",
    "FrameScale",
    "JumpResult",
    "KickResult",
    "SprintResult",
    "TestKind",
    "TestState",
    "create_test",
    "get_test_definition",
    "get_test_names",
    "LineCalibration",
    "LinesCalibrator",
    "AthleticsError",
    "CalibrationError",
    "MeasurementError",
    "PreconditionError",
    "ValidationWarning",
    "EventDetector",
    "Point2D",
    "Landmark",
    "LandmarkSnapshot",
    "TestOptions",
    "AccelerationCalculator",
    "SmoothingFilter",
    "SpeedSmoother",
    "JsonFileStorage",
    "MemoryStorage",
    "ResultStore",
]
