"""
Shared state machine for the athletic tests.

One ``AthleticTest`` instance drives one test kind through
calibration -> running -> finalized. Everything kind-specific (which landmark
to follow, which events to look for, how to finalize) lives in a tracker
object chosen by the registry, so the three tests share this class instead of
subclassing it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import time
from typing import Any, Callable, ClassVar, Dict, List, Optional, Protocol, Sequence, Union

from loguru import logger

from athletics_ai.ball import BallDetection
from athletics_ai.calibration import LinesCalibrator
from athletics_ai.errors import PreconditionError
from athletics_ai.events import EventDetector
from athletics_ai.geometry import Point2D, PointLike
from athletics_ai.landmarks import LandmarkSnapshot
from athletics_ai.options import TestOptions
from athletics_ai.smoothing import SpeedSample
from athletics_ai.storage import ResultStore


class TestKind(str, Enum):
    __test__ = False

    JUMP = "broad-jump"
    SPRINT = "sprint"
    KICK = "kick"


class TestState(str, Enum):
    __test__ = False

    UNINITIALIZED = "uninitialized"
    CALIBRATING = "calibrating"
    CALIBRATED = "calibrated"
    RUNNING = "running"
    FINALIZED = "finalized"


@dataclass(frozen=True)
class FrameScale:
    """Image size plus the metric factor derived from the calibration."""

    image_width: float
    image_height: float
    meters_per_px: Optional[float] = None

    @property
    def cm_per_px(self) -> Optional[float]:
        return self.meters_per_px * 100.0 if self.meters_per_px is not None else None

    @property
    def px_per_m(self) -> Optional[float]:
        if not self.meters_per_px:
            return None
        return 1.0 / self.meters_per_px


@dataclass(frozen=True)
class JumpResult:
    kind: ClassVar[TestKind] = TestKind.JUMP

    distance_m: float
    takeoff_speed_mps: float
    flight_time_ms: float
    jump_time_ms: float
    takeoff_time: float
    landing_time: float
    takeoff_position: Point2D
    landing_position: Point2D
    trajectory: List[Dict[str, float]] = field(default_factory=list)
    created_at: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "distance": self.distance_m,
            "takeoffSpeed": self.takeoff_speed_mps,
            "flightTime": self.flight_time_ms,
            "jumpTime": self.jump_time_ms,
            "takeoffTime": self.takeoff_time,
            "landingTime": self.landing_time,
            "takeoffPosition": self.takeoff_position.to_dict(),
            "landingPosition": self.landing_position.to_dict(),
            "trajectory": list(self.trajectory),
            "timestamp": self.created_at,
        }


@dataclass(frozen=True)
class SprintResult:
    kind: ClassVar[TestKind] = TestKind.SPRINT

    splits: Dict[str, float]
    total_time: float
    avg_speed_total: float
    max_speed: float
    avg_accels: Dict[str, float]
    crossing_times: Dict[str, float]
    total_distance_m: float
    speed_history: List[SpeedSample] = field(default_factory=list)
    created_at: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "splits": dict(self.splits),
            "totalTime": self.total_time,
            "avgSpeedTotal": self.avg_speed_total,
            "maxSpeed": self.max_speed,
            "avgAccels": dict(self.avg_accels),
            "crossingTimes": dict(self.crossing_times),
            "totalDistance": self.total_distance_m,
            "speedHistory": [s.to_dict() for s in self.speed_history],
            "timestamp": self.created_at,
        }


@dataclass(frozen=True)
class KickResult:
    kind: ClassVar[TestKind] = TestKind.KICK

    ball_speed_mps: float
    ball_speed_kmh: float
    flight_time_s: float
    distance_m: float
    start_line_time: float
    end_line_time: float
    trajectory: List[BallDetection] = field(default_factory=list)
    created_at: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "ballSpeed": self.ball_speed_mps,
            "ballSpeedKmh": self.ball_speed_kmh,
            "flightTime": self.flight_time_s,
            "distance": self.distance_m,
            "startLineTime": self.start_line_time,
            "endLineTime": self.end_line_time,
            "ballTrajectory": [d.to_dict() for d in self.trajectory],
            "timestamp": self.created_at,
        }


TestResult = Union[JumpResult, SprintResult, KickResult]


@dataclass
class PendingFinalize:
    """A finalize scheduled for logical time ``due_time`` (frame clock, ms)."""

    due_time: float
    scale: FrameScale
    attempt: int


class Tracker(Protocol):
    tracked_id: str

    def on_start(self, test: "AthleticTest") -> None: ...

    def process(
        self,
        test: "AthleticTest",
        snapshot: Optional[LandmarkSnapshot],
        timestamp: float,
        scale: FrameScale,
        ball: Optional[Sequence[BallDetection]],
        frame: Any,
    ) -> None: ...

    def finalize(self, test: "AthleticTest", scale: FrameScale) -> Optional[TestResult]: ...

    def reset(self) -> None: ...


class AthleticTest:
    """Frame-synchronous state machine for one test kind."""

    def __init__(
        self,
        definition,
        tracker: Tracker,
        store: Optional[ResultStore] = None,
        options: Optional[TestOptions] = None,
        user_height_cm: Optional[float] = None,
    ):
        self.definition = definition
        self.kind: TestKind = definition.kind
        self.tracker = tracker
        self.options = options or TestOptions()
        self.user_height_cm = user_height_cm
        self.calibrator = LinesCalibrator(
            store=store,
            collinearity_tolerance=self.options.collinearity_tolerance_px,
        )
        self.events = EventDetector()
        self.state = TestState.UNINITIALIZED
        self.start_time: Optional[float] = None
        self.result: Optional[TestResult] = None
        self.pending: Optional[PendingFinalize] = None
        self.attempt = 0
        self._completed_attempt: Optional[int] = None
        self.on_progress: Optional[Callable[[str], None]] = None
        self.on_complete: Optional[Callable[[TestResult], None]] = None
        self.on_calibration_complete: Optional[Callable[[Dict[str, Any]], None]] = None

        if self.calibrator.load_calibration(self.kind):
            self.state = TestState.CALIBRATED

    # Observers (single subscriber each; the last registration wins)
    def subscribe(
        self,
        on_progress: Optional[Callable[[str], None]] = None,
        on_complete: Optional[Callable[[TestResult], None]] = None,
        on_calibration_complete: Optional[Callable[[Dict[str, Any]], None]] = None,
    ) -> None:
        if on_progress is not None:
            self.on_progress = on_progress
        if on_complete is not None:
            self.on_complete = on_complete
        if on_calibration_complete is not None:
            self.on_calibration_complete = on_calibration_complete

    @property
    def is_calibrated(self) -> bool:
        return self.calibrator.calibrated

    @property
    def is_running(self) -> bool:
        return self.state == TestState.RUNNING

    # Calibration
    def start_calibration(self, meter_values: Optional[Sequence[float]] = None) -> None:
        self._cancel_pending()
        self.calibrator.subscribe(
            on_point=self._calibration_point,
            on_complete=self._calibration_complete,
        )
        self.calibrator.begin_calibration(
            self.kind,
            meter_values if meter_values is not None else self.definition.meter_values,
        )
        self.state = TestState.CALIBRATING

    def add_calibration_click(self, point: PointLike) -> bool:
        if self.state != TestState.CALIBRATING:
            raise PreconditionError("Calibration has not been started")
        done = self.calibrator.add_point(point)
        if not self.calibrator.is_calibrating and not done:
            # Degenerate line: fall back to whatever state we had before.
            self.state = TestState.CALIBRATED if self.is_calibrated else TestState.UNINITIALIZED
        return done

    def _calibration_point(self, index: int, total: int, meters: float) -> None:
        self.notify(f"Calibration point {index}/{total} set ({meters:g} m)")

    def _calibration_complete(self, data: Dict[str, Any]) -> None:
        self.state = TestState.CALIBRATED
        if self.on_calibration_complete:
            self.on_calibration_complete(data)

    def frame_scale(self, image_width: float, image_height: float) -> FrameScale:
        params = self.calibrator.params
        meters_per_px = abs(params.meters_per_pixel) if params is not None else None
        return FrameScale(float(image_width), float(image_height), meters_per_px)

    # Run control
    def start_test(self, timestamp: Optional[float] = None) -> None:
        if not self.is_calibrated or self.state in (TestState.UNINITIALIZED, TestState.CALIBRATING):
            raise PreconditionError("Test must be calibrated first")
        if self.definition.requires_user_height and not self.user_height_cm:
            raise PreconditionError("User height is required for this test")

        self._clear_run()
        self.attempt += 1
        self.start_time = timestamp
        self.state = TestState.RUNNING
        self.tracker.on_start(self)
        logger.info(f"{self.kind.value} test started")

    def stop_test(self) -> None:
        if self.state == TestState.RUNNING:
            self.state = TestState.CALIBRATED
        logger.info(f"{self.kind.value} test stopped")

    def reset_test(self) -> None:
        self.calibrator.cancel_calibration()
        self._clear_run()
        self.state = TestState.CALIBRATED if self.is_calibrated else TestState.UNINITIALIZED
        logger.info(f"{self.kind.value} test reset")

    def _clear_run(self) -> None:
        self._cancel_pending()
        self.start_time = None
        self.result = None
        self.tracker.reset()
        self.events.clear_tracking()

    def _cancel_pending(self) -> None:
        if self.pending is not None:
            logger.debug(f"Cancelled pending {self.kind.value} finalize at {self.pending.due_time}")
        self.pending = None

    # Frame processing
    def process_frame(
        self,
        snapshot: Optional[LandmarkSnapshot],
        timestamp: float,
        scale: FrameScale,
        ball: Optional[Sequence[BallDetection]] = None,
        frame: Any = None,
    ) -> None:
        if self.state != TestState.RUNNING:
            return
        if self.start_time is None:
            self.start_time = timestamp
        if self.poll(timestamp):
            return
        self.tracker.process(self, snapshot, timestamp, scale, ball, frame)

    def schedule_finalize(self, due_time: float, scale: FrameScale) -> None:
        self.pending = PendingFinalize(due_time, scale, self.attempt)

    def poll(self, timestamp: float) -> bool:
        """Run a pending finalize whose due time has passed; True if it ran."""
        pending = self.pending
        if pending is None or timestamp < pending.due_time:
            return False
        self.pending = None
        if pending.attempt != self.attempt or self.state != TestState.RUNNING:
            return False
        self.finalize(pending.scale)
        return True

    def finalize(self, scale: FrameScale) -> Optional[TestResult]:
        result = self.tracker.finalize(self, scale)
        if result is None:
            return None
        self.complete(result)
        return result

    def complete(self, result: TestResult) -> None:
        if self._completed_attempt == self.attempt:
            logger.warning(f"{self.kind.value} attempt {self.attempt} already completed")
            return
        self._completed_attempt = self.attempt
        self.result = result
        self.state = TestState.FINALIZED
        logger.info(f"{self.kind.value} test complete: {result.to_dict()}")
        if self.on_complete:
            self.on_complete(result)

    def notify(self, message: str) -> None:
        logger.info(message)
        if self.on_progress:
            self.on_progress(message)

    def get_result(self) -> Optional[TestResult]:
        return self.result

    def relative_time(self, timestamp: float) -> float:
        return timestamp - (self.start_time or 0.0)


def trajectory_record(timestamp: float, position: Point2D) -> Dict[str, float]:
    return {"time": timestamp, "x": position.x, "y": position.y}


__all__ = [
    "TestKind",
    "TestState",
    "FrameScale",
    "JumpResult",
    "SprintResult",
    "KickResult",
    "TestResult",
    "PendingFinalize",
    "Tracker",
    "AthleticTest",
    "trajectory_record",
]
