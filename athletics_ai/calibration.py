"""
Click-to-calibrate helpers for mapping image points onto a 1-D meter axis.

The user clicks the marks of one test layout in order (e.g. 0 m, 15 m, 30 m);
the first and last clicks define a calibration line and every other point in
the image is projected orthogonally onto it to get a distance in meters.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import math
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

from loguru import logger

import athletics_ai.config as cfg
from athletics_ai.errors import CalibrationError, ValidationWarning
from athletics_ai.geometry import Point2D, PointLike, cross, points_to_dicts, to_point
from athletics_ai.storage import ResultStore


CALIBRATION_METER_VALUES: Dict[str, tuple] = {
    "broad-jump": cfg.JUMP_METER_VALUES,
    "sprint": cfg.SPRINT_METER_VALUES,
    "kick": cfg.KICK_METER_VALUES,
}


def _kind_value(kind: Any) -> str:
    return str(getattr(kind, "value", kind))


def meter_values_for(kind: Any) -> List[float]:
    key = _kind_value(kind)
    if key not in CALIBRATION_METER_VALUES:
        raise KeyError(f"Unknown test kind: {key}")
    return [float(m) for m in CALIBRATION_METER_VALUES[key]]


@dataclass(frozen=True)
class LineCalibration:
    """Linear pixel <-> meter projection along one calibration line.

    ``direction`` is a unit vector. ``meters_per_pixel`` is negative when the
    meter marks decrease along the click order.
    """

    origin: Point2D
    direction: Point2D
    meters_per_pixel: float
    origin_meter_value: float

    @classmethod
    def from_points(
        cls,
        first: Point2D,
        last: Point2D,
        first_meters: float,
        last_meters: float,
    ) -> Optional["LineCalibration"]:
        dx = last.x - first.x
        dy = last.y - first.y
        length = math.hypot(dx, dy)
        if length < cfg.AXIS_EPSILON:
            return None
        return cls(
            origin=first,
            direction=Point2D(dx / length, dy / length),
            meters_per_pixel=(last_meters - first_meters) / length,
            origin_meter_value=float(first_meters),
        )

    def project_pixel_to_meters(self, point: Point2D) -> float:
        projection = (point.x - self.origin.x) * self.direction.x + (point.y - self.origin.y) * self.direction.y
        return self.origin_meter_value + projection * self.meters_per_pixel

    def project_meters_to_pixel(self, meters: float) -> Point2D:
        pixel_distance = (meters - self.origin_meter_value) / self.meters_per_pixel
        return Point2D(
            self.origin.x + pixel_distance * self.direction.x,
            self.origin.y + pixel_distance * self.direction.y,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "origin": self.origin.to_dict(),
            "direction": self.direction.to_dict(),
            "meters_per_pixel": self.meters_per_pixel,
            "origin_meter_value": self.origin_meter_value,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "LineCalibration":
        try:
            return cls(
                origin=to_point(payload["origin"]),
                direction=to_point(payload["direction"]),
                meters_per_pixel=float(payload["meters_per_pixel"]),
                origin_meter_value=float(payload["origin_meter_value"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise CalibrationError(f"Invalid calibration params: {exc}") from exc


def check_collinearity(
    p1: Point2D,
    p2: Point2D,
    p3: Point2D,
    tolerance: float = cfg.COLLINEARITY_TOLERANCE_PX,
) -> bool:
    return abs(cross(p1, p2, p3)) < tolerance


@dataclass
class LinesCalibrator:
    """Collects calibration clicks for one test kind and owns the result."""

    store: Optional[ResultStore] = None
    collinearity_tolerance: float = cfg.COLLINEARITY_TOLERANCE_PX
    test_type: Optional[str] = None
    points: List[Point2D] = field(default_factory=list)
    meter_values: List[float] = field(default_factory=list)
    params: Optional[LineCalibration] = None
    is_calibrating: bool = False
    warnings: List[ValidationWarning] = field(default_factory=list)
    on_calibration_point: Optional[Callable[[int, int, float], None]] = field(default=None, repr=False)
    on_calibration_complete: Optional[Callable[[Dict[str, Any]], None]] = field(default=None, repr=False)
    # Clicks and marks of the last completed calibration, restored on cancel.
    _previous: Optional[tuple] = field(default=None, init=False, repr=False)

    def subscribe(
        self,
        on_point: Optional[Callable[[int, int, float], None]] = None,
        on_complete: Optional[Callable[[Dict[str, Any]], None]] = None,
    ) -> None:
        if on_point is not None:
            self.on_calibration_point = on_point
        if on_complete is not None:
            self.on_calibration_complete = on_complete

    @property
    def expected_points(self) -> int:
        return len(self.meter_values)

    def begin_calibration(self, kind: Any, meter_values: Optional[Sequence[float]] = None) -> None:
        values = [float(m) for m in meter_values] if meter_values is not None else meter_values_for(kind)
        if len(values) < 2:
            raise ValueError("Calibration needs at least two meter marks.")
        if not self.is_calibrating:
            self._previous = (self.test_type, self.points, self.meter_values)
        self.test_type = _kind_value(kind)
        self.meter_values = values
        self.points = []
        self.warnings = []
        self.is_calibrating = True
        logger.info(f"Starting {self.test_type} calibration - click {len(values)} points")

    def add_point(self, point: PointLike) -> bool:
        """Record the next click; returns True once calibration completes."""
        if not self.is_calibrating:
            logger.warning("Ignoring calibration click: no calibration in progress")
            return False
        pt = to_point(point)
        index = len(self.points)
        meters = self.meter_values[index]
        self.points.append(pt)
        logger.info(f"Calibration point {index + 1}: ({pt.x:.1f}, {pt.y:.1f}) = {meters}m")
        if self.on_calibration_point:
            self.on_calibration_point(index + 1, self.expected_points, meters)

        if len(self.points) >= self.expected_points:
            return self._complete()
        return False

    def _complete(self) -> bool:
        self.is_calibrating = False
        if len(self.points) >= 3:
            first, last = self.points[0], self.points[-1]
            for middle in self.points[1:-1]:
                if not check_collinearity(first, middle, last, self.collinearity_tolerance):
                    self._warn(f"{self.test_type} calibration points are not collinear")
                    break

        params = LineCalibration.from_points(
            self.points[0],
            self.points[-1],
            self.meter_values[0],
            self.meter_values[-1],
        )
        if params is None:
            self._warn(f"{self.test_type} calibration line has zero length; click again")
            self._restore_previous()
            return False

        self.params = params
        self._previous = None
        self.save_calibration()
        logger.info(f"{self.test_type} calibration complete")
        if self.on_calibration_complete:
            self.on_calibration_complete(self.calibration_data())
        return True

    def _warn(self, message: str) -> None:
        self.warnings.append(ValidationWarning(message, source="calibration"))
        logger.warning(message)

    def _restore_previous(self) -> None:
        if self._previous is not None:
            self.test_type, self.points, self.meter_values = self._previous
            self._previous = None

    def cancel_calibration(self) -> None:
        """Abort the clicks in progress; a previous calibration stays in effect."""
        if self.is_calibrating:
            logger.info(f"{self.test_type} calibration cancelled")
        self.is_calibrating = False
        self._restore_previous()

    @property
    def calibrated(self) -> bool:
        return self.params is not None

    def project_pixel_to_meters(self, point: PointLike) -> Optional[float]:
        if self.params is None:
            return None
        return self.params.project_pixel_to_meters(to_point(point))

    def project_meters_to_pixel(self, meters: float) -> Optional[Point2D]:
        if self.params is None:
            return None
        return self.params.project_meters_to_pixel(meters)

    def distance_in_meters(self, point_a: PointLike, point_b: PointLike) -> Optional[float]:
        """Along-line distance between two points (not the 2-D pixel distance)."""
        meters_a = self.project_pixel_to_meters(point_a)
        meters_b = self.project_pixel_to_meters(point_b)
        if meters_a is None or meters_b is None:
            return None
        return abs(meters_b - meters_a)

    def calibration_data(self) -> Dict[str, Any]:
        return {
            "test_type": self.test_type,
            "points": points_to_dicts(self.points),
            "meter_values": list(self.meter_values),
            "params": self.params.to_dict() if self.params else None,
            "timestamp": time.time(),
        }

    def save_calibration(self) -> None:
        if self.store is None or self.params is None:
            return
        self.store.save_calibration(self.test_type, self.calibration_data())

    def load_calibration(self, kind: Any) -> bool:
        if self.store is None:
            return False
        payload = self.store.load_calibration(kind)
        if not payload:
            return False
        params = payload.get("params")
        if not params:
            return False
        self.params = LineCalibration.from_dict(params)
        self.test_type = _kind_value(kind)
        self.points = [to_point(p) for p in payload.get("points", [])]
        self.meter_values = [float(m) for m in payload.get("meter_values", [])]
        self.is_calibrating = False
        logger.info(f"Loaded {self.test_type} calibration")
        return True

    def clear_calibration(self, kind: Any) -> None:
        if self.store is not None:
            self.store.clear_calibration(kind)
        if self.test_type == _kind_value(kind):
            self.points = []
            self.meter_values = []
            self.params = None

    def is_calibrated(self, kind: Any) -> bool:
        if self.test_type == _kind_value(kind) and self.params is not None:
            return True
        if self.store is None:
            return False
        return bool(self.store.load_calibration(kind))


__all__ = [
    "CALIBRATION_METER_VALUES",
    "LineCalibration",
    "LinesCalibrator",
    "check_collinearity",
    "meter_values_for",
]
