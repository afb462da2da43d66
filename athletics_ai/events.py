"""
Sub-frame event detection between consecutive tracked positions.

Crossings are located by linear interpolation between the previous and current
sample, so the reported time can fall between two frames. Degenerate input
(parallel segments, no movement along the axis) yields ``None``, which callers
treat as "no event" rather than an error.
"""

from dataclasses import dataclass
import math
from typing import Dict, Optional, Tuple

from athletics_ai import config as cfg
from athletics_ai.geometry import Point2D, lerp


@dataclass(frozen=True)
class TrackedState:
    position: Point2D
    timestamp: float


@dataclass(frozen=True)
class LineSegment:
    p1: Point2D
    p2: Point2D


@dataclass(frozen=True)
class CrossingEvent:
    time: float
    position: Point2D
    t_fraction: float
    direction: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "time": self.time,
            "position": self.position.to_dict(),
            "t_fraction": self.t_fraction,
            "direction": self.direction,
        }


@dataclass(frozen=True)
class Velocity:
    x: float
    y: float
    magnitude: float


def segment_intersection(
    p1: Point2D,
    p2: Point2D,
    p3: Point2D,
    p4: Point2D,
    epsilon: float = cfg.PARALLEL_EPSILON,
) -> Optional[Tuple[float, float]]:
    """Return (t, u) for segments p1-p2 and p3-p4, or None when parallel.

    ``t`` parametrizes p1-p2 and ``u`` parametrizes p3-p4; the segments
    actually intersect only when both lie in [0, 1].
    """
    denom = (p1.x - p2.x) * (p3.y - p4.y) - (p1.y - p2.y) * (p3.x - p4.x)
    if abs(denom) < epsilon:
        return None
    t = ((p1.x - p3.x) * (p3.y - p4.y) - (p1.y - p3.y) * (p3.x - p4.x)) / denom
    u = -((p1.x - p2.x) * (p1.y - p3.y) - (p1.y - p2.y) * (p1.x - p3.x)) / denom
    return t, u


class EventDetector:
    """Keeps the last-seen position per tracked id and detects crossings."""

    def __init__(self):
        self.previous: Dict[str, TrackedState] = {}

    def track_position(self, object_id: str, position: Point2D, timestamp: float) -> Optional[TrackedState]:
        prev = self.previous.get(object_id)
        self.previous[object_id] = TrackedState(position, timestamp)
        return prev

    def clear_tracking(self, object_id: Optional[str] = None) -> None:
        if object_id is None:
            self.previous.clear()
        else:
            self.previous.pop(object_id, None)

    def detect_line_crossing(
        self,
        prev_pos: Optional[Point2D],
        curr_pos: Optional[Point2D],
        line: Optional[LineSegment],
        prev_time: float,
        curr_time: float,
    ) -> Optional[CrossingEvent]:
        if prev_pos is None or curr_pos is None or line is None:
            return None
        params = segment_intersection(prev_pos, curr_pos, line.p1, line.p2)
        if params is None:
            return None
        t, u = params
        if not (0.0 <= t <= 1.0 and 0.0 <= u <= 1.0):
            return None
        return CrossingEvent(
            time=prev_time + (curr_time - prev_time) * t,
            position=lerp(prev_pos, curr_pos, t),
            t_fraction=t,
        )

    def detect_vertical_line_crossing(
        self,
        prev_pos: Optional[Point2D],
        curr_pos: Optional[Point2D],
        line_x: float,
        prev_time: float,
        curr_time: float,
    ) -> Optional[CrossingEvent]:
        if prev_pos is None or curr_pos is None:
            return None
        if (prev_pos.x < line_x) == (curr_pos.x < line_x):
            return None
        dx = curr_pos.x - prev_pos.x
        if abs(dx) < cfg.AXIS_EPSILON:
            return None
        t = (line_x - prev_pos.x) / dx
        if t < 0.0 or t > 1.0:
            return None
        return CrossingEvent(
            time=prev_time + (curr_time - prev_time) * t,
            position=Point2D(line_x, prev_pos.y + (curr_pos.y - prev_pos.y) * t),
            t_fraction=t,
            direction="right" if curr_pos.x > prev_pos.x else "left",
        )

    def detect_horizontal_line_crossing(
        self,
        prev_pos: Optional[Point2D],
        curr_pos: Optional[Point2D],
        line_y: float,
        prev_time: float,
        curr_time: float,
    ) -> Optional[CrossingEvent]:
        if prev_pos is None or curr_pos is None:
            return None
        if (prev_pos.y < line_y) == (curr_pos.y < line_y):
            return None
        dy = curr_pos.y - prev_pos.y
        if abs(dy) < cfg.AXIS_EPSILON:
            return None
        t = (line_y - prev_pos.y) / dy
        if t < 0.0 or t > 1.0:
            return None
        return CrossingEvent(
            time=prev_time + (curr_time - prev_time) * t,
            position=Point2D(prev_pos.x + (curr_pos.x - prev_pos.x) * t, line_y),
            t_fraction=t,
            direction="down" if curr_pos.y > prev_pos.y else "up",
        )

    # Image y grows downward, so "above ground" means y < ground_y.
    def detect_landing(
        self,
        prev_pos: Optional[Point2D],
        curr_pos: Optional[Point2D],
        ground_y: float,
        min_vertical_speed: float = cfg.MIN_VERTICAL_SPEED_PX,
    ) -> bool:
        if prev_pos is None or curr_pos is None:
            return False
        vertical_speed = curr_pos.y - prev_pos.y
        crossed = prev_pos.y < ground_y <= curr_pos.y
        return crossed and vertical_speed >= min_vertical_speed

    def detect_takeoff(
        self,
        prev_pos: Optional[Point2D],
        curr_pos: Optional[Point2D],
        ground_y: float,
        min_vertical_speed: float = cfg.MIN_VERTICAL_SPEED_PX,
    ) -> bool:
        if prev_pos is None or curr_pos is None:
            return False
        vertical_speed = prev_pos.y - curr_pos.y
        left_ground = curr_pos.y < ground_y <= prev_pos.y
        return left_ground and vertical_speed >= min_vertical_speed

    def calculate_velocity(
        self,
        prev_pos: Optional[Point2D],
        curr_pos: Optional[Point2D],
        prev_time: float,
        curr_time: float,
    ) -> Optional[Velocity]:
        if prev_pos is None or curr_pos is None or prev_time >= curr_time:
            return None
        dt = curr_time - prev_time
        dx = curr_pos.x - prev_pos.x
        dy = curr_pos.y - prev_pos.y
        return Velocity(dx / dt, dy / dt, math.hypot(dx, dy) / dt)

    def detect_direction_change(
        self,
        prev_velocity: Optional[Velocity],
        curr_velocity: Optional[Velocity],
        axis: str = "y",
    ) -> bool:
        """True when the velocity sign flips on ``axis`` (e.g. jump apex)."""
        if prev_velocity is None or curr_velocity is None:
            return False
        if axis not in ("x", "y"):
            raise ValueError(f"Unknown axis: {axis}")
        prev_sign = _sign(getattr(prev_velocity, axis))
        curr_sign = _sign(getattr(curr_velocity, axis))
        return prev_sign != 0 and prev_sign != curr_sign


def _sign(value: float) -> int:
    if value > 0:
        return 1
    if value < 0:
        return -1
    return 0


__all__ = [
    "TrackedState",
    "LineSegment",
    "CrossingEvent",
    "Velocity",
    "segment_intersection",
    "EventDetector",
]
