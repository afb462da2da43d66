"""
Sprint with timing lines: follow the hip mid-point, time each calibrated mark
and summarize splits, speeds and per-split accelerations.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from loguru import logger

from athletics_ai.ball import BallDetection
from athletics_ai.events import LineSegment
from athletics_ai.geometry import Point2D
from athletics_ai.landmarks import LandmarkSnapshot, pixel_midpoint
from athletics_ai.smoothing import AccelerationCalculator, SpeedSample, SpeedSmoother

from .base import AthleticTest, FrameScale, SprintResult


def crossing_key(meters: float) -> str:
    return f"t{meters:g}"


def split_key(start_m: float, end_m: float) -> str:
    return f"{start_m:g}-{end_m:g}m"


def summarize_sprint(
    crossing_ms: Sequence[float],
    marks: Sequence[float],
    max_speed: float = 0.0,
    speed_history: Optional[List[SpeedSample]] = None,
) -> SprintResult:
    """Build a ``SprintResult`` from the crossing time (ms) of every mark.

    Splits and total time are in seconds. ``avg_accels`` is
    ``split_distance / split_time**2`` per split.
    """
    if len(crossing_ms) != len(marks) or len(marks) < 2:
        raise ValueError("Need one crossing time per mark and at least two marks.")

    splits: Dict[str, float] = {}
    avg_accels: Dict[str, float] = {}
    for (m_a, t_a), (m_b, t_b) in zip(zip(marks, crossing_ms), zip(marks[1:], crossing_ms[1:])):
        key = split_key(m_a, m_b)
        split = (t_b - t_a) / 1000.0
        splits[key] = split
        avg_accels[key] = (m_b - m_a) / split**2 if split > 0 else 0.0

    total_distance = float(marks[-1] - marks[0])
    total_time = (crossing_ms[-1] - crossing_ms[0]) / 1000.0
    avg_speed = total_distance / total_time if total_time > 0 else 0.0

    return SprintResult(
        splits=splits,
        total_time=total_time,
        avg_speed_total=avg_speed,
        max_speed=max_speed,
        avg_accels=avg_accels,
        crossing_times={crossing_key(m): t for m, t in zip(marks, crossing_ms)},
        total_distance_m=total_distance,
        speed_history=list(speed_history or []),
    )


class SprintTracker:
    tracked_id = "runner"

    def __init__(self, speed_smoothing: int = 5, accel_window: int = 3):
        self.speed_smoother = SpeedSmoother(speed_smoothing)
        self.accel_calc = AccelerationCalculator(accel_window)
        self.reset()

    def reset(self) -> None:
        self.speed_smoother.reset()
        self.accel_calc.reset()
        self.crossing_ms: List[float] = []
        self.speed_history: List[SpeedSample] = []
        self.max_speed = 0.0
        self.acceleration = 0.0

    def on_start(self, test: AthleticTest) -> None:
        self.reset()
        logger.debug(f"Sprint marks: {test.calibrator.meter_values}")

    def next_line(self, test: AthleticTest, scale: FrameScale) -> Optional[LineSegment]:
        marks = test.calibrator.meter_values
        if len(self.crossing_ms) >= len(marks):
            return None
        anchor = test.calibrator.project_meters_to_pixel(marks[len(self.crossing_ms)])
        if anchor is None:
            return None
        return LineSegment(Point2D(anchor.x, 0.0), Point2D(anchor.x, scale.image_height))

    def process(
        self,
        test: AthleticTest,
        snapshot: Optional[LandmarkSnapshot],
        timestamp: float,
        scale: FrameScale,
        ball: Optional[Sequence[BallDetection]] = None,
        frame: Any = None,
    ) -> None:
        hips = pixel_midpoint(
            snapshot,
            "left_hip",
            "right_hip",
            scale.image_width,
            scale.image_height,
            test.options.min_visibility,
        )
        if hips is None:
            return

        prev = test.events.track_position(self.tracked_id, hips, timestamp)

        speed_px_ms = self.speed_smoother.add_position(hips, timestamp)
        # px/ms -> m/s; stays in px/ms when no scale is known.
        factor = scale.meters_per_px * 1000.0 if scale.meters_per_px else 1.0
        speed = speed_px_ms * factor
        self.max_speed = max(self.max_speed, speed)
        self.speed_history.append(SpeedSample(timestamp, speed, self.speed_smoother.history[-1].position))
        self.acceleration = self.accel_calc.add_speed(speed, timestamp / 1000.0)

        if prev is None:
            return

        line = self.next_line(test, scale)
        crossing = test.events.detect_line_crossing(prev.position, hips, line, prev.timestamp, timestamp)
        if crossing is None:
            return

        marks = test.calibrator.meter_values
        meters = marks[len(self.crossing_ms)]
        relative = test.relative_time(crossing.time)
        self.crossing_ms.append(relative)
        test.notify(f"{meters:g}m: {relative / 1000.0:.2f}s")

        if len(self.crossing_ms) == len(marks):
            test.finalize(scale)

    def finalize(self, test: AthleticTest, scale: FrameScale) -> Optional[SprintResult]:
        marks = test.calibrator.meter_values
        if len(self.crossing_ms) != len(marks):
            logger.error(f"Sprint incomplete: {len(self.crossing_ms)}/{len(marks)} lines crossed")
            return None
        return summarize_sprint(self.crossing_ms, marks, self.max_speed, self.speed_history)


__all__ = ["SprintTracker", "summarize_sprint", "crossing_key", "split_key"]
