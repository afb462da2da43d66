"""
Standing broad jump: follow the ankles, detect takeoff and landing, and
measure the along-line distance between the two positions.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from loguru import logger

from athletics_ai.ball import BallDetection
from athletics_ai.geometry import Point2D
from athletics_ai.landmarks import LandmarkSnapshot, pixel_midpoint

from .base import AthleticTest, FrameScale, JumpResult, trajectory_record


class JumpTracker:
    tracked_id = "jumper"

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        self.takeoff_position: Optional[Point2D] = None
        self.takeoff_time: Optional[float] = None
        self.landing_position: Optional[Point2D] = None
        self.landing_time: Optional[float] = None
        self.landing_detected = False
        self.trajectory: List[Dict[str, float]] = []

    def on_start(self, test: AthleticTest) -> None:
        self.reset()

    def process(
        self,
        test: AthleticTest,
        snapshot: Optional[LandmarkSnapshot],
        timestamp: float,
        scale: FrameScale,
        ball: Optional[Sequence[BallDetection]] = None,
        frame: Any = None,
    ) -> None:
        feet = pixel_midpoint(
            snapshot,
            "left_ankle",
            "right_ankle",
            scale.image_width,
            scale.image_height,
            test.options.min_visibility,
        )
        if feet is None:
            return

        self.trajectory.append(trajectory_record(timestamp, feet))
        prev = test.events.track_position(self.tracked_id, feet, timestamp)
        if prev is None:
            return

        ground_y = scale.image_height * test.options.ground_level_ratio
        min_speed = test.options.min_vertical_speed_px

        if self.takeoff_position is None:
            if test.events.detect_takeoff(prev.position, feet, ground_y, min_speed):
                self.takeoff_position = feet
                self.takeoff_time = timestamp
                test.notify("Takeoff detected - tracking jump...")
            return

        if not self.landing_detected and test.events.detect_landing(prev.position, feet, ground_y, min_speed):
            self.landing_detected = True
            self.landing_time = timestamp
            self.landing_position = feet
            test.schedule_finalize(timestamp + test.options.settle_delay_ms, scale)
            test.notify("Landing detected - finalizing measurement...")

    def finalize(self, test: AthleticTest, scale: FrameScale) -> Optional[JumpResult]:
        if self.takeoff_position is None or self.landing_position is None:
            logger.error("Missing takeoff or landing position")
            return None

        distance = test.calibrator.distance_in_meters(self.takeoff_position, self.landing_position)
        if distance is None:
            logger.error("Failed to calculate jump distance")
            return None

        flight_time_ms = self.landing_time - self.takeoff_time
        jump_time_ms = test.relative_time(self.landing_time)
        takeoff_speed = distance / (flight_time_ms / 1000.0) if flight_time_ms > 0 else 0.0

        return JumpResult(
            distance_m=distance,
            takeoff_speed_mps=takeoff_speed,
            flight_time_ms=flight_time_ms,
            jump_time_ms=jump_time_ms,
            takeoff_time=self.takeoff_time,
            landing_time=self.landing_time,
            takeoff_position=self.takeoff_position,
            landing_position=self.landing_position,
            trajectory=list(self.trajectory),
        )


__all__ = ["JumpTracker"]
