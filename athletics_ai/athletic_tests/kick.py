"""
Kick speed: time the ball between the start line and the end line.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

from loguru import logger

import athletics_ai.config as cfg
from athletics_ai.ball import BallDetection, BallDetector, BallTracker
from athletics_ai.landmarks import LandmarkSnapshot

from .base import AthleticTest, FrameScale, KickResult


class KickTracker:
    tracked_id = "ball"

    def __init__(self, detector: Optional[BallDetector] = None):
        self.ball_tracker = BallTracker(detector)
        self.reset()

    def reset(self) -> None:
        self.ball_tracker.clear_history()
        self.start_line_time: Optional[float] = None
        self.end_line_time: Optional[float] = None

    def on_start(self, test: AthleticTest) -> None:
        self.reset()
        self.ball_tracker.start_tracking()
        test.notify("Waiting for the ball to cross the start line...")

    def line_meters(self, test: AthleticTest) -> tuple:
        marks = test.calibrator.meter_values
        end = test.options.kick_distance_m
        return marks[0], end if end is not None else marks[-1]

    def process(
        self,
        test: AthleticTest,
        snapshot: Optional[LandmarkSnapshot],
        timestamp: float,
        scale: FrameScale,
        ball: Optional[Sequence[BallDetection]] = None,
        frame: Any = None,
    ) -> None:
        if ball is None and frame is None:
            return
        self.ball_tracker.frame_bound = max(scale.image_width, scale.image_height)
        detection = self.ball_tracker.detect_ball(frame, timestamp, candidates=ball)
        if detection is None:
            return

        prev = test.events.track_position(self.tracked_id, detection.position, timestamp)
        if prev is None or timestamp - prev.timestamp > self.ball_tracker.max_gap_ms:
            return

        start_m, end_m = self.line_meters(test)
        if self.start_line_time is None:
            anchor = test.calibrator.project_meters_to_pixel(start_m)
            if anchor is None:
                return
            crossing = test.events.detect_vertical_line_crossing(
                prev.position, detection.position, anchor.x, prev.timestamp, timestamp
            )
            if crossing is not None:
                self.start_line_time = crossing.time
                test.notify("Ball crossed start line")
            return

        if self.end_line_time is None:
            anchor = test.calibrator.project_meters_to_pixel(end_m)
            if anchor is None:
                return
            crossing = test.events.detect_vertical_line_crossing(
                prev.position, detection.position, anchor.x, prev.timestamp, timestamp
            )
            if crossing is not None:
                self.end_line_time = crossing.time
                test.notify("Ball crossed end line")
                test.finalize(scale)

    def finalize(self, test: AthleticTest, scale: FrameScale) -> Optional[KickResult]:
        if self.start_line_time is None or self.end_line_time is None:
            logger.error("Kick incomplete: ball did not cross both lines")
            return None

        start_m, end_m = self.line_meters(test)
        distance = abs(end_m - start_m)
        flight_time = (self.end_line_time - self.start_line_time) / 1000.0
        ball_speed = distance / flight_time if flight_time > 0 else 0.0
        self.ball_tracker.stop_tracking()

        return KickResult(
            ball_speed_mps=ball_speed,
            ball_speed_kmh=ball_speed * cfg.KICK_MPS_TO_KMH,
            flight_time_s=flight_time,
            distance_m=distance,
            start_line_time=self.start_line_time,
            end_line_time=self.end_line_time,
            trajectory=self.ball_tracker.trajectory(),
        )


__all__ = ["KickTracker"]
