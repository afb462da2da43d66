"""
Ball tracking on top of an external, position-only ball detector.

Detection itself is delegated: ``BallTracker`` scores whatever candidates the
detector returns (or a linear prediction from recent history when it returns
nothing) and keeps the accepted trajectory for the kick test.
"""

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Any, Dict, List, Optional, Protocol, Sequence

from loguru import logger

import athletics_ai.config as cfg
from athletics_ai.geometry import Point2D
from athletics_ai.events import Velocity


@dataclass(frozen=True)
class BallDetection:
    position: Point2D
    radius: float = 10.0
    confidence: float = 1.0
    timestamp: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "x": self.position.x,
            "y": self.position.y,
            "radius": self.radius,
            "confidence": self.confidence,
            "timestamp": self.timestamp,
        }


class BallDetector(Protocol):
    def detect(self, frame: Any, timestamp: float) -> Sequence[BallDetection]: ...


class BallTracker:
    """Scores ball candidates and keeps the accepted trajectory."""

    def __init__(
        self,
        detector: Optional[BallDetector] = None,
        min_radius: float = cfg.BALL_MIN_RADIUS_PX,
        max_radius: float = cfg.BALL_MAX_RADIUS_PX,
        min_speed: float = cfg.BALL_MIN_SPEED_PX_MS,
        max_speed: float = cfg.BALL_MAX_SPEED_PX_MS,
        frame_bound: float = cfg.BALL_FRAME_BOUND_PX,
        still_radius: float = cfg.BALL_STILL_RADIUS_PX,
        max_gap_ms: float = cfg.BALL_MAX_GAP_MS,
    ):
        self.detector = detector
        self.min_radius = min_radius
        self.max_radius = max_radius
        self.min_speed = min_speed
        self.max_speed = max_speed
        self.frame_bound = frame_bound
        self.still_radius = still_radius
        self.max_gap_ms = max_gap_ms
        self.is_tracking = False
        self.history: List[BallDetection] = []
        self.last_detected: Optional[BallDetection] = None
        self.tracking_id = 0

    def start_tracking(self) -> None:
        self.is_tracking = True
        self.history = []
        self.last_detected = None
        self.tracking_id += 1
        logger.info("Ball tracking started")

    def stop_tracking(self) -> None:
        self.is_tracking = False
        logger.info("Ball tracking stopped")

    def clear_history(self) -> None:
        self.history = []
        self.last_detected = None

    def detect_ball(
        self,
        frame: Any,
        timestamp: float,
        candidates: Optional[Sequence[BallDetection]] = None,
    ) -> Optional[BallDetection]:
        """Pick the best candidate for this frame and append it to history.

        ``candidates`` overrides the detector, which lets callers feed
        detections that were computed elsewhere.
        """
        if not self.is_tracking:
            return None
        if candidates is None:
            candidates = list(self.detector.detect(frame, timestamp)) if self.detector else []
        if not candidates:
            predicted = self.predict_next_position()
            candidates = [predicted] if predicted is not None else []

        best = self.select_best_candidate(candidates, timestamp)
        if best is None:
            return None
        accepted = BallDetection(best.position, best.radius, best.confidence, timestamp)
        self.history.append(accepted)
        self.last_detected = accepted
        return accepted

    def predict_next_position(self) -> Optional[BallDetection]:
        if len(self.history) < 2:
            return None
        latest, previous = self.history[-1], self.history[-2]
        dt = latest.timestamp - previous.timestamp
        if dt <= 0:
            return None
        vx = (latest.position.x - previous.position.x) / dt
        vy = (latest.position.y - previous.position.y) / dt
        step = cfg.BALL_PREDICT_STEP_MS
        return BallDetection(
            Point2D(latest.position.x + vx * step, latest.position.y + vy * step),
            latest.radius,
            0.8,
        )

    def select_best_candidate(
        self, candidates: Sequence[BallDetection], timestamp: float
    ) -> Optional[BallDetection]:
        best = None
        best_score = 0.0
        for candidate in candidates:
            score = self.score_candidate(candidate, timestamp)
            if score > best_score:
                best_score = score
                best = candidate
        return best if best_score > cfg.BALL_ACCEPT_SCORE else None

    def score_candidate(self, candidate: BallDetection, timestamp: float) -> float:
        score = candidate.confidence if candidate.confidence else 0.5
        if not self.min_radius <= candidate.radius <= self.max_radius:
            score *= 0.5
        if self.history:
            score *= self._motion_consistency(candidate, timestamp)
        score *= self._position_score(candidate.position)
        return max(0.0, min(1.0, score))

    def _motion_consistency(self, candidate: BallDetection, timestamp: float) -> float:
        latest = self.history[-1]
        dt = timestamp - latest.timestamp
        if dt <= 0:
            return 0.5
        moved = math.hypot(
            candidate.position.x - latest.position.x,
            candidate.position.y - latest.position.y,
        )
        # Resting ball refreshes the track.
        if moved <= self.still_radius:
            return 1.0
        # Re-acquired after a gap; no speed gate.
        if dt > self.max_gap_ms:
            return 0.8
        speed = moved / dt
        if speed < self.min_speed or speed > self.max_speed:
            return 0.3
        if len(self.history) >= 2:
            return self._direction_consistency(candidate)
        return 0.8

    def _direction_consistency(self, candidate: BallDetection) -> float:
        latest, previous = self.history[-1], self.history[-2]
        prev_dx = latest.position.x - previous.position.x
        prev_dy = latest.position.y - previous.position.y
        curr_dx = candidate.position.x - latest.position.x
        curr_dy = candidate.position.y - latest.position.y
        prev_mag = math.hypot(prev_dx, prev_dy)
        curr_mag = math.hypot(curr_dx, curr_dy)
        if prev_mag <= self.still_radius:
            # Leaving rest: any direction is plausible.
            return 0.8
        if curr_mag == 0:
            return 0.5
        cos_angle = (prev_dx * curr_dx + prev_dy * curr_dy) / (prev_mag * curr_mag)
        angle = math.acos(max(-1.0, min(1.0, cos_angle)))
        return max(0.2, 1.0 - angle / cfg.BALL_MAX_ANGLE_CHANGE_RAD)

    def _position_score(self, position: Point2D) -> float:
        if position.x < 0 or position.y < 0:
            return 0.1
        if position.x > self.frame_bound or position.y > self.frame_bound:
            return 0.1
        return 1.0

    def trajectory(self) -> List[BallDetection]:
        return list(self.history)

    def current_velocity(self) -> Optional[Velocity]:
        if len(self.history) < 2:
            return None
        latest, previous = self.history[-1], self.history[-2]
        dt = latest.timestamp - previous.timestamp
        if dt <= 0:
            return None
        dx = latest.position.x - previous.position.x
        dy = latest.position.y - previous.position.y
        return Velocity(dx / dt, dy / dt, math.hypot(dx, dy) / dt)

    def average_speed(self, start_time: float, end_time: float) -> float:
        window = [d for d in self.history if start_time <= d.timestamp <= end_time]
        if len(window) < 2:
            return 0.0
        total_distance = 0.0
        total_time = 0.0
        for prev, curr in zip(window, window[1:]):
            total_distance += math.hypot(curr.position.x - prev.position.x, curr.position.y - prev.position.y)
            total_time += curr.timestamp - prev.timestamp
        return total_distance / total_time if total_time > 0 else 0.0

    def tracking_stats(self) -> Dict[str, float]:
        if not self.history:
            return {"total_detections": 0, "tracking_duration": 0.0, "average_confidence": 0.0}
        return {
            "total_detections": len(self.history),
            "tracking_duration": self.history[-1].timestamp - self.history[0].timestamp,
            "average_confidence": sum(d.confidence for d in self.history) / len(self.history),
        }


class YoloBallDetector:
    """Ball candidates from an ultralytics detector (COCO sports-ball class)."""

    def __init__(self, model=None, weights: str = cfg.DETECTOR_WEIGHTS, conf: float = cfg.DET_CONF):
        if model is None:
            from athletics_ai.models import load_detector

            model = load_detector(weights)
        self.model = model
        self.conf = conf

    def detect(self, frame: Any, timestamp: float) -> List[BallDetection]:
        results = self.model(frame, conf=self.conf, classes=[cfg.BALL_CLASS_ID], verbose=False)
        if not results or results[0].boxes is None:
            return []
        boxes = results[0].boxes
        xyxy = boxes.xyxy.cpu().numpy()
        confs = boxes.conf.cpu().numpy()
        detections = []
        for (x1, y1, x2, y2), conf in zip(xyxy, confs):
            center = Point2D(float(x1 + x2) / 2.0, float(y1 + y2) / 2.0)
            radius = float(max(x2 - x1, y2 - y1)) / 2.0
            detections.append(BallDetection(center, radius, float(conf), timestamp))
        return detections


__all__ = [
    "BallDetection",
    "BallDetector",
    "BallTracker",
    "YoloBallDetector",
]
