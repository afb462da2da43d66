"""
Body-segment lengths from a single pose snapshot and the user's height.

The pixel-to-cm scale comes from the first usable full-body span (nose to
heel, shoulder to ankle, hip to nose), and each segment is then checked
against standard body proportions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import time
from typing import Any, Dict, List, Mapping, Optional

from loguru import logger

import athletics_ai.config as cfg
from athletics_ai.errors import MeasurementError, PreconditionError, ValidationWarning
from athletics_ai.landmarks import (
    Landmark,
    best_side_for_measurement,
    most_visible,
    pixel_distance,
    side_visibility_score,
    validate_landmark,
)

STANDARD_PROPORTIONS = {
    "upper_arm": cfg.UPPER_ARM_TO_HEIGHT,
    "forearm": cfg.FOREARM_TO_HEIGHT,
    "thigh": cfg.THIGH_TO_HEIGHT,
    "shin": cfg.SHIN_TO_HEIGHT,
}

SEGMENT_ENDPOINTS = {
    "upper_arm": ("shoulder", "elbow"),
    "forearm": ("elbow", "wrist"),
    "thigh": ("hip", "knee"),
    "shin": ("knee", "ankle"),
}


@dataclass
class BodyMeasurement:
    segments: Dict[str, Optional[float]]
    pixel_to_cm_ratio: float
    used_side: str
    user_height_cm: float
    confidence: float
    warnings: List[ValidationWarning] = field(default_factory=list)
    created_at: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "segments": dict(self.segments),
            "pixelToCmRatio": self.pixel_to_cm_ratio,
            "usedSide": self.used_side,
            "userHeight": self.user_height_cm,
            "confidence": self.confidence,
            "warnings": [str(w) for w in self.warnings],
            "timestamp": self.created_at,
        }


class MeasurementCalculator:
    def __init__(self, min_visibility: float = cfg.MIN_LANDMARK_VISIBILITY):
        self.min_visibility = min_visibility

    def calculate(
        self,
        snapshot: Mapping[str, Landmark],
        user_height_cm: Optional[float],
        image_width: float,
        image_height: float,
    ) -> BodyMeasurement:
        if not user_height_cm:
            raise PreconditionError("User height is required for body measurements")

        ratio = self.pixel_to_cm_ratio(snapshot, user_height_cm, image_width, image_height)
        if ratio is None:
            raise MeasurementError("Could not determine scale from detected pose")

        side = best_side_for_measurement(snapshot)
        segments = self.segment_lengths(snapshot, side, ratio, image_width, image_height)
        validated, warnings = self.validate_segments(segments, user_height_cm)
        return BodyMeasurement(
            segments=validated,
            pixel_to_cm_ratio=ratio,
            used_side=side,
            user_height_cm=float(user_height_cm),
            confidence=self.confidence(snapshot, side),
            warnings=warnings,
        )

    def _best(self, snapshot: Mapping[str, Landmark], part: str) -> Optional[Landmark]:
        return most_visible(
            (snapshot.get(f"left_{part}"), snapshot.get(f"right_{part}")),
            self.min_visibility,
        )

    def body_height_candidates(
        self, snapshot: Mapping[str, Landmark], image_width: float, image_height: float
    ) -> List[Optional[float]]:
        """Pixel body-height estimates, most reliable method first."""
        nose = snapshot.get("nose")
        if not validate_landmark(nose, self.min_visibility):
            nose = None

        def span(a, b, factor=1.0):
            if a is None or b is None:
                return None
            d = pixel_distance(a, b, image_width, image_height, self.min_visibility)
            return d * factor if d else None

        return [
            span(nose, self._best(snapshot, "heel")),
            span(self._best(snapshot, "shoulder"), self._best(snapshot, "ankle"), cfg.SHOULDER_TO_ANKLE_HEIGHT_FACTOR),
            span(self._best(snapshot, "hip"), nose, cfg.HIP_TO_NOSE_HEIGHT_FACTOR),
        ]

    def pixel_to_cm_ratio(
        self,
        snapshot: Mapping[str, Landmark],
        user_height_cm: float,
        image_width: float,
        image_height: float,
    ) -> Optional[float]:
        for pixel_height in self.body_height_candidates(snapshot, image_width, image_height):
            if pixel_height and pixel_height > cfg.MIN_BODY_HEIGHT_PX:
                return user_height_cm / pixel_height
        return None

    def segment_lengths(
        self,
        snapshot: Mapping[str, Landmark],
        side: str,
        ratio: float,
        image_width: float,
        image_height: float,
    ) -> Dict[str, Optional[float]]:
        segments: Dict[str, Optional[float]] = {}
        for name, (start, end) in SEGMENT_ENDPOINTS.items():
            pixels = pixel_distance(
                snapshot.get(f"{side}_{start}"),
                snapshot.get(f"{side}_{end}"),
                image_width,
                image_height,
                self.min_visibility,
            )
            segments[name] = pixels * ratio if pixels else None
        return segments

    def validate_segments(
        self, segments: Dict[str, Optional[float]], user_height_cm: float
    ) -> tuple:
        validated = dict(segments)
        warnings: List[ValidationWarning] = []
        for name, value in segments.items():
            proportion = STANDARD_PROPORTIONS.get(name)
            if not value or proportion is None:
                continue
            expected = user_height_cm * proportion
            ratio = value / expected
            if cfg.PROPORTION_WARN_LOW <= ratio <= cfg.PROPORTION_WARN_HIGH:
                continue
            message = f"{name} measurement ({value:.1f}cm) seems unusual for height {user_height_cm:g}cm"
            warnings.append(ValidationWarning(message, source="measurements"))
            logger.warning(message)
            if ratio < cfg.PROPORTION_CLAMP_LOW:
                validated[name] = expected * cfg.PROPORTION_WARN_LOW
            elif ratio > cfg.PROPORTION_CLAMP_HIGH:
                validated[name] = expected * cfg.PROPORTION_WARN_HIGH
        return validated, warnings

    def confidence(self, snapshot: Mapping[str, Landmark], side: str) -> float:
        return side_visibility_score(snapshot, side, self.min_visibility)


def compare_measurements(
    current: BodyMeasurement, previous: Optional[BodyMeasurement]
) -> Optional[Dict[str, Dict[str, float]]]:
    if previous is None:
        return None
    comparison = {}
    for name, value in current.segments.items():
        before = previous.segments.get(name)
        if not value or not before:
            continue
        difference = value - before
        comparison[name] = {
            "difference": difference,
            "percent_change": difference / before * 100.0,
            "current": value,
            "previous": before,
        }
    return comparison


__all__ = [
    "STANDARD_PROPORTIONS",
    "BodyMeasurement",
    "MeasurementCalculator",
    "compare_measurements",
]
