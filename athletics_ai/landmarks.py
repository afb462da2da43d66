"""
Named body landmarks and per-frame landmark snapshots.

The pose engine reports 33 points in a fixed order with normalized image
coordinates and a visibility score. A ``LandmarkSnapshot`` freezes one frame
of that output so the test state machines can look points up by name.
"""

from __future__ import annotations

from dataclasses import dataclass
import math
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, Mapping, Optional, Sequence, Union

from athletics_ai import config as cfg
from athletics_ai.geometry import Point2D


LANDMARK_NAMES = (
    "nose",
    "left_eye_inner",
    "left_eye",
    "left_eye_outer",
    "right_eye_inner",
    "right_eye",
    "right_eye_outer",
    "left_ear",
    "right_ear",
    "mouth_left",
    "mouth_right",
    "left_shoulder",
    "right_shoulder",
    "left_elbow",
    "right_elbow",
    "left_wrist",
    "right_wrist",
    "left_pinky",
    "right_pinky",
    "left_index",
    "right_index",
    "left_thumb",
    "right_thumb",
    "left_hip",
    "right_hip",
    "left_knee",
    "right_knee",
    "left_ankle",
    "right_ankle",
    "left_heel",
    "right_heel",
    "left_foot_index",
    "right_foot_index",
)
LANDMARK_INDEX = {name: idx for idx, name in enumerate(LANDMARK_NAMES)}

# COCO-17 keypoint order used by YOLO pose models.
COCO_KEYPOINT_NAMES = (
    "nose",
    "left_eye",
    "right_eye",
    "left_ear",
    "right_ear",
    "left_shoulder",
    "right_shoulder",
    "left_elbow",
    "right_elbow",
    "left_wrist",
    "right_wrist",
    "left_hip",
    "right_hip",
    "left_knee",
    "right_knee",
    "left_ankle",
    "right_ankle",
)

SIDE_SEGMENT_POINTS = ("shoulder", "elbow", "wrist", "hip", "knee", "ankle")


@dataclass(frozen=True)
class Landmark:
    x: float
    y: float
    visibility: float = 0.0

    def to_pixels(self, image_width: float, image_height: float) -> Point2D:
        return Point2D(self.x * image_width, self.y * image_height)


class LandmarkSnapshot(Mapping[str, Landmark]):
    """Immutable name -> landmark mapping for one processed frame."""

    __slots__ = ("_points",)

    def __init__(self, points: Mapping[str, Landmark]):
        unknown = set(points) - set(LANDMARK_INDEX)
        if unknown:
            raise KeyError(f"Unknown landmark names: {sorted(unknown)}")
        self._points = MappingProxyType(dict(points))

    @classmethod
    def from_sequence(cls, landmarks: Sequence[Union[Landmark, Mapping, Sequence[float]]]) -> "LandmarkSnapshot":
        """Build from engine output ordered like ``LANDMARK_NAMES``."""
        points: Dict[str, Landmark] = {}
        for name, raw in zip(LANDMARK_NAMES, landmarks):
            if raw is None:
                continue
            points[name] = _coerce_landmark(raw)
        return cls(points)

    @classmethod
    def from_mapping(cls, landmarks: Mapping[str, Union[Landmark, Mapping, Sequence[float]]]) -> "LandmarkSnapshot":
        return cls({name: _coerce_landmark(raw) for name, raw in landmarks.items() if raw is not None})

    def __getitem__(self, name: str) -> Landmark:
        return self._points[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._points)

    def __len__(self) -> int:
        return len(self._points)

    def __repr__(self) -> str:
        return f"LandmarkSnapshot({len(self)} points)"


def _coerce_landmark(raw) -> Landmark:
    if isinstance(raw, Landmark):
        return raw
    if isinstance(raw, Mapping):
        return Landmark(float(raw["x"]), float(raw["y"]), float(raw.get("visibility", 0.0)))
    vis = float(raw[2]) if len(raw) > 2 else 0.0
    return Landmark(float(raw[0]), float(raw[1]), vis)


def get_landmark(snapshot: Optional[Mapping[str, Landmark]], name: str) -> Optional[Landmark]:
    if snapshot is None:
        return None
    if name not in LANDMARK_INDEX:
        raise KeyError(f"Unknown landmark: {name}")
    return snapshot.get(name)


def validate_landmark(landmark: Optional[Landmark], min_visibility: float = cfg.MIN_LANDMARK_VISIBILITY) -> bool:
    return (
        landmark is not None
        and landmark.visibility >= min_visibility
        and 0.0 <= landmark.x <= 1.0
        and 0.0 <= landmark.y <= 1.0
    )


def pixel_distance(
    a: Optional[Landmark],
    b: Optional[Landmark],
    image_width: float,
    image_height: float,
    min_visibility: float = cfg.MIN_LANDMARK_VISIBILITY,
) -> Optional[float]:
    if not validate_landmark(a, min_visibility) or not validate_landmark(b, min_visibility):
        return None
    return math.hypot((b.x - a.x) * image_width, (b.y - a.y) * image_height)


def pixel_midpoint(
    snapshot: Optional[Mapping[str, Landmark]],
    name_a: str,
    name_b: str,
    image_width: float,
    image_height: float,
    min_visibility: float = cfg.MIN_LANDMARK_VISIBILITY,
) -> Optional[Point2D]:
    """Pixel mid-point of two landmarks, or None if either fails validation."""
    a = get_landmark(snapshot, name_a)
    b = get_landmark(snapshot, name_b)
    if not validate_landmark(a, min_visibility) or not validate_landmark(b, min_visibility):
        return None
    return Point2D(
        (a.x + b.x) / 2.0 * image_width,
        (a.y + b.y) / 2.0 * image_height,
    )


def most_visible(
    candidates: Iterable[Optional[Landmark]],
    min_visibility: float = cfg.MIN_LANDMARK_VISIBILITY,
) -> Optional[Landmark]:
    best = None
    for landmark in candidates:
        if not validate_landmark(landmark, min_visibility):
            continue
        if best is None or landmark.visibility > best.visibility:
            best = landmark
    return best


def side_visibility_score(
    snapshot: Mapping[str, Landmark],
    side: str,
    min_visibility: float = cfg.MIN_LANDMARK_VISIBILITY,
) -> float:
    scores = []
    for part in SIDE_SEGMENT_POINTS:
        landmark = snapshot.get(f"{side}_{part}")
        if validate_landmark(landmark, min_visibility):
            scores.append(landmark.visibility)
    return sum(scores) / len(scores) if scores else 0.0


def best_side_for_measurement(snapshot: Mapping[str, Landmark]) -> str:
    left = side_visibility_score(snapshot, "left")
    right = side_visibility_score(snapshot, "right")
    return "left" if left >= right else "right"


__all__ = [
    "LANDMARK_NAMES",
    "LANDMARK_INDEX",
    "COCO_KEYPOINT_NAMES",
    "Landmark",
    "LandmarkSnapshot",
    "get_landmark",
    "validate_landmark",
    "pixel_distance",
    "pixel_midpoint",
    "most_visible",
    "side_visibility_score",
    "best_side_for_measurement",
]
