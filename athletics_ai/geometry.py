"""
Core geometry helpers shared by calibration, event detection and the tests.

These utilities are intentionally framework-agnostic so they can be reused by
both the CLI scripts and the frame-by-frame state machines.
"""

from dataclasses import dataclass
import math
from typing import Iterable, Mapping, Optional, Sequence, Tuple, Union


@dataclass(frozen=True)
class Point2D:
    x: float
    y: float

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)

    def to_dict(self) -> dict:
        return {"x": float(self.x), "y": float(self.y)}


PointLike = Union[Point2D, Sequence[float], Mapping[str, float]]


def to_point(pt: Optional[PointLike]) -> Optional[Point2D]:
    if pt is None:
        return None
    if isinstance(pt, Point2D):
        return pt
    if isinstance(pt, Mapping):
        return Point2D(float(pt["x"]), float(pt["y"]))
    if len(pt) < 2:
        raise ValueError("Expected a point of shape (x, y).")
    return Point2D(float(pt[0]), float(pt[1]))


def dist(p1: Point2D, p2: Point2D) -> float:
    return math.hypot(p1.x - p2.x, p1.y - p2.y)


def midpoint(p1: Point2D, p2: Point2D) -> Point2D:
    return Point2D((p1.x + p2.x) / 2.0, (p1.y + p2.y) / 2.0)


def lerp(p1: Point2D, p2: Point2D, t: float) -> Point2D:
    return Point2D(p1.x + (p2.x - p1.x) * t, p1.y + (p2.y - p1.y) * t)


def cross(o: Point2D, a: Point2D, b: Point2D) -> float:
    return (a.x - o.x) * (b.y - o.y) - (a.y - o.y) * (b.x - o.x)


def points_to_dicts(points: Iterable[Point2D]) -> list:
    return [p.to_dict() for p in points]


__all__ = [
    "Point2D",
    "PointLike",
    "to_point",
    "dist",
    "midpoint",
    "lerp",
    "cross",
    "points_to_dicts",
]
