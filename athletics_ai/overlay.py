from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

import cv2

from athletics_ai.calibration import LinesCalibrator
from athletics_ai.geometry import Point2D

TICK_HALF_LENGTH_PX = 12.0


def calibration_geometry(
    calibrator: LinesCalibrator, image_height: float, tick_half_length: float = TICK_HALF_LENGTH_PX
) -> Optional[Dict[str, Any]]:
    """Line endpoints plus one perpendicular tick per meter mark, in pixels.

    Each marker also carries a full-height vertical guide at its x, which is
    the line the sprint and kick tests actually time against.
    """
    params = calibrator.params
    if params is None:
        return None
    normal = Point2D(-params.direction.y, params.direction.x)
    markers = []
    for meters in calibrator.meter_values:
        anchor = params.project_meters_to_pixel(meters)
        markers.append(
            {
                "meters": meters,
                "position": anchor.as_tuple(),
                "tick": (
                    (anchor.x - normal.x * tick_half_length, anchor.y - normal.y * tick_half_length),
                    (anchor.x + normal.x * tick_half_length, anchor.y + normal.y * tick_half_length),
                ),
                "guide": ((anchor.x, 0.0), (anchor.x, float(image_height))),
            }
        )
    if markers:
        line = (markers[0]["position"], markers[-1]["position"])
    else:
        line = (params.origin.as_tuple(), params.origin.as_tuple())
    return {"line": line, "markers": markers}


def trajectory_series(result: Any) -> List[Tuple[float, float, float]]:
    """(time, x, y) samples for a finished result, oldest first."""
    record = result.to_dict() if hasattr(result, "to_dict") else dict(result)
    if record.get("ballTrajectory"):
        return [
            (float(p["timestamp"] or 0.0), float(p["x"]), float(p["y"]))
            for p in record["ballTrajectory"]
        ]
    if record.get("trajectory"):
        return [(float(p["time"]), float(p["x"]), float(p["y"])) for p in record["trajectory"]]
    if record.get("speedHistory"):
        return [(float(p["time"]), float(p["x"]), float(p["y"])) for p in record["speedHistory"]]
    return []


def _pt(p: Sequence[float]) -> Tuple[int, int]:
    return int(round(p[0])), int(round(p[1]))


def draw_point(
    frame_bgr,
    point: Optional[Sequence[float]],
    color: Tuple[int, int, int] = (0, 255, 255),
    radius: int = 6,
    label: Optional[str] = None,
) -> None:
    if frame_bgr is None or point is None:
        return
    center = _pt(point)
    cv2.circle(frame_bgr, center, radius, color, -1)
    if label:
        cv2.putText(
            frame_bgr,
            label,
            (center[0] + 8, max(12, center[1] - 8)),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.5,
            color,
            2,
            cv2.LINE_AA,
        )


def draw_calibration_overlay(
    frame_bgr,
    geometry: Optional[Dict[str, Any]],
    show_guides: bool = True,
) -> None:
    if frame_bgr is None or not geometry:
        return
    p1, p2 = geometry["line"]
    cv2.line(frame_bgr, _pt(p1), _pt(p2), (0, 255, 0), 2, lineType=cv2.LINE_AA)
    for marker in geometry["markers"]:
        if show_guides:
            g1, g2 = marker["guide"]
            cv2.line(frame_bgr, _pt(g1), _pt(g2), (0, 128, 255), 1, lineType=cv2.LINE_AA)
        t1, t2 = marker["tick"]
        cv2.line(frame_bgr, _pt(t1), _pt(t2), (0, 255, 0), 3, lineType=cv2.LINE_AA)
        draw_point(frame_bgr, marker["position"], (0, 255, 0), 4, f"{marker['meters']:g} m")


def draw_trajectory(
    frame_bgr,
    series: Sequence[Tuple[float, float, float]],
    color: Tuple[int, int, int] = (0, 165, 255),
    max_thickness: int = 5,
) -> None:
    if frame_bgr is None or len(series) < 2:
        return
    max_thickness = max(1, int(max_thickness))
    denom = max(1, len(series) - 1)
    for idx in range(1, len(series)):
        t = idx / denom
        intensity = 0.2 + 0.8 * t
        thickness = max(1, int(round(1 + (max_thickness - 1) * t)))
        cv2.line(
            frame_bgr,
            _pt(series[idx - 1][1:]),
            _pt(series[idx][1:]),
            tuple(int(c * intensity) for c in color),
            thickness,
            lineType=cv2.LINE_AA,
        )


def draw_stats_overlay(
    frame_bgr,
    lines: List[str],
    header: Optional[str] = None,
    anchor: Tuple[int, int] = (16, 16),
) -> None:
    if frame_bgr is None:
        return
    font = cv2.FONT_HERSHEY_SIMPLEX
    padding = 10
    line_gap = 6

    items = []
    if header:
        items.append((header, 0.7, 2))
    for line in lines:
        items.append((line, 0.6, 2))
    if not items:
        return

    max_width = 0
    total_height = padding
    metrics = []
    for text, scale, thick in items:
        (w, h), base = cv2.getTextSize(text, font, scale, thick)
        max_width = max(max_width, w)
        total_height += h + base + line_gap
        metrics.append((text, scale, thick, h, base))
    total_height += padding - line_gap

    x, y = max(0, anchor[0]), max(0, anchor[1])
    cv2.rectangle(frame_bgr, (x, y), (x + max_width + padding * 2, y + max(0, total_height)), (0, 0, 0), -1)

    cursor_y = y + padding
    for text, scale, thick, height, base in metrics:
        cursor_y += height
        cv2.putText(frame_bgr, text, (x + padding, cursor_y), font, scale, (255, 255, 255), thick, cv2.LINE_AA)
        cursor_y += base + line_gap


__all__ = [
    "calibration_geometry",
    "trajectory_series",
    "draw_point",
    "draw_calibration_overlay",
    "draw_trajectory",
    "draw_stats_overlay",
]
