"""
Pose engine adapters producing ``LandmarkSnapshot`` objects.

YOLO pose models return the 17 COCO keypoints in pixels. They are normalized
by the frame size and mapped onto the named landmark set; landmarks COCO does
not provide (heels, hands, feet) are simply absent from the snapshot.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol

import numpy as np

import athletics_ai.config as cfg
from athletics_ai.landmarks import COCO_KEYPOINT_NAMES, Landmark, LandmarkSnapshot


class PoseEngine(Protocol):
    def detect(self, frame: Any) -> Optional[LandmarkSnapshot]: ...


def snapshot_from_keypoints(
    keypoints: np.ndarray,
    confidences: Optional[np.ndarray],
    image_width: float,
    image_height: float,
) -> LandmarkSnapshot:
    """Build a snapshot from one person's COCO keypoints (pixels, shape (17, 2))."""
    points = {}
    for idx, name in enumerate(COCO_KEYPOINT_NAMES):
        if idx >= len(keypoints):
            break
        x, y = float(keypoints[idx][0]), float(keypoints[idx][1])
        visibility = float(confidences[idx]) if confidences is not None else 1.0
        # ultralytics reports undetected keypoints at (0, 0)
        if x == 0.0 and y == 0.0:
            visibility = 0.0
        points[name] = Landmark(x / image_width, y / image_height, visibility)
    return LandmarkSnapshot(points)


class YoloPoseEngine:
    """Single-person pose from an ultralytics pose model."""

    def __init__(self, model=None, weights: str = cfg.POSE_WEIGHTS, conf: float = cfg.POSE_CONF):
        if model is None:
            from athletics_ai.models import load_pose_model

            model = load_pose_model(weights)
        self.model = model
        self.conf = conf

    def detect(self, frame: Any) -> Optional[LandmarkSnapshot]:
        results = self.model(frame, conf=self.conf, verbose=False)
        if not results or results[0].keypoints is None:
            return None

        kpts = results[0].keypoints.xy.cpu().numpy()
        if kpts.size == 0:
            return None

        confs = None
        if results[0].keypoints.conf is not None:
            confs = results[0].keypoints.conf.cpu().numpy()

        # Most confident person when several are in view
        if kpts.shape[0] > 1 and confs is not None:
            idx = int(np.argmax(np.mean(confs, axis=1)))
        else:
            idx = 0

        height, width = frame.shape[:2]
        return snapshot_from_keypoints(
            kpts[idx],
            confs[idx] if confs is not None else None,
            float(width),
            float(height),
        )


__all__ = ["PoseEngine", "YoloPoseEngine", "snapshot_from_keypoints"]
