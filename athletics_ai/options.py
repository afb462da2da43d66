"""
User-tunable options for the athletic test state machines.
"""

from dataclasses import dataclass
from typing import Optional

import athletics_ai.config as cfg


@dataclass
class TestOptions:
    __test__ = False  # keep pytest from collecting this as a test class

    min_visibility: float = cfg.MIN_LANDMARK_VISIBILITY
    collinearity_tolerance_px: float = cfg.COLLINEARITY_TOLERANCE_PX
    # Jump
    ground_level_ratio: float = cfg.JUMP_GROUND_LEVEL_RATIO
    min_vertical_speed_px: float = cfg.MIN_VERTICAL_SPEED_PX
    settle_delay_ms: float = cfg.JUMP_SETTLE_DELAY_MS
    # Sprint
    speed_smoothing: int = cfg.SPRINT_SPEED_SMOOTHING
    accel_window: int = cfg.SPRINT_ACCEL_WINDOW
    # Kick
    kick_distance_m: Optional[float] = None  # Defaults to the last calibration mark
    # Pose / detector models
    pose_weights: str = cfg.POSE_WEIGHTS
    detector_weights: str = cfg.DETECTOR_WEIGHTS
    pose_conf: float = cfg.POSE_CONF
    ball_conf: float = cfg.DET_CONF
    # Unit system
    use_metric_display: bool = cfg.USE_METRIC_DISPLAY


__all__ = ["TestOptions"]
