"""
Frame loop that drives one athletic test over a recorded video.

Exposed as a generator so the CLI can show annotated frames while the test
state machine consumes one pose snapshot per frame, in order.
"""

from dataclasses import dataclass
from typing import Generator, Optional

import cv2
import numpy as np
from loguru import logger

from athletics_ai.athletic_tests import AthleticTest, TestKind, TestResult, TestState
from athletics_ai.formatting import result_lines
from athletics_ai.landmarks import LandmarkSnapshot, pixel_midpoint
from athletics_ai.overlay import calibration_geometry, draw_calibration_overlay, draw_point, draw_stats_overlay
from athletics_ai.pose import PoseEngine, YoloPoseEngine


@dataclass
class FrameResult:
    frame_idx: int
    timestamp_ms: float
    annotated: Optional[np.ndarray]
    snapshot: Optional[LandmarkSnapshot]
    state: TestState
    result: Optional[TestResult] = None


def _tracked_point(test: AthleticTest, snapshot: Optional[LandmarkSnapshot], width: float, height: float):
    if test.kind == TestKind.JUMP:
        return pixel_midpoint(snapshot, "left_ankle", "right_ankle", width, height, test.options.min_visibility)
    if test.kind == TestKind.SPRINT:
        return pixel_midpoint(snapshot, "left_hip", "right_hip", width, height, test.options.min_visibility)
    ball_tracker = getattr(test.tracker, "ball_tracker", None)
    if ball_tracker is not None and ball_tracker.last_detected is not None:
        return ball_tracker.last_detected.position
    return None


def run_athletic_test(
    video_path: str,
    test: AthleticTest,
    engine: Optional[PoseEngine] = None,
    max_frames: Optional[int] = None,
    draw: bool = True,
) -> Generator[FrameResult, None, Optional[TestResult]]:
    if test.kind != TestKind.KICK and engine is None:
        engine = YoloPoseEngine(weights=test.options.pose_weights, conf=test.options.pose_conf)

    if test.state != TestState.RUNNING:
        test.start_test(timestamp=0.0)

    cap = cv2.VideoCapture(video_path)
    if not cap.isOpened():
        raise RuntimeError(f"Unable to open video: {video_path}")

    fps = cap.get(cv2.CAP_PROP_FPS)
    if not fps or fps <= 0 or fps != fps:
        fps = 30.0

    frame_idx = 0
    timestamp_ms = 0.0
    geometry = None
    try:
        while True:
            if max_frames is not None and frame_idx >= max_frames:
                break
            ok, frame = cap.read()
            if not ok:
                break

            timestamp_ms = frame_idx / fps * 1000.0
            height, width = frame.shape[:2]
            scale = test.frame_scale(width, height)
            if geometry is None:
                geometry = calibration_geometry(test.calibrator, height)

            # One detection at a time: the next frame is read only after this returns.
            snapshot = engine.detect(frame) if engine is not None and test.kind != TestKind.KICK else None
            test.process_frame(snapshot, timestamp_ms, scale, frame=frame)

            annotated = None
            if draw:
                annotated = frame.copy()
                draw_calibration_overlay(annotated, geometry)
                draw_point(annotated, _tracked_point(test, snapshot, width, height))
                lines = [f"t = {timestamp_ms / 1000.0:.2f} s", f"state: {test.state.value}"]
                if test.result is not None:
                    lines.extend(result_lines(test.result, test.options.use_metric_display))
                draw_stats_overlay(annotated, lines, header=test.definition.name)

            yield FrameResult(
                frame_idx=frame_idx,
                timestamp_ms=timestamp_ms,
                annotated=annotated,
                snapshot=snapshot,
                state=test.state,
                result=test.result,
            )
            if test.state == TestState.FINALIZED:
                break
            frame_idx += 1
    finally:
        cap.release()

    # Video ended inside the settle delay: run the finalize that was scheduled.
    if test.pending is not None and test.state == TestState.RUNNING:
        test.poll(test.pending.due_time)

    if test.result is None:
        logger.warning(f"{test.kind.value} test did not complete within {frame_idx} frames")
    return test.result


__all__ = ["FrameResult", "run_athletic_test"]
