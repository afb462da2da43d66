"""Tests for the pose adapter and the video frame loop."""

import cv2
import numpy as np
import pytest

from athletics_ai.athletic_tests import JumpResult, TestState
from athletics_ai.landmarks import COCO_KEYPOINT_NAMES
from athletics_ai.pipelines import run_athletic_test
from athletics_ai.pose import YoloPoseEngine, snapshot_from_keypoints


class _Array:
    def __init__(self, data):
        self.data = np.asarray(data, dtype=float)

    def cpu(self):
        return self

    def numpy(self):
        return self.data


class _Keypoints:
    def __init__(self, xy, conf):
        self.xy = _Array(xy)
        self.conf = _Array(conf) if conf is not None else None


class _Result:
    def __init__(self, keypoints):
        self.keypoints = keypoints


def _person(x, y):
    return [[x, y]] * len(COCO_KEYPOINT_NAMES)


class TestSnapshotFromKeypoints:
    """Tests for COCO keypoint conversion."""

    def test_normalized_names(self):
        """Keypoints are normalized and named in COCO order."""
        kpts = np.array(_person(500.0, 250.0))
        confs = np.full(len(COCO_KEYPOINT_NAMES), 0.8)
        snapshot = snapshot_from_keypoints(kpts, confs, 1000, 500)
        assert set(snapshot) == set(COCO_KEYPOINT_NAMES)
        assert snapshot["left_ankle"].x == pytest.approx(0.5)
        assert snapshot["left_ankle"].y == pytest.approx(0.5)
        assert snapshot["nose"].visibility == pytest.approx(0.8)
        assert "left_heel" not in snapshot

    def test_missing_keypoints_are_invisible(self):
        """Keypoints reported at the origin get zero visibility."""
        kpts = np.array(_person(0.0, 0.0))
        snapshot = snapshot_from_keypoints(kpts, None, 1000, 1000)
        assert snapshot["nose"].visibility == 0.0


class TestYoloPoseEngine:
    """Tests for the ultralytics pose adapter with a stand-in model."""

    def test_most_confident_person(self):
        """With several people the highest mean confidence wins."""
        n = len(COCO_KEYPOINT_NAMES)
        keypoints = _Keypoints([_person(100, 100), _person(300, 300)], [[0.3] * n, [0.9] * n])
        engine = YoloPoseEngine(model=lambda frame, **kwargs: [_Result(keypoints)])
        snapshot = engine.detect(np.zeros((600, 600, 3), dtype=np.uint8))
        assert snapshot["nose"].x == pytest.approx(0.5)
        assert snapshot["nose"].visibility == pytest.approx(0.9)

    def test_nobody_in_view(self):
        """No keypoints gives no snapshot."""
        engine = YoloPoseEngine(model=lambda frame, **kwargs: [_Result(None)])
        assert engine.detect(np.zeros((10, 10, 3), dtype=np.uint8)) is None


class ScriptedEngine:
    """Returns one prepared snapshot per call."""

    def __init__(self, snapshots):
        self.snapshots = list(snapshots)

    def detect(self, frame):
        return self.snapshots.pop(0) if self.snapshots else None


def _drain(gen):
    frames = []
    while True:
        try:
            frames.append(next(gen))
        except StopIteration as stop:
            return frames, stop.value


@pytest.fixture
def jump_video(tmp_path):
    """Five black 1000x1000 frames at 10 fps."""
    path = str(tmp_path / "jump.avi")
    writer = cv2.VideoWriter(path, cv2.VideoWriter_fourcc(*"MJPG"), 10.0, (1000, 1000))
    if not writer.isOpened():
        pytest.skip("MJPG writer unavailable")
    for _ in range(5):
        writer.write(np.zeros((1000, 1000, 3), dtype=np.uint8))
    writer.release()
    return path


class TestRunAthleticTest:
    """Tests for the video frame loop."""

    def test_jump_over_video(self, calibrated_jump, ankles, jump_video):
        """Frames are timed from the fps and the settle delay is flushed at the end."""
        engine = ScriptedEngine(
            [ankles(200, 850), ankles(200, 750), ankles(400, 600), ankles(600, 850), ankles(600, 850)]
        )
        frames, result = _drain(run_athletic_test(jump_video, calibrated_jump, engine=engine))

        assert [f.timestamp_ms for f in frames] == pytest.approx([0, 100, 200, 300, 400])
        assert frames[0].annotated.shape == (1000, 1000, 3)
        assert isinstance(result, JumpResult)
        assert result.distance_m == pytest.approx(2.0)
        assert calibrated_jump.state == TestState.FINALIZED

    def test_max_frames_and_no_drawing(self, calibrated_jump, ankles, jump_video):
        """``max_frames`` stops early and ``draw=False`` skips annotation."""
        engine = ScriptedEngine([ankles(200, 850), ankles(200, 750)])
        frames, result = _drain(
            run_athletic_test(jump_video, calibrated_jump, engine=engine, max_frames=2, draw=False)
        )
        assert len(frames) == 2
        assert frames[1].annotated is None
        assert result is None

    def test_unreadable_video(self, calibrated_jump, tmp_path):
        """A missing file raises when the loop starts."""
        gen = run_athletic_test(str(tmp_path / "missing.mp4"), calibrated_jump, engine=ScriptedEngine([]))
        with pytest.raises(RuntimeError):
            next(gen)

    def test_uncalibrated_test_opens_no_capture(self, store, monkeypatch):
        """The precondition check runs before the video is opened."""
        from athletics_ai.athletic_tests import create_test
        from athletics_ai.errors import PreconditionError

        opened = []
        monkeypatch.setattr(cv2, "VideoCapture", lambda path: opened.append(path))
        gen = run_athletic_test("clip.mp4", create_test("sprint", store=store), engine=ScriptedEngine([]))
        with pytest.raises(PreconditionError):
            next(gen)
        assert opened == []
