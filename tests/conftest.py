"""Pytest fixtures shared by the athletics_ai tests."""

from typing import Dict, Tuple

import pytest

from athletics_ai.landmarks import Landmark, LandmarkSnapshot
from athletics_ai.storage import MemoryStorage, ResultStore

IMAGE_SIZE = 1000.0


@pytest.fixture
def store():
    """In-memory result store."""
    return ResultStore(MemoryStorage())


@pytest.fixture
def make_snapshot():
    """Build a snapshot from ``name=(x, y)`` normalized coordinates."""

    def _make(visibility: float = 0.9, **points: Tuple[float, float]) -> LandmarkSnapshot:
        landmarks: Dict[str, Landmark] = {
            name: Landmark(xy[0], xy[1], visibility) for name, xy in points.items()
        }
        return LandmarkSnapshot(landmarks)

    return _make


@pytest.fixture
def ankles(make_snapshot):
    """Snapshot with both ankles at the given pixel position (1000x1000 image)."""

    def _make(x_px: float, y_px: float, visibility: float = 0.9) -> LandmarkSnapshot:
        xy = (x_px / IMAGE_SIZE, y_px / IMAGE_SIZE)
        return make_snapshot(visibility=visibility, left_ankle=xy, right_ankle=xy)

    return _make


@pytest.fixture
def hips(make_snapshot):
    """Snapshot with both hips at the given pixel position (1000x1000 image)."""

    def _make(x_px: float, y_px: float = 500.0, visibility: float = 0.9) -> LandmarkSnapshot:
        xy = (x_px / IMAGE_SIZE, y_px / IMAGE_SIZE)
        return make_snapshot(visibility=visibility, left_hip=xy, right_hip=xy)

    return _make


def calibrate(test, *points):
    """Run the click calibration of ``test`` with the given pixel points."""
    test.start_calibration()
    done = False
    for point in points:
        done = test.add_calibration_click(point)
    assert done
    return test


@pytest.fixture
def calibrated_jump(store):
    """Jump test calibrated 0 m at x=100 and 3 m at x=700 (0.005 m/px)."""
    from athletics_ai.athletic_tests import create_test

    return calibrate(create_test("broad-jump", store=store), (100, 900), (700, 900))


@pytest.fixture
def calibrated_sprint(store):
    """Sprint test with lines at x=100 (0 m), 400 (15 m), 700 (30 m); 0.05 m/px."""
    from athletics_ai.athletic_tests import create_test

    return calibrate(create_test("sprint", store=store), (100, 500), (400, 500), (700, 500))


@pytest.fixture
def calibrated_kick(store):
    """Kick test with 0 m at x=100 and 10 m at x=600 (0.02 m/px)."""
    from athletics_ai.athletic_tests import create_test

    return calibrate(create_test("kick", store=store), (100, 500), (600, 500))


@pytest.fixture
def calibrate_test():
    """The ``calibrate`` helper as a fixture."""
    return calibrate
