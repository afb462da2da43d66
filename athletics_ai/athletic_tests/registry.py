from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Union

import athletics_ai.config as cfg
from athletics_ai.ball import BallDetector
from athletics_ai.options import TestOptions
from athletics_ai.storage import ResultStore

from .base import AthleticTest, TestKind, Tracker
from .jump import JumpTracker
from .kick import KickTracker
from .sprint import SprintTracker


@dataclass(frozen=True)
class TestDefinition:
    __test__ = False

    kind: TestKind
    name: str
    description: str
    meter_values: Sequence[float]
    tracked_id: str
    expected_matrices: List[str]
    make_tracker: Callable[[TestOptions, Optional[BallDetector]], Tracker]
    requires_user_height: bool = False


TEST_DEFINITIONS: List[TestDefinition] = [
    TestDefinition(
        kind=TestKind.JUMP,
        name="Standing Broad Jump",
        description="Horizontal jump distance from takeoff to landing.",
        meter_values=cfg.JUMP_METER_VALUES,
        tracked_id=JumpTracker.tracked_id,
        expected_matrices=["distance", "takeoff_speed", "flight_time", "trajectory"],
        make_tracker=lambda options, detector: JumpTracker(),
    ),
    TestDefinition(
        kind=TestKind.SPRINT,
        name="Sprint",
        description="Timed sprint over calibrated lines with split times.",
        meter_values=cfg.SPRINT_METER_VALUES,
        tracked_id=SprintTracker.tracked_id,
        expected_matrices=["split_times", "avg_speed", "max_speed", "avg_accels", "speed_history"],
        make_tracker=lambda options, detector: SprintTracker(options.speed_smoothing, options.accel_window),
    ),
    TestDefinition(
        kind=TestKind.KICK,
        name="Kick Speed",
        description="Ball speed between the start and end lines.",
        meter_values=cfg.KICK_METER_VALUES,
        tracked_id=KickTracker.tracked_id,
        expected_matrices=["ball_speed", "flight_time", "ball_trajectory"],
        make_tracker=lambda options, detector: KickTracker(detector),
    ),
]

TEST_REGISTRY: Dict[TestKind, TestDefinition] = {test.kind: test for test in TEST_DEFINITIONS}


def get_test_names() -> List[str]:
    return [test.name for test in TEST_DEFINITIONS]


def get_test_definition(kind: Union[TestKind, str]) -> TestDefinition:
    try:
        key = TestKind(kind)
    except ValueError:
        raise KeyError(f"Unknown test: {kind}") from None
    return TEST_REGISTRY[key]


def create_test(
    kind: Union[TestKind, str],
    store: Optional[ResultStore] = None,
    options: Optional[TestOptions] = None,
    user_height_cm: Optional[float] = None,
    ball_detector: Optional[BallDetector] = None,
    definition: Optional[TestDefinition] = None,
) -> AthleticTest:
    definition = definition or get_test_definition(kind)
    options = options or TestOptions()
    tracker = definition.make_tracker(options, ball_detector)
    return AthleticTest(definition, tracker, store=store, options=options, user_height_cm=user_height_cm)


__all__ = [
    "TestDefinition",
    "TEST_DEFINITIONS",
    "TEST_REGISTRY",
    "get_test_names",
    "get_test_definition",
    "create_test",
]
