"""
Live session wrapper around the per-kind athletic tests.

A session owns one ``AthleticTest`` per kind, the result store and the user's
height. Frames are submitted asynchronously, but only one pose detection may
be outstanding at a time; a frame submitted while the engine is busy is
dropped.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, Optional, Union

from loguru import logger

from athletics_ai.athletic_tests import AthleticTest, TestKind, TestResult, create_test
from athletics_ai.ball import BallDetector
from athletics_ai.landmarks import LandmarkSnapshot
from athletics_ai.measurements import BodyMeasurement, MeasurementCalculator
from athletics_ai.options import TestOptions
from athletics_ai.pose import PoseEngine
from athletics_ai.reporting import MEASUREMENTS
from athletics_ai.storage import ResultStore


class AthleticSession:
    def __init__(
        self,
        store: Optional[ResultStore] = None,
        engine: Optional[PoseEngine] = None,
        options: Optional[TestOptions] = None,
        ball_detector: Optional[BallDetector] = None,
    ):
        self.store = store or ResultStore()
        self.engine = engine
        self.options = options or TestOptions()
        self.ball_detector = ball_detector
        self.user_height_cm: Optional[float] = self.store.get_user_height()
        self.tests: Dict[TestKind, AthleticTest] = {}
        self.active_kind: Optional[TestKind] = None
        self.busy = False
        self.last_saved_id: Optional[str] = None
        self.on_result: Optional[Callable[[TestResult], None]] = None
        self.on_progress: Optional[Callable[[str], None]] = None

    def subscribe(
        self,
        on_result: Optional[Callable[[TestResult], None]] = None,
        on_progress: Optional[Callable[[str], None]] = None,
    ) -> None:
        if on_result is not None:
            self.on_result = on_result
        if on_progress is not None:
            self.on_progress = on_progress

    def set_user_height(self, height_cm: float) -> None:
        self.store.save_user_height(height_cm)
        self.user_height_cm = float(height_cm)
        for test in self.tests.values():
            test.user_height_cm = self.user_height_cm

    def get_test(self, kind: Union[TestKind, str]) -> AthleticTest:
        kind = TestKind(kind)
        if kind not in self.tests:
            test = create_test(
                kind,
                store=self.store,
                options=self.options,
                user_height_cm=self.user_height_cm,
                ball_detector=self.ball_detector,
            )
            test.subscribe(on_progress=self._progress, on_complete=self._completed)
            self.tests[kind] = test
        return self.tests[kind]

    @property
    def active_test(self) -> Optional[AthleticTest]:
        if self.active_kind is None:
            return None
        return self.tests[self.active_kind]

    def select_test(self, kind: Union[TestKind, str]) -> AthleticTest:
        # Stop the current run before the selection changes.
        current = self.active_test
        if current is not None and current.is_running:
            current.stop_test()
        test = self.get_test(kind)
        self.active_kind = test.kind
        logger.info(f"Selected {test.kind.value} test")
        return test

    async def submit_frame(
        self,
        frame: Any,
        timestamp: float,
        image_width: Optional[float] = None,
        image_height: Optional[float] = None,
        snapshot: Optional[LandmarkSnapshot] = None,
    ) -> Optional[LandmarkSnapshot]:
        """Detect the pose in ``frame`` and feed it to the active test.

        Returns the snapshot that was processed, or None when there is no
        running test or a detection is already in flight.
        """
        test = self.active_test
        if test is None or not test.is_running:
            return None
        if self.busy:
            logger.debug(f"Dropping frame at {timestamp:.0f} ms: detection in flight")
            return None

        self.busy = True
        try:
            if image_width is None or image_height is None:
                image_height, image_width = frame.shape[:2]
            if snapshot is None and self.engine is not None and test.kind != TestKind.KICK:
                snapshot = await asyncio.to_thread(self.engine.detect, frame)
            test.process_frame(snapshot, timestamp, test.frame_scale(image_width, image_height), frame=frame)
            return snapshot
        finally:
            self.busy = False

    def poll(self, timestamp: float) -> bool:
        test = self.active_test
        return test.poll(timestamp) if test is not None else False

    def measure_body(
        self, snapshot: LandmarkSnapshot, image_width: float, image_height: float, save: bool = True
    ) -> BodyMeasurement:
        calculator = MeasurementCalculator(self.options.min_visibility)
        measurement = calculator.calculate(snapshot, self.user_height_cm, image_width, image_height)
        if save:
            self.store.save_result(MEASUREMENTS, measurement)
        return measurement

    def _progress(self, message: str) -> None:
        if self.on_progress:
            self.on_progress(message)

    def _completed(self, result: TestResult) -> None:
        self.last_saved_id = self.store.save_result(result.kind, result)
        if self.on_result:
            self.on_result(result)


__all__ = ["AthleticSession"]
