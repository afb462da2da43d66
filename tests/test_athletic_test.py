"""Tests for the shared test state machine and the registry."""

import dataclasses

import pytest

from athletics_ai.athletic_tests import (
    JumpTracker,
    KickTracker,
    SprintTracker,
    TestKind,
    TestState,
    create_test,
    get_test_definition,
    get_test_names,
)
from athletics_ai.errors import PreconditionError


class TestRegistry:
    """Tests for test definitions and construction."""

    def test_lookup_by_string_and_enum(self):
        """Definitions are found by enum member or its value."""
        assert get_test_definition("sprint") is get_test_definition(TestKind.SPRINT)
        assert get_test_definition("kick").meter_values == (0.0, 10.0)

    def test_unknown_kind(self):
        """Unknown kinds raise KeyError."""
        with pytest.raises(KeyError, match="Unknown test"):
            get_test_definition("high-jump")

    def test_names(self):
        """All three tests are registered."""
        assert get_test_names() == ["Standing Broad Jump", "Sprint", "Kick Speed"]

    @pytest.mark.parametrize(
        "kind, tracker_type",
        [("broad-jump", JumpTracker), ("sprint", SprintTracker), ("kick", KickTracker)],
    )
    def test_create_test(self, kind, tracker_type):
        """Each kind gets its own tracker and starts uninitialized."""
        test = create_test(kind)
        assert isinstance(test.tracker, tracker_type)
        assert test.state == TestState.UNINITIALIZED
        assert test.tracker.tracked_id == test.definition.tracked_id


class TestLifecycle:
    """Tests for calibration, start, stop and reset."""

    def test_start_requires_calibration(self):
        """Starting an uncalibrated test raises without changing state."""
        test = create_test("sprint")
        with pytest.raises(PreconditionError):
            test.start_test()
        assert test.state == TestState.UNINITIALIZED
        assert test.attempt == 0

    def test_start_requires_user_height(self, store, calibrate_test):
        """A definition needing the user height refuses to start without it."""
        definition = dataclasses.replace(get_test_definition("broad-jump"), requires_user_height=True)
        test = calibrate_test(create_test("broad-jump", store=store, definition=definition), (0, 0), (100, 0))
        with pytest.raises(PreconditionError):
            test.start_test()
        assert test.state == TestState.CALIBRATED

        test.user_height_cm = 180.0
        test.start_test()
        assert test.is_running

    def test_click_without_calibration(self):
        """Calibration clicks are rejected before start_calibration."""
        test = create_test("kick")
        with pytest.raises(PreconditionError):
            test.add_calibration_click((0, 0))

    def test_calibration_states(self):
        """Calibrating moves through CALIBRATING to CALIBRATED."""
        seen = []
        test = create_test("kick")
        test.subscribe(on_calibration_complete=seen.append)
        test.start_calibration()
        assert test.state == TestState.CALIBRATING
        test.add_calibration_click((0, 0))
        test.add_calibration_click((500, 0))
        assert test.state == TestState.CALIBRATED
        assert seen[0]["test_type"] == "kick"

    def test_degenerate_calibration(self):
        """A zero-length line leaves the test uninitialized."""
        test = create_test("kick")
        test.start_calibration()
        test.add_calibration_click((10, 10))
        assert test.add_calibration_click((10, 10)) is False
        assert test.state == TestState.UNINITIALIZED

    def test_reset_during_recalibration(self, calibrated_sprint):
        """Reset while re-calibrating keeps the previous calibration."""
        calibrated_sprint.start_calibration()
        calibrated_sprint.add_calibration_click((50, 500))
        calibrated_sprint.reset_test()

        assert calibrated_sprint.state == TestState.CALIBRATED
        assert not calibrated_sprint.calibrator.is_calibrating
        assert calibrated_sprint.calibrator.meter_values == [0.0, 15.0, 30.0]
        assert calibrated_sprint.frame_scale(1000, 1000).meters_per_px == pytest.approx(0.05)
        calibrated_sprint.start_test()
        assert calibrated_sprint.is_running

    def test_degenerate_recalibration_keeps_previous(self, calibrated_kick):
        """A zero-length re-calibration falls back to the earlier line."""
        calibrated_kick.start_calibration()
        calibrated_kick.add_calibration_click((10, 10))
        assert calibrated_kick.add_calibration_click((10, 10)) is False

        assert calibrated_kick.state == TestState.CALIBRATED
        assert calibrated_kick.calibrator.project_meters_to_pixel(10.0).x == pytest.approx(600.0)

    def test_stored_calibration_is_loaded(self, store, calibrated_sprint):
        """A new test for the same kind picks up the saved calibration."""
        again = create_test("sprint", store=store)
        assert again.state == TestState.CALIBRATED
        assert again.frame_scale(1000, 1000).meters_per_px == pytest.approx(0.05)

    def test_frames_ignored_unless_running(self, calibrated_jump, ankles):
        """process_frame is a no-op outside RUNNING."""
        calibrated_jump.process_frame(ankles(200, 850), 0, calibrated_jump.frame_scale(1000, 1000))
        assert calibrated_jump.events.previous == {}
        assert calibrated_jump.start_time is None

    def test_stop_and_reset(self, calibrated_sprint, hips):
        """Stop keeps calibration; reset clears tracking state."""
        calibrated_sprint.start_test()
        calibrated_sprint.process_frame(hips(50), 0, calibrated_sprint.frame_scale(1000, 1000))
        calibrated_sprint.stop_test()
        assert calibrated_sprint.state == TestState.CALIBRATED
        calibrated_sprint.reset_test()
        assert calibrated_sprint.events.previous == {}
        assert calibrated_sprint.tracker.speed_smoother.history == []
        assert calibrated_sprint.is_calibrated

    def test_last_subscription_wins(self, calibrated_jump, ankles):
        """Registering a new progress callback replaces the old one."""
        first, second = [], []
        calibrated_jump.subscribe(on_progress=first.append)
        calibrated_jump.subscribe(on_progress=second.append)
        calibrated_jump.start_test()
        scale = calibrated_jump.frame_scale(1000, 1000)
        calibrated_jump.process_frame(ankles(200, 850), 0, scale)
        calibrated_jump.process_frame(ankles(200, 750), 100, scale)
        assert first == []
        assert second == ["Takeoff detected - tracking jump..."]

    def test_frame_scale(self, calibrated_jump):
        """The frame scale carries the calibration factor."""
        scale = calibrated_jump.frame_scale(1280, 720)
        assert scale.image_width == 1280
        assert scale.meters_per_px == pytest.approx(0.005)
        assert scale.cm_per_px == pytest.approx(0.5)
        assert scale.px_per_m == pytest.approx(200.0)
