"""Tests for the streaming filters and array smoothing utilities."""

import pytest

from athletics_ai.geometry import Point2D
from athletics_ai.smoothing import (
    AccelerationCalculator,
    SmoothingFilter,
    SpeedSmoother,
    exponential_smoothing,
    median_filter,
    moving_average,
)


class TestSmoothingFilter:
    """Tests for the bounded moving average."""

    def test_window_of_three(self):
        """Window 3 fed 1..4 yields the running means of the last three."""
        f = SmoothingFilter(3)
        assert [f.add_value(v) for v in (1, 2, 3, 4)] == [1.0, 1.5, 2.0, 3.0]

    def test_empty_filter_is_zero(self):
        """An empty filter reports 0."""
        f = SmoothingFilter(5)
        assert f.smoothed_value == 0.0
        assert f.buffer_size == 0
        assert not f.is_full

    def test_reset_clears_buffer(self):
        """Reset empties the window."""
        f = SmoothingFilter(2)
        f.add_value(10)
        f.add_value(20)
        assert f.is_full
        f.reset()
        assert f.buffer_size == 0
        assert f.add_value(4) == 4.0

    def test_invalid_window(self):
        """A window smaller than one is rejected."""
        with pytest.raises(ValueError):
            SmoothingFilter(0)


class TestSpeedSmoother:
    """Tests for speed from timestamped positions."""

    def test_first_sample_has_zero_speed(self):
        """The first position has no predecessor."""
        s = SpeedSmoother(1)
        assert s.add_position(Point2D(0, 0), 0) == 0.0

    def test_constant_motion_with_window_one(self):
        """Without smoothing the speed is displacement over time."""
        s = SpeedSmoother(1)
        s.add_position(Point2D(0, 0), 0)
        assert s.add_position(Point2D(30, 40), 10) == pytest.approx(5.0)
        assert s.max_speed == pytest.approx(5.0)

    def test_non_positive_elapsed_time(self):
        """Duplicate timestamps give an instantaneous speed of 0."""
        s = SpeedSmoother(1)
        s.add_position(Point2D(0, 0), 100)
        assert s.add_position(Point2D(50, 0), 100) == 0.0
        assert s.add_position(Point2D(60, 0), 90) == 0.0

    def test_only_x_is_smoothed(self):
        """The y coordinate is passed through unsmoothed."""
        s = SpeedSmoother(3)
        s.add_position(Point2D(0, 0), 0)
        s.add_position(Point2D(30, 10), 10)
        last = s.history[-1].position
        assert last.x == pytest.approx(15.0)
        assert last.y == pytest.approx(10.0)

    def test_average_speed_and_reset(self):
        """Average speed uses samples inside the window."""
        s = SpeedSmoother(1)
        for i in range(5):
            s.add_position(Point2D(i * 10.0, 0), i * 10.0)
        assert s.average_speed(10, 40) == pytest.approx(1.0)
        assert s.average_speed(100, 200) == 0.0
        s.reset()
        assert s.history == []
        assert s.max_speed == 0.0


class TestAccelerationCalculator:
    """Tests for the two-point acceleration."""

    def test_needs_two_samples(self):
        """One sample is not enough."""
        a = AccelerationCalculator()
        assert a.add_speed(5.0, 1.0) == 0.0

    def test_two_point_difference(self):
        """Acceleration is the difference of the last two samples."""
        a = AccelerationCalculator()
        a.add_speed(2.0, 0.0)
        a.add_speed(4.0, 1.0)
        assert a.add_speed(10.0, 1.5) == pytest.approx(12.0)

    def test_non_positive_dt(self):
        """Repeated timestamps give zero acceleration."""
        a = AccelerationCalculator()
        a.add_speed(2.0, 1.0)
        assert a.add_speed(8.0, 1.0) == 0.0

    def test_fifo_is_bounded(self):
        """At most twice the window size samples are kept."""
        a = AccelerationCalculator(window_size=2)
        for i in range(10):
            a.add_speed(float(i), float(i))
        assert len(a.samples) == 4
        assert a.average_acceleration(0, 100) == pytest.approx(1.0)


class TestArrayUtilities:
    """Tests for the non-streaming helpers."""

    def test_moving_average_shrinks_at_edges(self):
        """The centered window shrinks at both ends."""
        assert moving_average([1, 2, 3, 4, 5], 3) == pytest.approx([1.5, 2.0, 3.0, 4.0, 4.5])

    def test_exponential_smoothing(self):
        """The first output equals the first input."""
        out = exponential_smoothing([10, 20, 20], alpha=0.5)
        assert out == pytest.approx([10.0, 15.0, 17.5])

    @pytest.mark.parametrize("alpha", [0.0, -0.1, 1.5])
    def test_exponential_smoothing_rejects_alpha(self, alpha):
        """Alpha must lie in (0, 1]."""
        with pytest.raises(ValueError):
            exponential_smoothing([1, 2, 3], alpha=alpha)

    def test_median_filter_removes_spike(self):
        """A single outlier is removed by the median."""
        assert median_filter([1, 1, 100, 1, 1], 3) == pytest.approx([1.0, 1.0, 1.0, 1.0, 1.0])

    def test_empty_input(self):
        """Empty input gives empty output."""
        assert moving_average([], 3) == []
        assert median_filter([], 3) == []
        assert exponential_smoothing([], 0.3) == []
