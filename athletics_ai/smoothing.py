"""
Streaming smoothing and differentiation filters for noisy position data.

``SmoothingFilter`` is a bounded moving average, ``SpeedSmoother`` chains a
position filter into a speed filter, and ``AccelerationCalculator`` turns the
speed stream into a two-point finite-difference acceleration. The module-level
functions are the non-streaming equivalents used on whole series.
"""

from collections import deque
from dataclasses import dataclass
import math
from typing import List, Optional, Sequence

import numpy as np

from athletics_ai import config as cfg
from athletics_ai.geometry import Point2D


class SmoothingFilter:
    """Moving average over the last ``window_size`` values."""

    def __init__(self, window_size: int = cfg.DEFAULT_SMOOTHING_WINDOW):
        if window_size < 1:
            raise ValueError("window_size must be >= 1")
        self.window_size = int(window_size)
        self.buffer: deque[float] = deque(maxlen=self.window_size)

    def add_value(self, value: float) -> float:
        self.buffer.append(float(value))
        return self.smoothed_value

    @property
    def smoothed_value(self) -> float:
        if not self.buffer:
            return 0.0
        return sum(self.buffer) / len(self.buffer)

    @property
    def buffer_size(self) -> int:
        return len(self.buffer)

    @property
    def is_full(self) -> bool:
        return len(self.buffer) >= self.window_size

    def reset(self) -> None:
        self.buffer.clear()


@dataclass(frozen=True)
class SpeedSample:
    time: float
    speed: float
    position: Point2D

    def to_dict(self) -> dict:
        return {
            "time": self.time,
            "speed": self.speed,
            "x": self.position.x,
            "y": self.position.y,
        }


class SpeedSmoother:
    """Smoothed speed (pixels per ms) from a stream of timestamped positions.

    Only x is smoothed before differentiation; y passes through untouched.
    Duplicate or out-of-order timestamps produce an instantaneous speed of 0.
    """

    def __init__(self, window_size: int = cfg.DEFAULT_SMOOTHING_WINDOW):
        self.position_filter = SmoothingFilter(window_size)
        self.speed_filter = SmoothingFilter(window_size)
        self.prev_position: Optional[Point2D] = None
        self.prev_time: Optional[float] = None
        self.max_speed = 0.0
        self.history: List[SpeedSample] = []

    def add_position(self, position: Point2D, timestamp: float) -> float:
        smoothed_x = self.position_filter.add_value(position.x)
        smoothed = Point2D(smoothed_x, position.y)

        speed = 0.0
        if self.prev_position is not None and self.prev_time is not None:
            dt = timestamp - self.prev_time
            if dt > 0:
                speed = math.hypot(
                    smoothed.x - self.prev_position.x,
                    smoothed.y - self.prev_position.y,
                ) / dt

        smoothed_speed = self.speed_filter.add_value(speed)
        if smoothed_speed > self.max_speed:
            self.max_speed = smoothed_speed

        self.history.append(SpeedSample(timestamp, smoothed_speed, smoothed))
        self.prev_position = smoothed
        self.prev_time = timestamp
        return smoothed_speed

    def speed_history(self) -> List[SpeedSample]:
        return list(self.history)

    def average_speed(self, start_time: float, end_time: float) -> float:
        speeds = [s.speed for s in self.history if start_time <= s.time <= end_time]
        if not speeds:
            return 0.0
        return sum(speeds) / len(speeds)

    def reset(self) -> None:
        self.position_filter.reset()
        self.speed_filter.reset()
        self.prev_position = None
        self.prev_time = None
        self.max_speed = 0.0
        self.history = []


class AccelerationCalculator:
    """Two-point acceleration over a short FIFO of (speed, timestamp) pairs."""

    def __init__(self, window_size: int = 3):
        self.window_size = max(1, int(window_size))
        self.samples: deque[tuple[float, float]] = deque(maxlen=self.window_size * 2)

    def add_speed(self, speed: float, timestamp: float) -> float:
        self.samples.append((float(speed), float(timestamp)))
        return self.acceleration()

    def acceleration(self) -> float:
        if len(self.samples) < 2:
            return 0.0
        prev_speed, prev_time = self.samples[-2]
        speed, time_ = self.samples[-1]
        dt = time_ - prev_time
        if dt <= 0:
            return 0.0
        return (speed - prev_speed) / dt

    def average_acceleration(self, start_time: float, end_time: float) -> float:
        window = [s for s in self.samples if start_time <= s[1] <= end_time]
        if len(window) < 2:
            return 0.0
        dt = window[-1][1] - window[0][1]
        if dt <= 0:
            return 0.0
        return (window[-1][0] - window[0][0]) / dt

    def reset(self) -> None:
        self.samples.clear()


def _window_bounds(index: int, length: int, window_size: int) -> tuple[int, int]:
    half = window_size // 2
    return max(0, index - half), min(length, index + half + 1)


def moving_average(data: Sequence[float], window_size: int = cfg.DEFAULT_SMOOTHING_WINDOW) -> List[float]:
    """Centered moving average; the window shrinks at the array edges."""
    arr = np.asarray(data, dtype=np.float64)
    if arr.size == 0:
        return []
    out = []
    for i in range(arr.size):
        start, end = _window_bounds(i, arr.size, window_size)
        out.append(float(np.mean(arr[start:end])))
    return out


def exponential_smoothing(data: Sequence[float], alpha: float = cfg.DEFAULT_EMA_ALPHA) -> List[float]:
    if not 0.0 < alpha <= 1.0:
        raise ValueError("alpha must be in (0, 1]")
    arr = np.asarray(data, dtype=np.float64)
    if arr.size == 0:
        return []
    out = [float(arr[0])]
    for value in arr[1:]:
        out.append(float(alpha * value + (1.0 - alpha) * out[-1]))
    return out


def median_filter(data: Sequence[float], window_size: int = cfg.DEFAULT_SMOOTHING_WINDOW) -> List[float]:
    """Centered median filter.

    Even-length windows (only possible at the edges) take the upper median.
    """
    arr = np.asarray(data, dtype=np.float64)
    if arr.size == 0:
        return []
    out = []
    for i in range(arr.size):
        start, end = _window_bounds(i, arr.size, window_size)
        window = np.sort(arr[start:end])
        out.append(float(window[window.size // 2]))
    return out


__all__ = [
    "SmoothingFilter",
    "SpeedSample",
    "SpeedSmoother",
    "AccelerationCalculator",
    "moving_average",
    "exponential_smoothing",
    "median_filter",
]
