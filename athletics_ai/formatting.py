from __future__ import annotations

from typing import Any, List, Optional


def format_time(seconds: Optional[float]) -> str:
    if seconds is None or seconds < 0:
        return "N/A"
    if seconds < 60:
        return f"{seconds:.2f} s"
    minutes = int(seconds // 60)
    rem = seconds - minutes * 60
    return f"{minutes:d}m {rem:05.2f}s"


def format_time_ms(milliseconds: Optional[float]) -> str:
    if milliseconds is None:
        return "N/A"
    return format_time(milliseconds / 1000.0)


def format_distance_m(meters: Optional[float]) -> str:
    if meters is None or meters < 0:
        return "N/A"
    return f"{meters:.2f} m"


def format_speed_mps(speed_mps: Optional[float], use_metric: bool = True) -> str:
    if speed_mps is None:
        return "N/A"
    if use_metric:
        return f"{speed_mps:.2f} m/s"
    return f"{speed_mps * 3.6:.1f} km/h"


def format_accel_mps2(accel: Optional[float]) -> str:
    if accel is None:
        return "N/A"
    return f"{accel:.2f} m/s^2"


def format_measurement(value: Optional[float], unit: str = "cm", decimals: int = 1) -> str:
    if not value or value <= 0:
        return "-"
    return f"{value:.{decimals}f} {unit}"


def result_lines(result: Any, use_metric: bool = True) -> List[str]:
    """Short human-readable summary of a finished test result."""
    record = result.to_dict() if hasattr(result, "to_dict") else dict(result)
    kind = record.get("kind")
    if kind == "broad-jump":
        return [
            f"Distance: {format_distance_m(record.get('distance'))}",
            f"Takeoff speed: {format_speed_mps(record.get('takeoffSpeed'), use_metric)}",
            f"Flight time: {format_time_ms(record.get('flightTime'))}",
        ]
    if kind == "sprint":
        lines = [f"{name}: {format_time(split)}" for name, split in (record.get("splits") or {}).items()]
        lines.append(f"Total: {format_time(record.get('totalTime'))}")
        lines.append(f"Avg speed: {format_speed_mps(record.get('avgSpeedTotal'), use_metric)}")
        lines.append(f"Max speed: {format_speed_mps(record.get('maxSpeed'), use_metric)}")
        return lines
    if kind == "kick":
        return [
            f"Ball speed: {format_speed_mps(record.get('ballSpeed'), use_metric)}",
            f"Flight time: {format_time(record.get('flightTime'))}",
            f"Distance: {format_distance_m(record.get('distance'))}",
        ]
    return []


__all__ = [
    "format_time",
    "format_time_ms",
    "format_distance_m",
    "format_speed_mps",
    "format_accel_mps2",
    "format_measurement",
    "result_lines",
]
