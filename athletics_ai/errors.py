"""
Exception types and validation records shared by the athletic-test modules.

Precondition failures are raised before any state is mutated. Validation
warnings never abort a flow; they are stored on the object that produced them
and logged. Numeric degeneracy (parallel lines, zero elapsed time) is not an
error at all: detection helpers return ``None`` instead.
"""

from dataclasses import dataclass, field
import time


class AthleticsError(Exception):
    """Base class for errors raised by athletics_ai."""


class PreconditionError(AthleticsError):
    """A test was started without calibration or required user input."""


class MeasurementError(AthleticsError):
    """A body measurement could not be derived from the detected pose."""


class CalibrationError(AthleticsError):
    """A persisted calibration payload is malformed."""


@dataclass(frozen=True)
class ValidationWarning:
    message: str
    source: str = "validation"
    created_at: float = field(default_factory=time.time)

    def __str__(self) -> str:
        return self.message


__all__ = [
    "AthleticsError",
    "PreconditionError",
    "MeasurementError",
    "CalibrationError",
    "ValidationWarning",
]
