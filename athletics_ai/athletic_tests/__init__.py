from .base import (
    AthleticTest,
    FrameScale,
    JumpResult,
    KickResult,
    SprintResult,
    TestKind,
    TestResult,
    TestState,
)
from .jump import JumpTracker
from .kick import KickTracker
from .registry import (
    TEST_DEFINITIONS,
    TEST_REGISTRY,
    TestDefinition,
    create_test,
    get_test_definition,
    get_test_names,
)
from .sprint import SprintTracker, summarize_sprint

__all__ = [
    "AthleticTest",
    "FrameScale",
    "JumpResult",
    "KickResult",
    "SprintResult",
    "TestKind",
    "TestResult",
    "TestState",
    "JumpTracker",
    "KickTracker",
    "SprintTracker",
    "summarize_sprint",
    "TEST_DEFINITIONS",
    "TEST_REGISTRY",
    "TestDefinition",
    "create_test",
    "get_test_definition",
    "get_test_names",
]
