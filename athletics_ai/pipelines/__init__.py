"""
Pipelines for running athletic tests end to end over recorded video.
"""

from athletics_ai.pipelines.video import FrameResult, run_athletic_test  # noqa: F401

__all__ = ["FrameResult", "run_athletic_test"]
