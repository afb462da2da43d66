"""
Cached ultralytics model loaders.

Sessions and CLI runs for different test kinds share the same YOLO instances.
"""

from functools import lru_cache
from pathlib import Path

from ultralytics import YOLO

import athletics_ai.config as cfg


def _resolve_weights(path: str) -> str:
    """Return an absolute path, preferring files inside MODELS_DIR."""
    p = Path(path)
    if p.exists():
        return str(p.resolve())

    candidate = cfg.MODELS_DIR / p.name
    if candidate.exists():
        return str(candidate.resolve())

    # Let YOLO resolve hub names and remote URIs itself
    return str(p)


@lru_cache(maxsize=4)
def load_pose_model(weights: str = cfg.POSE_WEIGHTS) -> YOLO:
    try:
        return YOLO(_resolve_weights(weights))
    except Exception as exc:
        raise RuntimeError(
            f"Failed to load pose weights '{Path(weights).name}'. "
            "These weights may require a newer ultralytics build. "
            f"Underlying error: {exc}"
        ) from exc


@lru_cache(maxsize=4)
def load_detector(weights: str = cfg.DETECTOR_WEIGHTS) -> YOLO:
    try:
        return YOLO(_resolve_weights(weights))
    except Exception as exc:
        raise RuntimeError(f"Failed to load detector weights '{Path(weights).name}': {exc}") from exc


__all__ = ["load_pose_model", "load_detector"]
