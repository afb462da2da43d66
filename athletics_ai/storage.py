"""
Key-value storage port plus the result/calibration store built on top of it.

Nothing in the core talks to a concrete backend: calibrators and sessions get
a ``StoragePort`` injected. ``MemoryStorage`` backs tests and ephemeral runs,
``JsonFileStorage`` keeps everything in one JSON document on disk.
"""

from __future__ import annotations

import copy
from dataclasses import asdict, is_dataclass
import json
from pathlib import Path
import time
from typing import Any, Dict, List, Optional, Protocol
from uuid import uuid4

from loguru import logger

import athletics_ai.config as cfg


RESULTS_KEY_PREFIX = "athleticTestResults"
USER_HEIGHT_KEY = "userHeight"
SETTINGS_KEY = "appSettings"

DEFAULT_SETTINGS = {
    "unit": "cm",
    "use_metric_display": cfg.USE_METRIC_DISPLAY,
    "max_saved_results": cfg.MAX_SAVED_RESULTS,
}


class StoragePort(Protocol):
    def get(self, key: str) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStorage:
    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = copy.deepcopy(initial) if initial else {}

    def get(self, key: str) -> Any:
        return copy.deepcopy(self._data.get(key))

    def set(self, key: str, value: Any) -> None:
        # Round-trip through JSON so callers cannot store non-serializable values.
        self._data[key] = json.loads(json.dumps(value))

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data)


class JsonFileStorage:
    """All keys in a single JSON file, rewritten on every mutation."""

    def __init__(self, path: str | Path = cfg.STORE_PATH):
        self.path = Path(path)

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        text = self.path.read_text()
        if not text.strip():
            return {}
        payload = json.loads(text)
        if not isinstance(payload, dict):
            raise ValueError(f"Storage file {self.path} does not contain a JSON object.")
        return payload

    def _write(self, payload: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(payload, indent=2, ensure_ascii=True))

    def get(self, key: str) -> Any:
        return self._read().get(key)

    def set(self, key: str, value: Any) -> None:
        payload = self._read()
        payload[key] = value
        self._write(payload)

    def delete(self, key: str) -> None:
        payload = self._read()
        if key in payload:
            del payload[key]
            self._write(payload)


def to_record(result: Any) -> Dict[str, Any]:
    """Convert a result object (dataclass or mapping) into a JSON-ready dict."""
    if hasattr(result, "to_dict"):
        return result.to_dict()
    if is_dataclass(result):
        return asdict(result)
    if isinstance(result, dict):
        return dict(result)
    raise TypeError(f"Cannot store result of type {type(result).__name__}")


def _kind_value(kind: Any) -> str:
    return str(getattr(kind, "value", kind))


class ResultStore:
    """Finalized results, calibrations, user height and settings."""

    def __init__(self, storage: Optional[StoragePort] = None):
        self.storage: StoragePort = storage if storage is not None else MemoryStorage()

    # Results
    def _results_key(self, kind: Any) -> str:
        return f"{RESULTS_KEY_PREFIX}:{_kind_value(kind)}"

    def list_results(self, kind: Any) -> List[Dict[str, Any]]:
        return list(self.storage.get(self._results_key(kind)) or [])

    def save_result(self, kind: Any, result: Any) -> str:
        record = to_record(result)
        record["id"] = f"{_kind_value(kind)}_{int(time.time() * 1000)}_{uuid4().hex[:9]}"
        record.setdefault("saved_at", time.time())

        results = self.list_results(kind)
        results.insert(0, record)
        max_saved = int(self.get_settings().get("max_saved_results") or cfg.MAX_SAVED_RESULTS)
        del results[max_saved:]
        self.storage.set(self._results_key(kind), results)
        logger.info(f"Saved {_kind_value(kind)} result {record['id']}")
        return record["id"]

    def get_result(self, kind: Any, result_id: str) -> Optional[Dict[str, Any]]:
        for record in self.list_results(kind):
            if record.get("id") == result_id:
                return record
        return None

    def delete_result(self, kind: Any, result_id: str) -> bool:
        results = self.list_results(kind)
        kept = [r for r in results if r.get("id") != result_id]
        if len(kept) == len(results):
            return False
        self.storage.set(self._results_key(kind), kept)
        return True

    def clear_results(self, kind: Any) -> None:
        self.storage.set(self._results_key(kind), [])

    def clean_old_results(self, kind: Any, days_to_keep: float = 90) -> int:
        cutoff = time.time() - days_to_keep * 24 * 60 * 60
        results = self.list_results(kind)
        kept = [r for r in results if float(r.get("saved_at", 0.0)) > cutoff]
        self.storage.set(self._results_key(kind), kept)
        return len(results) - len(kept)

    # Calibrations
    def all_calibrations(self) -> Dict[str, Any]:
        return dict(self.storage.get(cfg.CALIBRATION_STORAGE_KEY) or {})

    def save_calibration(self, kind: Any, data: Dict[str, Any]) -> None:
        calibrations = self.all_calibrations()
        calibrations[_kind_value(kind)] = data
        self.storage.set(cfg.CALIBRATION_STORAGE_KEY, calibrations)
        logger.info(f"Saved {_kind_value(kind)} calibration")

    def load_calibration(self, kind: Any) -> Optional[Dict[str, Any]]:
        return self.all_calibrations().get(_kind_value(kind))

    def clear_calibration(self, kind: Any) -> None:
        calibrations = self.all_calibrations()
        if calibrations.pop(_kind_value(kind), None) is not None:
            self.storage.set(cfg.CALIBRATION_STORAGE_KEY, calibrations)

    def replace_calibrations(self, calibrations: Dict[str, Any]) -> None:
        self.storage.set(cfg.CALIBRATION_STORAGE_KEY, dict(calibrations))

    # User height + settings
    def save_user_height(self, height_cm: float) -> None:
        height = float(height_cm)
        if not cfg.MIN_USER_HEIGHT_CM <= height <= cfg.MAX_USER_HEIGHT_CM:
            raise ValueError(
                f"Height must be between {cfg.MIN_USER_HEIGHT_CM:.0f}-{cfg.MAX_USER_HEIGHT_CM:.0f} cm"
            )
        self.storage.set(USER_HEIGHT_KEY, height)

    def get_user_height(self) -> Optional[float]:
        value = self.storage.get(USER_HEIGHT_KEY)
        return float(value) if value else None

    def get_settings(self) -> Dict[str, Any]:
        settings = dict(DEFAULT_SETTINGS)
        settings.update(self.storage.get(SETTINGS_KEY) or {})
        return settings

    def save_settings(self, updates: Dict[str, Any]) -> Dict[str, Any]:
        settings = self.get_settings()
        settings.update(updates)
        self.storage.set(SETTINGS_KEY, settings)
        return settings


__all__ = [
    "StoragePort",
    "MemoryStorage",
    "JsonFileStorage",
    "ResultStore",
    "to_record",
]
