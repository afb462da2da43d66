"""
Export/import payloads, summary statistics and pandas views of saved results.
"""

from __future__ import annotations

from datetime import datetime, timezone
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd
from loguru import logger

import athletics_ai.config as cfg
from athletics_ai.storage import ResultStore

JUMP = "broad-jump"
SPRINT = "sprint"
KICK = "kick"
MEASUREMENTS = "body-measurement"

HIGHER_IS_BETTER = ("distance", "ballSpeed", "maxSpeed")


def downsample_records(records: List[dict], max_items: int) -> List[dict]:
    if max_items <= 0:
        return []
    if len(records) <= max_items:
        return list(records)
    step = max(1, len(records) // max_items)
    sampled = records[::step][:max_items]
    sampled[-1] = records[-1]
    return sampled


def export_info(export_type: str, **extra: Any) -> Dict[str, Any]:
    info = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": cfg.EXPORT_VERSION,
        "type": export_type,
    }
    info.update(extra)
    return info


def _trimmed(records: List[dict]) -> List[dict]:
    out = []
    for record in records:
        record = dict(record)
        for key in ("trajectory", "speedHistory", "ballTrajectory"):
            if isinstance(record.get(key), list) and len(record[key]) > cfg.REPORT_MAX_RECORDS:
                record[key] = downsample_records(record[key], cfg.REPORT_MAX_RECORDS)
        out.append(record)
    return out


def build_test_export(store: ResultStore, kind: str) -> Dict[str, Any]:
    results = _trimmed(store.list_results(kind))
    return {
        "exportInfo": export_info(kind, testCount=len(results)),
        "testType": kind,
        "results": results,
        "userHeight": store.get_user_height(),
        "calibration": store.load_calibration(kind),
    }


def build_athletic_export(store: ResultStore) -> Dict[str, Any]:
    return {
        "exportInfo": export_info("athletic_tests"),
        "broadJumpResults": _trimmed(store.list_results(JUMP)),
        "sprintResults": _trimmed(store.list_results(SPRINT)),
        "kickResults": _trimmed(store.list_results(KICK)),
        "userHeight": store.get_user_height(),
        "calibrations": store.all_calibrations(),
    }


def build_measurements_export(store: ResultStore) -> Dict[str, Any]:
    return {
        "exportInfo": export_info("body_measurements"),
        "measurements": store.list_results(MEASUREMENTS),
        "userHeight": store.get_user_height(),
        "settings": store.get_settings(),
    }


def build_complete_export(store: ResultStore) -> Dict[str, Any]:
    return {
        "exportInfo": export_info("complete_export"),
        "bodyMeasurements": {
            "measurements": store.list_results(MEASUREMENTS),
            "userHeight": store.get_user_height(),
            "settings": store.get_settings(),
        },
        "athleticTests": {
            "broadJump": _trimmed(store.list_results(JUMP)),
            "sprint": _trimmed(store.list_results(SPRINT)),
            "kick": _trimmed(store.list_results(KICK)),
            "calibrations": store.all_calibrations(),
        },
    }


def _import_results(store: ResultStore, kind: str, records: Optional[List[dict]]) -> int:
    # Saved newest first; re-insert oldest first to keep that order.
    records = list(records or [])
    for record in reversed(records):
        store.save_result(kind, record)
    return len(records)


def _import_measurements(store: ResultStore, data: Dict[str, Any]) -> int:
    count = _import_results(store, MEASUREMENTS, data.get("measurements"))
    if data.get("userHeight"):
        store.save_user_height(data["userHeight"])
    if data.get("settings"):
        store.save_settings(data["settings"])
    return count


def _import_athletic(store: ResultStore, data: Dict[str, Any]) -> int:
    count = 0
    count += _import_results(store, JUMP, data.get("broadJumpResults"))
    count += _import_results(store, SPRINT, data.get("sprintResults"))
    count += _import_results(store, KICK, data.get("kickResults"))
    if data.get("calibrations"):
        store.replace_calibrations(data["calibrations"])
    return count


def import_payload(store: ResultStore, payload: Any) -> int:
    """Load an export (dict or JSON text) into ``store``; returns records imported."""
    data = json.loads(payload) if isinstance(payload, (str, bytes)) else payload
    info = data.get("exportInfo") if isinstance(data, dict) else None
    if not info or not info.get("type"):
        raise ValueError("Invalid export format")

    export_type = info["type"]
    if export_type == "body_measurements":
        count = _import_measurements(store, data)
    elif export_type == "athletic_tests":
        count = _import_athletic(store, data)
    elif export_type == "complete_export":
        count = _import_measurements(store, data.get("bodyMeasurements") or {})
        tests = data.get("athleticTests") or {}
        count += _import_athletic(
            store,
            {
                "broadJumpResults": tests.get("broadJump"),
                "sprintResults": tests.get("sprint"),
                "kickResults": tests.get("kick"),
                "calibrations": tests.get("calibrations"),
            },
        )
    elif export_type in (JUMP, SPRINT, KICK):
        count = _import_results(store, export_type, data.get("results"))
        if data.get("calibration"):
            store.save_calibration(export_type, data["calibration"])
    else:
        raise ValueError(f"Unknown export type: {export_type}")

    logger.info(f"Imported {count} records from {export_type} export")
    return count


def best_result(store: ResultStore, kind: str, metric: str) -> Optional[float]:
    values = [r[metric] for r in store.list_results(kind) if r.get(metric) is not None]
    if not values:
        return None
    return max(values) if metric in HIGHER_IS_BETTER else min(values)


def summary_stats(store: ResultStore) -> Dict[str, Any]:
    return {
        "bodyMeasurements": {
            "count": len(store.list_results(MEASUREMENTS)),
            "userHeight": store.get_user_height(),
        },
        "athleticTests": {
            "broadJump": {
                "count": len(store.list_results(JUMP)),
                "bestDistance": best_result(store, JUMP, "distance"),
            },
            "sprint": {
                "count": len(store.list_results(SPRINT)),
                "bestTime": best_result(store, SPRINT, "totalTime"),
            },
            "kick": {
                "count": len(store.list_results(KICK)),
                "bestSpeed": best_result(store, KICK, "ballSpeed"),
            },
        },
    }


def results_frame(store: ResultStore, kind: str) -> pd.DataFrame:
    """One row per saved result with its scalar fields; split dicts are flattened."""
    rows = []
    for record in store.list_results(kind):
        row = {}
        for key, value in record.items():
            if isinstance(value, dict) and key in ("splits", "avgAccels"):
                for name, v in value.items():
                    row[f"{key}.{name}"] = v
            elif not isinstance(value, (list, dict)):
                row[key] = value
        rows.append(row)
    return pd.DataFrame(rows)


def speed_history_frame(result: Any) -> pd.DataFrame:
    record = result.to_dict() if hasattr(result, "to_dict") else dict(result)
    history = record.get("speedHistory") or []
    frame = pd.DataFrame(history, columns=["time", "speed", "x", "y"])
    if not frame.empty:
        frame["time_s"] = (frame["time"] - frame["time"].iloc[0]) / 1000.0
    return frame


def default_export_filename(prefix: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return f"{prefix}-{now.strftime('%Y-%m-%d_%H-%M')}.json"


def write_json(payload: Dict[str, Any], path: Optional[str | Path] = None, prefix: str = "complete-export") -> Path:
    target = Path(path) if path is not None else Path(default_export_filename(prefix))
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(payload, indent=2, ensure_ascii=True))
    logger.info(f"Exported data to {target}")
    return target


__all__ = [
    "downsample_records",
    "export_info",
    "build_test_export",
    "build_athletic_export",
    "build_measurements_export",
    "build_complete_export",
    "import_payload",
    "best_result",
    "summary_stats",
    "results_frame",
    "speed_history_frame",
    "default_export_filename",
    "write_json",
]
