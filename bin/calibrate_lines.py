import argparse
from pathlib import Path

import cv2

from athletics_ai import config as cfg
from athletics_ai.athletic_tests import TestKind, create_test
from athletics_ai.overlay import calibration_geometry, draw_calibration_overlay, draw_point
from athletics_ai.storage import JsonFileStorage, ResultStore


WINDOW_NAME = "Line Calibration"


def _draw_instructions(frame, kind, meter_values, count):
    remaining = meter_values[count] if count < len(meter_values) else None
    lines = [
        f"{kind.value}: click the {len(meter_values)} marks in order ({', '.join(f'{m:g}m' for m in meter_values)}).",
        f"Next: {remaining:g}m" if remaining is not None else "All marks set.",
        "Keys: u=undo, r=reset, c=confirm, q=quit",
    ]
    y = 24
    for line in lines:
        cv2.putText(frame, line, (16, y), cv2.FONT_HERSHEY_SIMPLEX, 0.6, (255, 255, 255), 2)
        y += 22


def main():
    parser = argparse.ArgumentParser(description="Calibrate the meter marks of one athletic test from clicks.")
    parser.add_argument("video", help="Path to the input video file.")
    parser.add_argument(
        "--test",
        choices=[kind.value for kind in TestKind],
        default=TestKind.SPRINT.value,
        help="Test kind to calibrate.",
    )
    parser.add_argument(
        "--marks",
        type=float,
        nargs="+",
        default=None,
        help="Meter values of the marks, in click order (default per test kind).",
    )
    parser.add_argument(
        "--store",
        type=str,
        default=str(cfg.STORE_PATH),
        help="JSON store the calibration is saved to.",
    )
    args = parser.parse_args()

    video_path = Path(args.video)
    if not video_path.exists():
        raise SystemExit(f"Video not found: {video_path}")

    cap = cv2.VideoCapture(str(video_path))
    ret, frame = cap.read()
    cap.release()
    if not ret or frame is None:
        raise SystemExit("Unable to read the first frame.")

    store = ResultStore(JsonFileStorage(args.store))
    test = create_test(args.test, store=store)
    meter_values = args.marks or list(test.definition.meter_values)
    clicks = []

    def on_mouse(event, x, y, _flags, _param):
        if event == cv2.EVENT_LBUTTONDOWN and len(clicks) < len(meter_values):
            clicks.append((float(x), float(y)))

    cv2.namedWindow(WINDOW_NAME, cv2.WINDOW_NORMAL)
    cv2.setMouseCallback(WINDOW_NAME, on_mouse)

    confirmed = False
    while True:
        canvas = frame.copy()
        for idx, point in enumerate(clicks):
            draw_point(canvas, point, (0, 255, 255), 8, f"{meter_values[idx]:g}m")
        _draw_instructions(canvas, test.kind, meter_values, len(clicks))
        cv2.imshow(WINDOW_NAME, canvas)
        key = cv2.waitKey(10) & 0xFF
        if key == ord("r"):
            clicks.clear()
        elif key == ord("u"):
            if clicks:
                clicks.pop()
        elif key == ord("q") or key == 27:
            break
        elif key == ord("c") and len(clicks) == len(meter_values):
            confirmed = True
            break

    if not confirmed:
        cv2.destroyAllWindows()
        raise SystemExit("Calibration canceled.")

    test.start_calibration(meter_values)
    done = False
    for point in clicks:
        done = test.add_calibration_click(point)
    if not done:
        cv2.destroyAllWindows()
        raise SystemExit("Calibration failed: the first and last marks must be different points.")
    for warning in test.calibrator.warnings:
        print(f"Warning: {warning}")

    preview = frame.copy()
    draw_calibration_overlay(preview, calibration_geometry(test.calibrator, preview.shape[0]))
    cv2.imshow(WINDOW_NAME, preview)
    cv2.waitKey(1500)
    cv2.destroyAllWindows()

    params = test.calibrator.params
    print(f"Saved {test.kind.value} calibration to {args.store} ({abs(params.meters_per_pixel) * 100:.3f} cm/px)")


if __name__ == "__main__":
    main()
