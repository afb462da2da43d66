import argparse
import json

import cv2

from athletics_ai import config as cfg
from athletics_ai.athletic_tests import TestKind, create_test
from athletics_ai.ball import YoloBallDetector
from athletics_ai.errors import PreconditionError
from athletics_ai.formatting import result_lines
from athletics_ai.options import TestOptions
from athletics_ai.pipelines import run_athletic_test
from athletics_ai.storage import JsonFileStorage, ResultStore


def main():
    parser = argparse.ArgumentParser(description="Run one calibrated athletic test over a video.")
    parser.add_argument("video", help="Path to the input video file.")
    parser.add_argument("--test", choices=[kind.value for kind in TestKind], default=TestKind.SPRINT.value)
    parser.add_argument("--store", type=str, default=str(cfg.STORE_PATH), help="JSON store with calibrations.")
    parser.add_argument("--pose-weights", type=str, default=cfg.POSE_WEIGHTS)
    parser.add_argument("--detector-weights", type=str, default=cfg.DETECTOR_WEIGHTS)
    parser.add_argument("--max-frames", type=int, default=None)
    parser.add_argument("--no-display", action="store_true", help="Do not open a preview window.")
    parser.add_argument("--json", action="store_true", help="Print the result as JSON.")
    args = parser.parse_args()

    options = TestOptions(pose_weights=args.pose_weights, detector_weights=args.detector_weights)
    store = ResultStore(JsonFileStorage(args.store))
    detector = None
    if args.test == TestKind.KICK.value:
        detector = YoloBallDetector(weights=options.detector_weights, conf=options.ball_conf)

    test = create_test(
        args.test,
        store=store,
        options=options,
        user_height_cm=store.get_user_height(),
        ball_detector=detector,
    )
    test.subscribe(on_progress=print)

    gen = run_athletic_test(args.video, test, max_frames=args.max_frames, draw=not args.no_display)
    try:
        for frame_result in gen:
            if args.no_display:
                continue
            cv2.imshow("ATHLETIC TEST", frame_result.annotated)
            if cv2.waitKey(1) & 0xFF == ord("q"):
                break
    except PreconditionError as exc:
        raise SystemExit(f"{exc}. Run bin/calibrate_lines.py --test {args.test} first.")
    finally:
        gen.close()
        cv2.destroyAllWindows()

    result = test.get_result()
    if result is None:
        raise SystemExit("No result: the test did not complete.")

    result_id = store.save_result(result.kind, result)
    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
        return
    print("\n======================")
    for line in result_lines(result, options.use_metric_display):
        print(line)
    print(f"Saved as {result_id}")
    print("======================")


if __name__ == "__main__":
    main()
