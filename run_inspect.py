#!/usr/bin/env python3
"""
Folder Inspection (OK / NG sorting)
===================================
Sort every camera frame in a folder into Result_OK / Result_NG.

Usage:
    python run_inspect.py --input=D:/line/20251201
    python run_inspect.py --input=data/test --model-dir=model --threshold=0.7
    python run_inspect.py --input=data/test --device=cpu --log-file

Requires Cam01.onnx and Cam02.onnx in --model-dir (default: next to this script).
Ctrl+C stops after the current file.
"""
import argparse
import logging
import sys
import threading
from datetime import datetime
from pathlib import Path

ROOT = Path(__file__).parent
sys.path.insert(0, str(ROOT))

from config.base import (
    CAM1_MODEL_NAME,
    CAM1_TAG,
    CAM2_MODEL_NAME,
    CAM2_TAG,
    IMAGE_EXTS,
    MODEL_DIR,
    PRESENCE_MEAN_THRESHOLD,
    PRESENCE_STD_THRESHOLD,
    RESULT_NG_DIR,
    RESULT_OK_DIR,
    TICK_INTERVAL,
)
from config.inspector import (
    ANOMALY_THRESHOLD,
    DEVICE,
    INPUT_HEIGHT,
    INPUT_WIDTH,
    INTRA_OP_THREADS,
    NORMALIZE,
)
from Core_LineInspector.pipeline import (
    BatchInspector,
    BatchProgress,
    BatchState,
    CameraId,
    CameraSpec,
    InspectorConfig,
)
from Core_LineInspector.preprocess import PresenceThresholds

logger = logging.getLogger("run_inspect")


def build_config(args) -> InspectorConfig:
    """InspectorConfig from config/*.py, overridden by CLI flags."""
    thr = PresenceThresholds(
        args.mean_threshold if args.mean_threshold is not None else PRESENCE_MEAN_THRESHOLD,
        args.std_threshold if args.std_threshold is not None else PRESENCE_STD_THRESHOLD,
    )
    return InspectorConfig(
        model_dir=Path(args.model_dir) if args.model_dir else MODEL_DIR,
        cameras=[
            CameraSpec(CameraId.CAMERA_1, CAM1_TAG, CAM1_MODEL_NAME, thr),
            CameraSpec(CameraId.CAMERA_2, CAM2_TAG, CAM2_MODEL_NAME, thr),
        ],
        image_exts=set(IMAGE_EXTS),
        ok_dir_name=RESULT_OK_DIR,
        ng_dir_name=RESULT_NG_DIR,
        input_width=INPUT_WIDTH,
        input_height=INPUT_HEIGHT,
        normalize=args.normalize or NORMALIZE,
        anomaly_threshold=args.threshold if args.threshold is not None else ANOMALY_THRESHOLD,
        device=args.device or DEVICE,
        intra_op_threads=INTRA_OP_THREADS,
        tick_interval=TICK_INTERVAL,
    )


def setup_logging(verbose: bool, log_file: Path = None) -> None:
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file is not None:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s | %(levelname)-8s | %(message)s",
        datefmt="%H:%M:%S",
        handlers=handlers,
    )


class ProgressLine:
    """Single-line console progress bar fed by progress snapshots."""

    BAR_WIDTH = 30

    def __init__(self, stream=sys.stdout):
        self.stream = stream
        self._last = ""
        self._lock = threading.Lock()

    def __call__(self, snap: BatchProgress) -> None:
        filled = self.BAR_WIDTH * snap.percent // 100
        bar = "#" * filled + "-" * (self.BAR_WIDTH - filled)
        line = (f"\r[{bar}] {snap.percent:3d}% {snap.current}/{snap.total} "
                f"{snap.elapsed_text} | {snap.status[:60]:<60}")
        with self._lock:
            if line != self._last:
                self.stream.write(line)
                self.stream.flush()
                self._last = line

    def close(self) -> None:
        with self._lock:
            self.stream.write("\n")
            self.stream.flush()


def wait_for_summary(inspector: BatchInspector, poll: float = 0.5):
    """
    Block until the run ends. First Ctrl+C cancels after the current file;
    further Ctrl+C presses while it winds down are ignored.
    """
    cancelled = False
    summary = None
    while summary is None:
        try:
            summary = inspector.wait(timeout=poll)
        except KeyboardInterrupt:
            if not cancelled:
                logger.warning("Interrupted, stopping after the current file...")
                inspector.cancel()
                cancelled = True
    return summary


def main():
    parser = argparse.ArgumentParser(
        description="Sort line camera frames into Result_OK / Result_NG",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--input", "-i", type=str, required=True,
                        help="Folder of .jpg / .png / .bmp frames")
    parser.add_argument("--model-dir", "-m", type=str, default=None,
                        help=f"Folder with {CAM1_MODEL_NAME} and {CAM2_MODEL_NAME}")
    parser.add_argument("--threshold", "-t", type=float, default=None,
                        help=f"Anomaly threshold for single-score models (default {ANOMALY_THRESHOLD})")
    parser.add_argument("--mean-threshold", type=float, default=None,
                        help=f"Presence gate gray mean (default {PRESENCE_MEAN_THRESHOLD})")
    parser.add_argument("--std-threshold", type=float, default=None,
                        help=f"Presence gate gray std-dev (default {PRESENCE_STD_THRESHOLD})")
    parser.add_argument("--normalize", choices=["none", "imagenet"], default=None,
                        help=f"Input normalization (default {NORMALIZE})")
    parser.add_argument("--device", choices=["cuda", "cpu"], default=None)
    parser.add_argument("--log-file", action="store_true",
                        help="Also write inspection_<timestamp>.log into the input folder")
    parser.add_argument("--verbose", "-v", action="store_true")
    args = parser.parse_args()

    input_dir = Path(args.input)
    log_file = None
    if args.log_file and input_dir.is_dir():
        log_file = input_dir / f"inspection_{datetime.now():%Y%m%d_%H%M%S}.log"
    setup_logging(args.verbose, log_file)

    config = build_config(args)
    progress = ProgressLine()
    inspector = BatchInspector(config, on_progress=progress)

    inspector.start(input_dir)
    summary = wait_for_summary(inspector)
    progress.close()

    print("=" * 60)
    print(f"  {summary.status}")
    print(f"  Input:    {input_dir}")
    print(f"  OK:       {summary.ok}")
    print(f"  NG:       {summary.ng}")
    print(f"  Skipped:  {summary.skipped}")
    print(f"  Errors:   {summary.errored}")
    print(f"  Elapsed:  {summary.elapsed_text}")
    print("=" * 60)

    sys.exit(0 if summary.state is BatchState.COMPLETED else 1)


if __name__ == "__main__":
    main()
