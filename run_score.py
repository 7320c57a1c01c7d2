#!/usr/bin/env python3
"""
Raw Score Dump
==============
Append ``<file>\\t<score>`` for every camera frame to ScoreLog.txt.
Files are not copied; use this to pick --threshold for run_inspect.py.

Usage:
    python run_score.py --input=D:/line/20251201
    python run_score.py --input=data/test --model-dir=model --device=cpu
"""
import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).parent
sys.path.insert(0, str(ROOT))

from config.base import IMAGE_EXTS, MODEL_DIR, SCORE_LOG_NAME
from config.inspector import DEVICE, INPUT_HEIGHT, INPUT_WIDTH, NORMALIZE
from Core_LineInspector.pipeline import InspectorConfig, write_score_log

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(message)s",
    datefmt="%H:%M:%S",
)


def main():
    parser = argparse.ArgumentParser(description="Dump raw model scores to ScoreLog.txt")
    parser.add_argument("--input", "-i", type=str, required=True)
    parser.add_argument("--model-dir", "-m", type=str, default=None)
    parser.add_argument("--normalize", choices=["none", "imagenet"], default=None)
    parser.add_argument("--device", choices=["cuda", "cpu"], default=None)
    args = parser.parse_args()

    config = InspectorConfig(
        model_dir=Path(args.model_dir) if args.model_dir else MODEL_DIR,
        image_exts=set(IMAGE_EXTS),
        input_width=INPUT_WIDTH,
        input_height=INPUT_HEIGHT,
        normalize=args.normalize or NORMALIZE,
        device=args.device or DEVICE,
        tick_interval=0,
    )
    scores = write_score_log(Path(args.input), config, log_name=SCORE_LOG_NAME)
    print(f"\n✅ {len(scores)} scores → {Path(args.input) / SCORE_LOG_NAME}")


if __name__ == "__main__":
    main()
