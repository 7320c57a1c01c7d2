#!/usr/bin/env python3
"""
Export a trained classifier .pth → .onnx for the line runtime.

Usage:
    python run_export.py --checkpoint=model/cam01.pth --out=Cam01.onnx
    python run_export.py --checkpoint=model/cam02.pth --out=Cam02.onnx --imagenet-norm
    python run_export.py --arch=efficientnet_b0 --checkpoint=model/cam01.pth --logits

--imagenet-norm bakes ImageNet mean/std into the graph for models trained on
normalized input; the runtime always feeds x / 255.
"""
import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).parent
sys.path.insert(0, str(ROOT))

from config.inspector import (
    EXPORT_ARCH,
    EXPORT_INPUT_NAME,
    EXPORT_NUM_CLASSES,
    EXPORT_OPSET,
    EXPORT_OUTPUT_NAME,
    INPUT_HEIGHT,
    INPUT_WIDTH,
)
from Core_LineInspector.export import export_checkpoint

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(message)s",
    datefmt="%H:%M:%S",
)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Export classifier .pth → .onnx")
    parser.add_argument("--checkpoint", "-c", default=None,
                        help="Path to .pth state-dict / checkpoint")
    parser.add_argument("--out", "-o", default="Cam01.onnx")
    parser.add_argument("--arch", default=EXPORT_ARCH,
                        help="torchvision architecture name")
    parser.add_argument("--num-classes", type=int, default=EXPORT_NUM_CLASSES)
    parser.add_argument("--opset", type=int, default=EXPORT_OPSET)
    parser.add_argument("--imagenet-norm", action="store_true",
                        help="Bake ImageNet normalization into the graph")
    parser.add_argument("--logits", action="store_true",
                        help="Skip the softmax layer")
    args = parser.parse_args()

    out = export_checkpoint(
        args.checkpoint,
        args.out,
        arch=args.arch,
        num_classes=args.num_classes,
        input_size=(INPUT_WIDTH, INPUT_HEIGHT),
        input_name=EXPORT_INPUT_NAME,
        output_name=EXPORT_OUTPUT_NAME,
        opset=args.opset,
        imagenet_norm=args.imagenet_norm,
        softmax=not args.logits,
    )
    print(f"\n✅ Exported: {out}")
