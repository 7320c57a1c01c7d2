"""
Image Preprocessing
===================

Decode → bicubic resize → BGR→RGB → channel-major float tensor.

::

    file  (any size, BGR from OpenCV)
        ↓  cv2.resize(INTER_CUBIC)
    224 × 224 × 3  uint8  BGR
        ↓  cv2.cvtColor(BGR2RGB)
    224 × 224 × 3  uint8  RGB
        ↓  / 255.0           (no ImageNet mean/std — see below)
    1 × 3 × 224 × 224  float32

Normalization
-------------
Cam01/Cam02 were exported to take raw ``x / 255`` input, and the line
software has always fed them exactly that.  ImageNet mean/std is available
as ``normalize="imagenet"`` for artifacts that really expect it, but it is
never the default.  Models trained with ImageNet statistics should have them
baked into the graph at export time (``run_export.py --imagenet-norm``).
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

import cv2
import numpy as np

from Core_LineInspector.errors import DecodeError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

NORMALIZE_MODES = ("none", "imagenet")
IMAGENET_MEAN = np.array([0.485, 0.456, 0.406], dtype=np.float32)
IMAGENET_STD = np.array([0.229, 0.224, 0.225], dtype=np.float32)


# ─────────────────────────────────────────────────────────
#  Decoder
# ─────────────────────────────────────────────────────────
class ImageDecoder:
    """
    OpenCV file decoder.

    Reads through ``np.fromfile`` + ``cv2.imdecode`` so paths with non-ASCII
    characters work on Windows as well.  Returns ``None`` when the file is
    missing, empty or not an image; callers decide whether that is an error.
    """

    @staticmethod
    def _read(path: PathLike, flags: int) -> Optional[np.ndarray]:
        try:
            buf = np.fromfile(str(path), dtype=np.uint8)
        except OSError as exc:
            logger.debug("cannot open %s: %s", path, exc)
            return None
        if buf.size == 0:
            return None
        img = cv2.imdecode(buf, flags)
        if img is None or img.size == 0:
            return None
        return img

    def read_color(self, path: PathLike) -> Optional[np.ndarray]:
        """3-channel BGR image, or ``None``."""
        return self._read(path, cv2.IMREAD_COLOR)

    def read_gray(self, path: PathLike) -> Optional[np.ndarray]:
        """Single-channel 8-bit image, or ``None``."""
        return self._read(path, cv2.IMREAD_GRAYSCALE)


# ─────────────────────────────────────────────────────────
#  Preprocessor
# ─────────────────────────────────────────────────────────
class ImagePreprocessor:
    """
    Build the model input tensor from an image file.

    Parameters
    ----------
    width, height : int
        Default target size (224 × 224).
    normalize : str
        ``"none"`` (default, ``x / 255``) or ``"imagenet"``.
    decoder : ImageDecoder or None
        Anything with ``read_color(path)``; OpenCV decoder if ``None``.
    """

    def __init__(
        self,
        width: int = 224,
        height: int = 224,
        normalize: str = "none",
        decoder: Optional[ImageDecoder] = None,
    ):
        if normalize not in NORMALIZE_MODES:
            raise ValueError(
                f"Unknown normalize mode '{normalize}'. Use one of {NORMALIZE_MODES}"
            )
        self.width = width
        self.height = height
        self.normalize = normalize
        self.decoder = decoder or ImageDecoder()

    def preprocess(
        self,
        path: PathLike,
        target_width: Optional[int] = None,
        target_height: Optional[int] = None,
    ) -> np.ndarray:
        """
        Decode *path* and return a ``(1, 3, H, W)`` float32 tensor.

        Raises
        ------
        DecodeError
            File missing or not decodable.
        """
        bgr = self.decoder.read_color(path)
        if bgr is None or bgr.size == 0:
            raise DecodeError(path)

        return self.to_tensor(
            bgr,
            target_width or self.width,
            target_height or self.height,
        )

    def to_tensor(self, bgr: np.ndarray, width: int, height: int) -> np.ndarray:
        """Convert an in-memory BGR image (any size) to the model tensor."""
        if bgr.ndim == 2:
            bgr = cv2.cvtColor(bgr, cv2.COLOR_GRAY2BGR)
        elif bgr.shape[2] == 4:
            bgr = cv2.cvtColor(bgr, cv2.COLOR_BGRA2BGR)

        resized = cv2.resize(bgr, (width, height), interpolation=cv2.INTER_CUBIC)
        rgb = cv2.cvtColor(resized, cv2.COLOR_BGR2RGB)

        x = rgb.astype(np.float32) / 255.0
        if self.normalize == "imagenet":
            x = (x - IMAGENET_MEAN) / IMAGENET_STD

        # HWC → 1CHW, fresh contiguous buffer
        return np.ascontiguousarray(x.transpose(2, 0, 1)[np.newaxis])
