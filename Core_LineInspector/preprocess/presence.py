"""
Product Presence Gate
=====================

Cheap grayscale statistics that decide whether a frame is worth running the
model on.

::

    present  ⇔  mean(gray) > mean_threshold   AND   std(gray) > std_threshold

Both conditions are required: a blown-out empty belt is bright (high mean)
but flat (low std) and must still count as empty.  Unreadable frames count
as empty too, so they end up in OK instead of stopping the batch.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np

from Core_LineInspector.errors import DecodeError
from Core_LineInspector.preprocess.image import ImageDecoder, PathLike

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PresenceThresholds:
    """Grayscale (0-255) thresholds for the presence gate."""
    mean_threshold: float = 50.0
    std_threshold: float = 5.0


def gray_stats(gray: np.ndarray) -> Tuple[float, float]:
    """Mean and population standard deviation of all pixels."""
    mean, std = cv2.meanStdDev(gray)
    return float(mean[0, 0]), float(std[0, 0])


class ProductPresenceDetector:
    """Stateless presence gate over image files."""

    def __init__(self, decoder: Optional[ImageDecoder] = None):
        self.decoder = decoder or ImageDecoder()

    def is_product_present(
        self,
        path: PathLike,
        mean_threshold: float = 50.0,
        std_threshold: float = 5.0,
    ) -> bool:
        try:
            gray = self.decoder.read_gray(path)
        except DecodeError:
            gray = None
        if gray is None or gray.size == 0:
            logger.debug("presence: unreadable %s → no product", path)
            return False

        mean, std = gray_stats(gray)
        present = mean > mean_threshold and std > std_threshold
        logger.debug(
            "presence: %s mean=%.2f std=%.2f → %s", path, mean, std, present,
        )
        return present

    def check(self, path: PathLike, thresholds: PresenceThresholds) -> bool:
        return self.is_product_present(
            path, thresholds.mean_threshold, thresholds.std_threshold,
        )


_default_detector = ProductPresenceDetector()


def is_product_present(
    path: PathLike,
    mean_threshold: float = 50.0,
    std_threshold: float = 5.0,
) -> bool:
    """Module-level shortcut using the OpenCV decoder."""
    return _default_detector.is_product_present(path, mean_threshold, std_threshold)
