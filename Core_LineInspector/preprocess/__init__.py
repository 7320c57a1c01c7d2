from .image import ImageDecoder, ImagePreprocessor
from .presence import (
    PresenceThresholds,
    ProductPresenceDetector,
    gray_stats,
    is_product_present,
)

__all__ = [
    "ImageDecoder",
    "ImagePreprocessor",
    "PresenceThresholds",
    "ProductPresenceDetector",
    "gray_stats",
    "is_product_present",
]
