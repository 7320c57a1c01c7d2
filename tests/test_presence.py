"""
Presence Gate Tests - grayscale mean / std heuristic.
"""

import numpy as np
import pytest

from conftest import empty_belt, textured, write_image

from Core_LineInspector.preprocess.presence import (
    PresenceThresholds,
    ProductPresenceDetector,
    gray_stats,
    is_product_present,
)


def checkerboard(a: int, b: int, size: int = 32) -> np.ndarray:
    """Half pixels *a*, half *b*: mean (a+b)/2, population std |a-b|/2."""
    img = np.full((size, size), a, dtype=np.uint8)
    img[::2, ::2] = b
    img[1::2, 1::2] = b
    return img


class TestGrayStats:

    def test_population_std(self):
        mean, std = gray_stats(checkerboard(58, 62))
        assert mean == pytest.approx(60.0)
        assert std == pytest.approx(2.0)

    def test_matches_numpy_ddof0(self):
        img = textured()[:, :, 0]
        mean, std = gray_stats(img)
        assert mean == pytest.approx(float(img.mean()))
        assert std == pytest.approx(float(img.std(ddof=0)))


class TestIsProductPresent:

    def test_textured_frame_is_present(self, product_png):
        assert is_product_present(product_png, 50.0, 5.0) is True

    def test_dark_empty_belt_is_absent(self, tmp_path):
        path = write_image(tmp_path / "dark.png", empty_belt(20))
        assert is_product_present(path) is False

    def test_bright_but_flat_is_absent(self, tmp_path):
        """mean=60, std=2 with (50, 5): both conditions are required."""
        path = write_image(tmp_path / "flat.png", checkerboard(58, 62))
        assert is_product_present(path, 50.0, 5.0) is False

    def test_textured_but_dark_is_absent(self, tmp_path):
        path = write_image(tmp_path / "dark_noise.png", checkerboard(0, 40))
        assert is_product_present(path, 50.0, 5.0) is False

    def test_thresholds_are_strict(self, tmp_path):
        # mean exactly 50 → not > 50
        path = write_image(tmp_path / "edge.png", checkerboard(40, 60))
        assert is_product_present(path, 50.0, 5.0) is False
        assert is_product_present(path, 49.9, 5.0) is True

    def test_unreadable_is_absent(self, tmp_path):
        path = tmp_path / "junk.bmp"
        path.write_bytes(b"BM garbage")
        assert is_product_present(path) is False

    def test_missing_is_absent(self, tmp_path):
        assert is_product_present(tmp_path / "missing.png") is False

    def test_check_with_thresholds_object(self, product_png):
        detector = ProductPresenceDetector()
        assert detector.check(product_png, PresenceThresholds()) is True
        assert detector.check(product_png, PresenceThresholds(250.0, 5.0)) is False

    def test_deterministic(self, product_png):
        detector = ProductPresenceDetector()
        results = {detector.is_product_present(product_png, 100.0, 20.0) for _ in range(5)}
        assert len(results) == 1
