"""
Shared fixtures: synthetic frames on disk and an in-memory inference runtime.
"""

import sys
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional

import cv2
import numpy as np
import pytest

ROOT_DIR = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT_DIR))

from Core_LineInspector.engine.inspection import InspectionEngine
from Core_LineInspector.preprocess.image import ImageDecoder, ImagePreprocessor
from Core_LineInspector.preprocess.presence import ProductPresenceDetector


# =============================================================================
# Synthetic frames
# =============================================================================


def textured(seed: int = 0, low: int = 60, high: int = 150, size=(48, 64)) -> np.ndarray:
    """Noisy BGR frame: mean well above 50, std well above 5 → product present."""
    rng = np.random.default_rng(seed)
    return rng.integers(low, high, size=(*size, 3), dtype=np.uint8)


def bright(seed: int = 0) -> np.ndarray:
    """Present, and bright enough that ``BrightIsNG`` calls it NG."""
    return textured(seed, low=180, high=255)


def empty_belt(value: int = 20, size=(48, 64)) -> np.ndarray:
    """Flat dark frame → no product."""
    return np.full((*size, 3), value, dtype=np.uint8)


def write_image(path: Path, img: np.ndarray) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    assert cv2.imwrite(str(path), img), f"failed to write {path}"
    return path


# =============================================================================
# Fake runtime
# =============================================================================


class FakeModel:
    def __init__(self, runtime: "FakeRuntime", path: Path):
        self.runtime = runtime
        self.path = Path(path)
        self.input_name = "input"
        self.closed = False
        self.tensors: List[np.ndarray] = []

    def run(self, tensor: np.ndarray):
        assert not self.closed, "run() on a released model"
        self.tensors.append(tensor)
        self.runtime.calls.append(self.path.name)
        if self.runtime.gate is not None:
            self.runtime.entered.set()
            self.runtime.gate.wait(timeout=10)
        out = self.runtime.outputs
        if callable(out):
            out = out(self.path.name, tensor)
        return [np.asarray(o, dtype=np.float32) for o in out]

    def close(self) -> None:
        self.closed = True


class FakeRuntime:
    """
    ``load(path)`` → FakeModel.

    *outputs* is a list of output arrays, or ``fn(model_name, tensor)``
    returning one.  With *gate* set, ``run`` blocks until the gate opens.
    """

    def __init__(self, outputs=None, load_error: Optional[Exception] = None,
                 gate: Optional[threading.Event] = None):
        self.outputs = outputs if outputs is not None else [[0.9, 0.1]]
        self.load_error = load_error
        self.gate = gate
        self.entered = threading.Event()
        self.models: List[FakeModel] = []
        self.calls: List[str] = []

    def load(self, path):
        if self.load_error is not None:
            raise self.load_error
        model = FakeModel(self, path)
        self.models.append(model)
        return model


def bright_is_ng(model_name: str, tensor: np.ndarray):
    """Two-class output: NG when the frame is bright."""
    return [[0.1, 0.9]] if tensor.mean() > 0.6 else [[0.9, 0.1]]


class FlakyDecoder(ImageDecoder):
    """OpenCV decoder that refuses colour decodes for the given filenames."""

    def __init__(self, broken: set):
        self.broken = set(broken)

    def read_color(self, path):
        if Path(path).name in self.broken:
            return None
        return super().read_color(path)


def engine_factory(runtime, decoder: Optional[ImageDecoder] = None,
                   created: Optional[list] = None,
                   anomaly_threshold: float = 0.8) -> Callable:
    decoder = decoder or ImageDecoder()

    def factory(spec):
        engine = InspectionEngine(
            runtime,
            preprocessor=ImagePreprocessor(decoder=decoder),
            presence=ProductPresenceDetector(decoder),
            anomaly_threshold=anomaly_threshold,
            name=spec.camera.label,
        )
        if created is not None:
            created.append(engine)
        return engine

    return factory


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def model_dir(tmp_path) -> Path:
    """Folder with placeholder Cam01.onnx / Cam02.onnx (content unused by FakeRuntime)."""
    d = tmp_path / "models"
    d.mkdir()
    (d / "Cam01.onnx").write_bytes(b"fake")
    (d / "Cam02.onnx").write_bytes(b"fake")
    return d


@pytest.fixture
def source_dir(tmp_path) -> Path:
    d = tmp_path / "frames"
    d.mkdir()
    return d


@pytest.fixture
def product_png(tmp_path) -> Path:
    return write_image(tmp_path / "product.png", textured())


@pytest.fixture
def fake_runtime() -> FakeRuntime:
    return FakeRuntime()
