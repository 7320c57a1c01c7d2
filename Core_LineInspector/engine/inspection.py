"""
Inspection Engine
=================

One engine per camera.  Owns exactly one loaded model for its lifetime.

Lifecycle
---------
::

    engine = InspectionEngine(runtime)
    engine.load_model("Cam01.onnx")      # once
    engine.predict(path)                 # → InspectionVerdict
    engine.get_raw_score(path)           # → float
    engine.close()                       # idempotent; engine is not reusable

    with InspectionEngine(runtime) as engine:   # close() guaranteed
        ...

Output contract
---------------
::

    [ok, ng, ...]   →  NG  iff ng > ok          (tie → OK)
    [score]         →  NG  iff score > anomaly_threshold
    []              →  ERROR                    (not an exception)
"""
from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence, Union

import numpy as np

from Core_LineInspector.errors import (
    EngineNotReadyError,
    InspectorError,
    ModelLoadError,
    ProcessingError,
)
from Core_LineInspector.preprocess.image import ImagePreprocessor
from Core_LineInspector.preprocess.presence import (
    PresenceThresholds,
    ProductPresenceDetector,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class InspectionVerdict(str, Enum):
    OK = "OK"
    NG = "NG"
    ERROR = "ERROR"

    def __str__(self) -> str:
        return self.value


def interpret_output(
    values: Sequence[float],
    anomaly_threshold: float = 0.8,
) -> InspectionVerdict:
    """Map raw model output values to a verdict (see module docstring)."""
    values = np.asarray(values, dtype=np.float32).ravel()

    if values.size >= 2:
        ok_score, ng_score = float(values[0]), float(values[1])
        return InspectionVerdict.NG if ng_score > ok_score else InspectionVerdict.OK
    if values.size == 1:
        return (
            InspectionVerdict.NG
            if values[0] > np.float32(anomaly_threshold)
            else InspectionVerdict.OK
        )
    return InspectionVerdict.ERROR


class InspectionEngine:
    """
    Per-camera model owner.

    Parameters
    ----------
    runtime : object
        Inference runtime with ``load(path) → model`` (see ``engine.runtime``).
    preprocessor : ImagePreprocessor or None
    presence : ProductPresenceDetector or None
    anomaly_threshold : float
        Decision threshold for single-score models.
    name : str
        Label used in log lines (``"Cam1"``).
    """

    def __init__(
        self,
        runtime,
        preprocessor: Optional[ImagePreprocessor] = None,
        presence: Optional[ProductPresenceDetector] = None,
        anomaly_threshold: float = 0.8,
        name: str = "engine",
    ):
        self.runtime = runtime
        self.preprocessor = preprocessor or ImagePreprocessor()
        self.presence = presence or ProductPresenceDetector(self.preprocessor.decoder)
        self.anomaly_threshold = anomaly_threshold
        self.name = name

        self._model = None
        self._closed = False

    # ─────────────────── lifetime ───────────────────
    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    @property
    def is_closed(self) -> bool:
        return self._closed

    def load_model(self, path: PathLike) -> None:
        """
        Load the model artifact.

        Raises
        ------
        ModelLoadError
            Missing or malformed artifact (original error chained).
        EngineNotReadyError
            Engine already loaded or already closed.
        """
        if self._closed:
            raise EngineNotReadyError(f"{self.name}: engine is closed")
        if self._model is not None:
            raise EngineNotReadyError(f"{self.name}: model already loaded")

        try:
            self._model = self.runtime.load(path)
        except ModelLoadError:
            raise
        except Exception as exc:
            raise ModelLoadError(path, str(exc)) from exc
        logger.info("[%s] model loaded: %s", self.name, path)

    def close(self) -> None:
        if self._model is not None:
            self._model.close()
            self._model = None
            logger.debug("[%s] model released", self.name)
        self._closed = True

    def __enter__(self) -> "InspectionEngine":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ─────────────────── operations ───────────────────
    def is_product_present(
        self,
        path: PathLike,
        thresholds: Optional[PresenceThresholds] = None,
    ) -> bool:
        return self.presence.check(path, thresholds or PresenceThresholds())

    def predict(self, path: PathLike) -> InspectionVerdict:
        values = self._infer(path)
        verdict = interpret_output(values, self.anomaly_threshold)
        if verdict is InspectionVerdict.ERROR:
            logger.warning(
                "[%s] unrecognised output (%d values) for %s",
                self.name, values.size, path,
            )
        return verdict

    def get_raw_score(self, path: PathLike) -> float:
        """
        First value of the first output, e.g. the image score of a PatchCore
        export emitting ``[anomaly_score, anomaly_map, ...]``.
        """
        values = self._infer(path)
        if values.size == 0:
            raise ProcessingError(f"{self.name}: model produced no output for {path}")
        return float(values[0])

    def _infer(self, path: PathLike) -> np.ndarray:
        if self._model is None:
            raise EngineNotReadyError(f"{self.name}: model not loaded")

        tensor = self.preprocessor.preprocess(path)
        try:
            outputs = self._model.run(tensor)
        except InspectorError:
            raise
        except Exception as exc:
            raise ProcessingError(f"{self.name}: inference failed for {path}: {exc}") from exc

        if not outputs:
            return np.empty(0, dtype=np.float32)
        return np.asarray(outputs[0], dtype=np.float32).ravel()
