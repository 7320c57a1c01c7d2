"""
Core_LineInspector — OK / NG Sorting for the Lucid Line Cameras
===============================================================

Model    : one ONNX anomaly model per camera (Cam01.onnx, Cam02.onnx)
Input    : 1 × 3 × 224 × 224 float32, RGB, x / 255
Gate     : grayscale mean / std presence check before inference
Output   : copies into Result_OK / Result_NG under the source folder

Modules
-------
``preprocess``  — ImagePreprocessor, ProductPresenceDetector
``engine``      — InspectionEngine, ONNX Runtime wrapper
``pipeline``    — BatchInspector, camera routing, progress, score log
``export``      — PyTorch → ONNX export (imported on demand, needs torch)

Quick start
-----------
::

    # sort a folder
    python run_inspect.py --input=D:/line/20251201

    # dump raw scores for threshold tuning
    python run_score.py --input=D:/line/20251201

    # export a trained classifier
    python run_export.py --checkpoint=model/cam01.pth --out=Cam01.onnx
"""
from Core_LineInspector.errors import (
    DecodeError,
    EngineNotReadyError,
    InspectorBusyError,
    InspectorError,
    ModelLoadError,
    ProcessingError,
)
from Core_LineInspector.preprocess.image import ImageDecoder, ImagePreprocessor
from Core_LineInspector.preprocess.presence import PresenceThresholds, ProductPresenceDetector
from Core_LineInspector.engine.inspection import (
    InspectionEngine,
    InspectionVerdict,
    interpret_output,
)
from Core_LineInspector.engine.runtime import OnnxRuntime
from Core_LineInspector.pipeline.batch import (
    BatchInspector,
    BatchOutcome,
    BatchSummary,
    InspectorConfig,
    OutcomeKind,
)
from Core_LineInspector.pipeline.progress import BatchProgress, BatchState
from Core_LineInspector.pipeline.routing import CameraId, CameraSpec, classify_camera

__all__ = [
    # errors
    "InspectorError",
    "DecodeError",
    "ModelLoadError",
    "EngineNotReadyError",
    "ProcessingError",
    "InspectorBusyError",
    # preprocess
    "ImageDecoder",
    "ImagePreprocessor",
    "PresenceThresholds",
    "ProductPresenceDetector",
    # engine
    "InspectionEngine",
    "InspectionVerdict",
    "interpret_output",
    "OnnxRuntime",
    # pipeline
    "BatchInspector",
    "BatchOutcome",
    "BatchSummary",
    "InspectorConfig",
    "OutcomeKind",
    "BatchProgress",
    "BatchState",
    "CameraId",
    "CameraSpec",
    "classify_camera",
]
