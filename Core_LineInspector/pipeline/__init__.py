from .batch import (
    BatchInspector,
    BatchOutcome,
    BatchSummary,
    InspectorConfig,
    OutcomeKind,
    make_engine_factory,
)
from .progress import (
    BatchProgress,
    BatchState,
    ElapsedTicker,
    ProgressHolder,
    format_elapsed,
    percent_of,
)
from .routing import CameraId, CameraSpec, classify_camera, default_cameras, list_images
from .score_log import write_score_log

__all__ = [
    # batch
    "BatchInspector",
    "BatchOutcome",
    "BatchSummary",
    "InspectorConfig",
    "OutcomeKind",
    "make_engine_factory",
    # progress
    "BatchProgress",
    "BatchState",
    "ElapsedTicker",
    "ProgressHolder",
    "format_elapsed",
    "percent_of",
    # routing
    "CameraId",
    "CameraSpec",
    "classify_camera",
    "default_cameras",
    "list_images",
    # diagnostics
    "write_score_log",
]
