"""Model export helpers (requires torch + torchvision)."""
from .onnx_export import (
    ExportWrapper,
    build_classifier,
    export_checkpoint,
    export_onnx,
    load_checkpoint,
)

__all__ = [
    "ExportWrapper",
    "build_classifier",
    "export_checkpoint",
    "export_onnx",
    "load_checkpoint",
]
