from .inspection import InspectionEngine, InspectionVerdict, interpret_output
from .runtime import OnnxModel, OnnxRuntime, get_onnx_providers

__all__ = [
    "InspectionEngine",
    "InspectionVerdict",
    "interpret_output",
    "OnnxModel",
    "OnnxRuntime",
    "get_onnx_providers",
]
