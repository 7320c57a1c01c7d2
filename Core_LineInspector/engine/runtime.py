"""
Inference Runtime
=================

Thin ONNX Runtime wrapper behind a two-method port so the engine can be
driven by a test double.

Port
----
::

    runtime.load(path)   → model
    model.input_name     → str
    model.run(tensor)    → list[np.ndarray]   (all outputs, in graph order)
    model.close()        → release the session (idempotent)

``OnnxRuntime`` picks CUDAExecutionProvider when present, else CPU.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

import numpy as np
import onnxruntime as ort

from Core_LineInspector.errors import EngineNotReadyError, ModelLoadError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def get_onnx_providers(device: Optional[str] = None) -> List[str]:
    """
    Select ONNX Runtime execution providers.

    Priority: CUDAExecutionProvider → CPUExecutionProvider.
    If *device* is explicitly ``"cpu"``, skip CUDA.
    """
    if device == "cpu":
        return ["CPUExecutionProvider"]

    available = ort.get_available_providers()
    providers: List[str] = []
    if "CUDAExecutionProvider" in available:
        providers.append("CUDAExecutionProvider")
    providers.append("CPUExecutionProvider")
    return providers


def _static_dim(dim) -> Optional[int]:
    return dim if isinstance(dim, int) else None


class OnnxModel:
    """One loaded ``InferenceSession`` bound to its first input."""

    def __init__(self, session: "ort.InferenceSession", path: PathLike):
        self.path = str(path)
        self._session: Optional[ort.InferenceSession] = session

        inp = session.get_inputs()[0]
        self.input_name: str = inp.name
        self.input_shape: Sequence = tuple(inp.shape)
        self._is_fp16 = inp.type == "tensor(float16)"
        self.output_names = [o.name for o in session.get_outputs()]

    @property
    def closed(self) -> bool:
        return self._session is None

    def run(self, tensor: np.ndarray) -> List[np.ndarray]:
        if self._session is None:
            raise EngineNotReadyError(f"model {self.path} is closed")
        if self._is_fp16:
            tensor = tensor.astype(np.float16)
        return self._session.run(self.output_names, {self.input_name: tensor})

    def close(self) -> None:
        # ORT frees the native session when the last reference goes away
        self._session = None


class OnnxRuntime:
    """
    Loads ``.onnx`` artifacts into :class:`OnnxModel`.

    Parameters
    ----------
    device : str or None
        ``"cuda"`` / ``"cpu"``; ``None`` picks CUDA when ORT has it.
    intra_op_threads : int
        Per-operator threads, 0 = let ORT decide.
    expected_shape : sequence of int
        ``(N, C, H, W)`` the input must accept.  Symbolic dims are accepted.
    """

    def __init__(
        self,
        device: Optional[str] = None,
        intra_op_threads: int = 0,
        expected_shape: Sequence[int] = (1, 3, 224, 224),
    ):
        self.device = device
        self.intra_op_threads = intra_op_threads
        self.expected_shape = tuple(expected_shape)

    def load(self, path: PathLike) -> OnnxModel:
        path = Path(path)
        if not path.is_file():
            raise ModelLoadError(path, "file not found")

        sess_opts = ort.SessionOptions()
        sess_opts.graph_optimization_level = ort.GraphOptimizationLevel.ORT_ENABLE_ALL
        sess_opts.intra_op_num_threads = self.intra_op_threads
        sess_opts.execution_mode = ort.ExecutionMode.ORT_SEQUENTIAL

        providers = get_onnx_providers(self.device)
        try:
            session = ort.InferenceSession(
                str(path), sess_options=sess_opts, providers=providers,
            )
        except Exception as exc:
            raise ModelLoadError(path, str(exc)) from exc

        if not session.get_inputs():
            raise ModelLoadError(path, "model has no inputs")

        model = OnnxModel(session, path)
        self._validate_input(model)
        logger.info(
            "[ONNX] Loaded %s | input=%s %s | providers=%s",
            path.name, model.input_name, list(model.input_shape),
            session.get_providers(),
        )
        return model

    def _validate_input(self, model: OnnxModel) -> None:
        shape = model.input_shape
        if len(shape) != len(self.expected_shape):
            raise ModelLoadError(
                model.path,
                f"input rank {len(shape)} != {len(self.expected_shape)}",
            )
        for got, want in zip(shape, self.expected_shape):
            dim = _static_dim(got)
            if dim is not None and dim != want:
                raise ModelLoadError(
                    model.path,
                    f"input shape {list(shape)} incompatible with {list(self.expected_shape)}",
                )
