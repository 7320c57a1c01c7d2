"""
ONNX Export
===========

Turn a PyTorch / torchvision classifier checkpoint into the artifact the line
runtime expects (``Cam01.onnx`` / ``Cam02.onnx``).

::

    x  (1, 3, 224, 224)  RGB, x / 255
        ↓  [optional] (x - mean) / std      ← ImageNet stats baked into graph
    backbone + 2-class head
        ↓  [optional] softmax
    output  (1, 2)   [ok, ng]

Baking the normalization in keeps the runtime side on plain ``x / 255``
regardless of how the model was trained.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Tuple, Union

import torch
import torch.nn as nn
import torch.nn.functional as F
import torchvision.models as models

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

IMAGENET_MEAN = (0.485, 0.456, 0.406)
IMAGENET_STD = (0.229, 0.224, 0.225)


class ExportWrapper(nn.Module):
    """Adds input normalization and output softmax around *model*."""

    def __init__(self, model: nn.Module, imagenet_norm: bool = False, softmax: bool = True):
        super().__init__()
        self.model = model
        self.imagenet_norm = imagenet_norm
        self.softmax = softmax
        self.register_buffer("mean", torch.tensor(IMAGENET_MEAN).view(1, 3, 1, 1))
        self.register_buffer("std", torch.tensor(IMAGENET_STD).view(1, 3, 1, 1))

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        if self.imagenet_norm:
            x = (x - self.mean) / self.std
        y = self.model(x)
        if self.softmax:
            y = F.softmax(y, dim=1)
        return y


def build_classifier(arch: str = "resnet18", num_classes: int = 2) -> nn.Module:
    """torchvision backbone (random init) with a *num_classes* head."""
    ctor = getattr(models, arch, None)
    if ctor is None or not callable(ctor):
        raise ValueError(f"Unknown torchvision architecture '{arch}'")
    model = ctor(weights=None)

    if isinstance(getattr(model, "fc", None), nn.Linear):
        model.fc = nn.Linear(model.fc.in_features, num_classes)
    elif isinstance(getattr(model, "classifier", None), nn.Sequential):
        last = model.classifier[-1]
        model.classifier[-1] = nn.Linear(last.in_features, num_classes)
    elif isinstance(getattr(model, "classifier", None), nn.Linear):
        model.classifier = nn.Linear(model.classifier.in_features, num_classes)
    else:
        raise ValueError(f"Don't know how to replace the head of '{arch}'")
    return model


def load_checkpoint(model: nn.Module, path: PathLike) -> nn.Module:
    """
    Load weights from a raw state-dict or a checkpoint dict carrying
    ``"state_dict"`` / ``"model"``.  ``DataParallel`` prefixes are stripped.
    """
    state = torch.load(str(path), map_location="cpu")
    if isinstance(state, dict):
        if "state_dict" in state:
            state = state["state_dict"]
        elif "model" in state:
            state = state["model"]
    state = {k[len("module."):] if k.startswith("module.") else k: v
             for k, v in state.items()}

    missing, unexpected = model.load_state_dict(state, strict=False)
    if missing:
        logger.warning("Missing keys (%d): %s ...", len(missing), missing[:5])
    if unexpected:
        logger.warning("Unexpected keys (%d): %s ...", len(unexpected), unexpected[:5])
    return model


def export_onnx(
    model: nn.Module,
    out_path: PathLike,
    input_size: Tuple[int, int] = (224, 224),
    input_name: str = "input",
    output_name: str = "output",
    opset: int = 17,
    imagenet_norm: bool = False,
    softmax: bool = True,
) -> Path:
    """
    Export *model* with a fixed ``(1, 3, H, W)`` float32 input.

    Parameters
    ----------
    input_size : (width, height)
    imagenet_norm : bool
        Bake ImageNet mean/std into the graph (model trained on normalized input).
    softmax : bool
        Emit probabilities instead of logits.
    """
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    wrapper = ExportWrapper(model, imagenet_norm=imagenet_norm, softmax=softmax).eval()
    width, height = input_size
    dummy = torch.rand(1, 3, height, width)

    with torch.no_grad():
        torch.onnx.export(
            wrapper,
            (dummy,),
            str(out_path),
            input_names=[input_name],
            output_names=[output_name],
            opset_version=opset,
            dynamo=False,
        )

    logger.info("Exported: %s (input=%s 1x3x%dx%d, norm=%s, softmax=%s)",
                out_path, input_name, height, width,
                "imagenet" if imagenet_norm else "none", softmax)
    return out_path


def export_checkpoint(
    checkpoint: Optional[PathLike],
    out_path: PathLike,
    arch: str = "resnet18",
    num_classes: int = 2,
    **kwargs,
) -> Path:
    """``build_classifier`` → ``load_checkpoint`` → ``export_onnx``."""
    model = build_classifier(arch, num_classes)
    if checkpoint:
        load_checkpoint(model, checkpoint)
    else:
        logger.warning("No checkpoint given, exporting random weights")
    return export_onnx(model, out_path, **kwargs)
