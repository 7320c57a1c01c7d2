"""
Camera Routing
==============

Which camera shot a frame is encoded in its filename::

    Line_Lucid-1_0007.jpg   →  CAMERA_1
    Line_Lucid-2_0007.jpg   →  CAMERA_2
    frame_0007.jpg          →  UNRECOGNIZED   (skipped)

``classify_camera`` is pure; engines are looked up by ``CameraId`` elsewhere.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple

from Core_LineInspector.preprocess.presence import PresenceThresholds


class CameraId(Enum):
    UNRECOGNIZED = 0
    CAMERA_1 = 1
    CAMERA_2 = 2

    @property
    def label(self) -> str:
        if self is CameraId.UNRECOGNIZED:
            return "-"
        return f"Cam{self.value}"


@dataclass(frozen=True)
class CameraSpec:
    """Static settings for one physical camera."""
    camera: CameraId
    tag: str                     # filename substring, e.g. "_Lucid-1_"
    model_name: str              # e.g. "Cam01.onnx"
    thresholds: PresenceThresholds = field(default_factory=PresenceThresholds)


def default_cameras(
    mean_threshold: float = 50.0,
    std_threshold: float = 5.0,
) -> Tuple[CameraSpec, ...]:
    thr = PresenceThresholds(mean_threshold, std_threshold)
    return (
        CameraSpec(CameraId.CAMERA_1, "_Lucid-1_", "Cam01.onnx", thr),
        CameraSpec(CameraId.CAMERA_2, "_Lucid-2_", "Cam02.onnx", thr),
    )


def classify_camera(
    filename: str,
    cameras: Sequence[CameraSpec] = default_cameras(),
) -> CameraId:
    """First camera whose tag occurs in *filename* (case-sensitive), else UNRECOGNIZED."""
    for spec in cameras:
        if spec.tag in filename:
            return spec.camera
    return CameraId.UNRECOGNIZED


def list_images(directory: Path, exts: Iterable[str]) -> List[Path]:
    """Top-level files with a matching extension (case-insensitive), sorted by name."""
    wanted = {e.lower() for e in exts}
    return sorted(
        (p for p in Path(directory).iterdir()
         if p.is_file() and p.suffix.lower() in wanted),
        key=lambda p: p.name,
    )
