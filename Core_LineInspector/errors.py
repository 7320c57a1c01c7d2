"""
Inspector Errors
================

::

    InspectorError
     ├── DecodeError           image missing / undecodable
     ├── ModelLoadError        model artifact missing / malformed   (fatal to a run)
     ├── EngineNotReadyError   predict before load, load after close
     ├── ProcessingError       anything else while handling one file
     └── InspectorBusyError    a second run requested while one is active

An unrecognised model output shape is *not* an error — it becomes
``InspectionVerdict.ERROR`` so the batch keeps going.
"""
from __future__ import annotations


class InspectorError(Exception):
    """Base class for all LineInspector errors."""


class DecodeError(InspectorError):
    """Image file could not be read or decoded."""

    def __init__(self, path, reason: str = "cannot decode image"):
        self.path = str(path)
        super().__init__(f"{reason}: {self.path}")


class ModelLoadError(InspectorError):
    """Model artifact could not be loaded. ``__cause__`` holds the original error."""

    def __init__(self, path, reason: str):
        self.path = str(path)
        super().__init__(f"model load failed ({self.path}): {reason}")


class EngineNotReadyError(InspectorError):
    pass


class ProcessingError(InspectorError):
    pass


class InspectorBusyError(InspectorError):
    pass
