"""
LineInspector-AI Configuration Package
======================================

Usage:
    from config.base import *           # Paths, cameras, folders, presence gate
    from config.inspector import *      # Preprocessing / decision / runtime
"""

from config.base import (
    # Paths
    MODEL_DIR,
    CAM1_MODEL_NAME,
    CAM2_MODEL_NAME,

    # Routing
    CAM1_TAG,
    CAM2_TAG,
    IMAGE_EXTS,
    RESULT_OK_DIR,
    RESULT_NG_DIR,
    SCORE_LOG_NAME,

    # Presence gate
    PRESENCE_MEAN_THRESHOLD,
    PRESENCE_STD_THRESHOLD,
)

__all__ = [
    # Paths
    "MODEL_DIR",
    "CAM1_MODEL_NAME",
    "CAM2_MODEL_NAME",

    # Routing
    "CAM1_TAG",
    "CAM2_TAG",
    "IMAGE_EXTS",
    "RESULT_OK_DIR",
    "RESULT_NG_DIR",
    "SCORE_LOG_NAME",

    # Presence gate
    "PRESENCE_MEAN_THRESHOLD",
    "PRESENCE_STD_THRESHOLD",
]
