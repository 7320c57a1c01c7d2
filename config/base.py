"""
Base Configuration for LineInspector-AI
=======================================

Settings shared by every entry point (inspection, score log, export).
Model / preprocessing knobs live in:
- config/inspector.py
"""
from pathlib import Path


# =============================================================================
#                              PATH CONFIGURATION
# =============================================================================

# Project root; model files are looked up next to the running program
ROOT_DIR = Path(__file__).resolve().parent.parent
MODEL_DIR = ROOT_DIR

# Camera 1 / Camera 2 model artifacts
CAM1_MODEL_NAME = "Cam01.onnx"
CAM2_MODEL_NAME = "Cam02.onnx"


# =============================================================================
#                              CAMERA ROUTING
# =============================================================================

# Filename substring → camera.  Checked in this order.
CAM1_TAG = "_Lucid-1_"
CAM2_TAG = "_Lucid-2_"


# =============================================================================
#                              INPUT / OUTPUT
# =============================================================================

# Only top-level files with these extensions are inspected (case-insensitive)
IMAGE_EXTS = {".jpg", ".png", ".bmp"}

# Destination folders created under the source directory
RESULT_OK_DIR = "Result_OK"
RESULT_NG_DIR = "Result_NG"

# Diagnostic score dump written by run_score.py
SCORE_LOG_NAME = "ScoreLog.txt"


# =============================================================================
#                              PRESENCE GATE
# =============================================================================

# Grayscale (0-255) mean / std-dev an image must BOTH exceed to count as
# "product present".  Empty conveyor frames fall below either one.
PRESENCE_MEAN_THRESHOLD = 50.0
PRESENCE_STD_THRESHOLD = 5.0


# =============================================================================
#                              PROGRESS
# =============================================================================

# Seconds between elapsed-time refreshes while a batch is running
TICK_INTERVAL = 0.1
