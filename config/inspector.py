"""
Inspection Model Configuration
==============================

Preprocessing + decision knobs for the per-camera ONNX models.

Model contract:
- single named input, float32, 1 × 3 × 224 × 224 (RGB, channel-major)
- output either [ok_score, ng_score, ...]  (two-class softmax)
             or [anomaly_score]             (one-class model)
"""


# =============================================================================
#  IMAGE
# =============================================================================
INPUT_WIDTH = 224
INPUT_HEIGHT = 224

# "none"     → x / 255                      (what Cam01/Cam02 were exported with)
# "imagenet" → (x / 255 - mean) / std       (only for models that expect it)
NORMALIZE = "none"

IMAGENET_MEAN = (0.485, 0.456, 0.406)
IMAGENET_STD = (0.229, 0.224, 0.225)


# =============================================================================
#  DECISION
# =============================================================================
# Single-output models: score > threshold → NG
ANOMALY_THRESHOLD = 0.8


# =============================================================================
#  RUNTIME
# =============================================================================
# None → auto ("cuda" if available, else "cpu")
DEVICE = None

# 0 = let ONNX Runtime decide
INTRA_OP_THREADS = 0


# =============================================================================
#  EXPORT  (run_export.py)
# =============================================================================
EXPORT_ARCH = "resnet18"
EXPORT_NUM_CLASSES = 2
EXPORT_OPSET = 17
EXPORT_INPUT_NAME = "input"
EXPORT_OUTPUT_NAME = "output"
