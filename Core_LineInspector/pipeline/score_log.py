"""
Raw Score Log
=============

Diagnostic mode for threshold tuning: no copying, no verdicts, just the
model's leading output per frame appended to ``ScoreLog.txt``::

    Line_Lucid-1_0001.jpg\t0.1234
    Line_Lucid-2_0001.jpg\t4.5210

Untagged files are skipped like in the batch run.
"""
from __future__ import annotations

import logging
from contextlib import ExitStack
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from Core_LineInspector.engine.inspection import InspectionEngine
from Core_LineInspector.pipeline.batch import (
    EngineFactory,
    InspectorConfig,
    make_engine_factory,
)
from Core_LineInspector.pipeline.routing import CameraId, classify_camera, list_images

logger = logging.getLogger(__name__)


def write_score_log(
    source_dir: Path,
    config: Optional[InspectorConfig] = None,
    engine_factory: Optional[EngineFactory] = None,
    log_name: str = "ScoreLog.txt",
) -> List[Tuple[str, float]]:
    """
    Score every camera-tagged image in *source_dir* and append the results
    to ``source_dir / log_name``.

    Model load failures propagate; per-file failures are logged and skipped.
    Returns the ``(filename, score)`` pairs written.
    """
    config = config or InspectorConfig()
    engine_factory = engine_factory or make_engine_factory(config)
    source_dir = Path(source_dir)
    if not source_dir.is_dir():
        raise FileNotFoundError(f"Image folder not found: {source_dir}")

    scores: List[Tuple[str, float]] = []
    with ExitStack() as stack:
        engines: Dict[CameraId, InspectionEngine] = {}
        for spec in config.cameras:
            engine = stack.enter_context(engine_factory(spec))
            engine.load_model(config.model_path(spec))
            engines[spec.camera] = engine

        files = list_images(source_dir, config.image_exts)
        log_path = source_dir / log_name
        with open(log_path, "a", encoding="utf-8") as fh:
            for idx, path in enumerate(files, 1):
                camera = classify_camera(path.name, config.cameras)
                if camera is CameraId.UNRECOGNIZED:
                    logger.info("[%d/%d] Skip: %s", idx, len(files), path.name)
                    continue
                try:
                    score = engines[camera].get_raw_score(path)
                except Exception as exc:
                    logger.warning("[%d/%d] %s: %s", idx, len(files), path.name, exc)
                    continue

                fh.write(f"{path.name}\t{score:.4f}\n")
                scores.append((path.name, score))
                logger.info("[%d/%d] %s / score: %.4f",
                            idx, len(files), path.name, score)

    logger.info("Wrote %d scores to %s", len(scores), log_path)
    return scores
