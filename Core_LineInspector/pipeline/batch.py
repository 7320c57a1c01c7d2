"""
Batch Inspection Pipeline
=========================

Folder-based OK / NG sorting for the two line cameras.

Flow
----
::

    source dir
        ↓  top-level *.jpg / *.png / *.bmp   (sorted)
    per file:
        filename tag  →  camera                 (no tag → skip)
        presence gate (gray mean / std)         (empty → OK, no model)
        camera engine.predict()                 (OK / NG / ERROR)
        copy  →  Result_OK  |  Result_NG        (ERROR → Result_NG)
        progress snapshot

States
------
::

    IDLE → LOADING → RUNNING → COMPLETED
              │          │  ↘ CANCELLING → CANCELLED
              └──────────┴──→ FAILED

Both engines are entered in one ``ExitStack`` per run, so the models are
released on every exit path.  One bad file never stops the batch; only a
missing folder / model or an error outside the per-file step does.
"""
from __future__ import annotations

import logging
import shutil
import threading
from contextlib import ExitStack
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Set, Union

from Core_LineInspector.engine.inspection import InspectionEngine, InspectionVerdict
from Core_LineInspector.engine.runtime import OnnxRuntime
from Core_LineInspector.errors import InspectorBusyError, ProcessingError
from Core_LineInspector.preprocess.image import ImageDecoder, ImagePreprocessor
from Core_LineInspector.preprocess.presence import ProductPresenceDetector
from Core_LineInspector.pipeline.progress import (
    BatchProgress,
    BatchState,
    ElapsedTicker,
    ProgressCallback,
    ProgressHolder,
    format_elapsed,
    percent_of,
)
from Core_LineInspector.pipeline.routing import (
    CameraId,
    CameraSpec,
    classify_camera,
    default_cameras,
    list_images,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


# ─────────────────────────────────────────────────────────
#  Configuration
# ─────────────────────────────────────────────────────────
@dataclass
class InspectorConfig:
    """All tuneable knobs for BatchInspector."""

    model_dir: Path = field(default_factory=lambda: Path("."))
    cameras: List[CameraSpec] = field(default_factory=lambda: list(default_cameras()))

    # ── input / output ──
    image_exts: Set[str] = field(default_factory=lambda: {".jpg", ".png", ".bmp"})
    ok_dir_name: str = "Result_OK"
    ng_dir_name: str = "Result_NG"

    # ── preprocessing ──
    input_width: int = 224
    input_height: int = 224
    normalize: str = "none"

    # ── decision ──
    anomaly_threshold: float = 0.8

    # ── runtime ──
    device: Optional[str] = None
    intra_op_threads: int = 0

    # ── progress ──
    tick_interval: float = 0.1      # 0 disables the elapsed ticker

    def __post_init__(self):
        self.model_dir = Path(self.model_dir)
        self.image_exts = {e.lower() if e.startswith(".") else f".{e.lower()}"
                           for e in self.image_exts}

    def model_path(self, spec: CameraSpec) -> Path:
        return self.model_dir / spec.model_name


EngineFactory = Callable[[CameraSpec], InspectionEngine]


def make_engine_factory(
    config: InspectorConfig,
    decoder: Optional[ImageDecoder] = None,
) -> EngineFactory:
    """Factory producing a fresh ONNX-backed engine per camera per run."""
    decoder = decoder or ImageDecoder()

    def factory(spec: CameraSpec) -> InspectionEngine:
        runtime = OnnxRuntime(
            device=config.device,
            intra_op_threads=config.intra_op_threads,
            expected_shape=(1, 3, config.input_height, config.input_width),
        )
        preprocessor = ImagePreprocessor(
            width=config.input_width,
            height=config.input_height,
            normalize=config.normalize,
            decoder=decoder,
        )
        return InspectionEngine(
            runtime,
            preprocessor=preprocessor,
            presence=ProductPresenceDetector(decoder),
            anomaly_threshold=config.anomaly_threshold,
            name=spec.camera.label,
        )

    return factory


# ─────────────────────────────────────────────────────────
#  Results
# ─────────────────────────────────────────────────────────
class OutcomeKind(str, Enum):
    OK = "OK"
    NG = "NG"
    SKIPPED = "SKIPPED"
    ERROR = "ERROR"


@dataclass(frozen=True)
class BatchOutcome:
    """What happened to one file."""
    filename: str
    camera: CameraId
    kind: OutcomeKind
    verdict: Optional[InspectionVerdict] = None
    error: Optional[str] = None
    destination: Optional[Path] = None


@dataclass
class BatchSummary:
    state: BatchState
    status: str
    total: int = 0
    ok: int = 0
    ng: int = 0
    skipped: int = 0
    errored: int = 0
    elapsed: float = 0.0
    outcomes: List[BatchOutcome] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.ok + self.ng + self.skipped + self.errored

    @property
    def elapsed_text(self) -> str:
        return format_elapsed(self.elapsed)


_COUNTER = {
    OutcomeKind.OK: "ok",
    OutcomeKind.NG: "ng",
    OutcomeKind.SKIPPED: "skipped",
    OutcomeKind.ERROR: "errored",
}


class _Cancelled(Exception):
    pass


# ─────────────────────────────────────────────────────────
#  BatchInspector
# ─────────────────────────────────────────────────────────
class BatchInspector:
    """
    Sorts one folder of camera frames into ``Result_OK`` / ``Result_NG``.

    Usage
    -----
    ::

        inspector = BatchInspector(config, on_progress=print)
        summary = inspector.run("D:/line/20251201")     # blocking

        inspector.start("D:/line/20251201")             # worker thread
        inspector.snapshot()                            # poll any time
        inspector.cancel()                              # stops between files
        summary = inspector.wait()

    Only one run at a time; a second ``start`` / ``run`` while busy raises
    :class:`InspectorBusyError`.
    """

    def __init__(
        self,
        config: Optional[InspectorConfig] = None,
        engine_factory: Optional[EngineFactory] = None,
        on_progress: Optional[ProgressCallback] = None,
    ):
        self.config = config or InspectorConfig()
        self._engine_factory = engine_factory or make_engine_factory(self.config)
        self._specs: Dict[CameraId, CameraSpec] = {
            s.camera: s for s in self.config.cameras
        }

        self._progress = ProgressHolder(BatchProgress(
            status=f"Model files {self._model_names()} are required in {self.config.model_dir}",
        ))
        if on_progress is not None:
            self._progress.subscribe(on_progress)

        self._state_lock = threading.Lock()
        self._cancel = threading.Event()
        self._worker: Optional[threading.Thread] = None
        self._last_summary: Optional[BatchSummary] = None

    # ─────────────────── observers ───────────────────
    def subscribe(self, callback: ProgressCallback) -> None:
        self._progress.subscribe(callback)

    def snapshot(self) -> BatchProgress:
        return self._progress.snapshot()

    @property
    def state(self) -> BatchState:
        return self._progress.snapshot().state

    @property
    def is_busy(self) -> bool:
        return self.state.is_busy

    @property
    def last_summary(self) -> Optional[BatchSummary]:
        return self._last_summary

    # ─────────────────── control ───────────────────
    def run(self, source_dir: PathLike) -> BatchSummary:
        """Inspect *source_dir* on the calling thread."""
        self._acquire()
        return self._execute(source_dir)

    def start(self, source_dir: PathLike) -> threading.Thread:
        """Inspect *source_dir* on a dedicated worker thread."""
        self._acquire()
        worker = threading.Thread(
            target=self._execute, args=(source_dir,),
            name="BatchInspector", daemon=True,
        )
        self._worker = worker
        worker.start()
        return worker

    def wait(self, timeout: Optional[float] = None) -> Optional[BatchSummary]:
        """Join the worker started by :meth:`start`; returns the last summary."""
        worker = self._worker
        if worker is not None:
            worker.join(timeout)
            if worker.is_alive():
                return None
        return self._last_summary

    def cancel(self) -> bool:
        """Request a stop before the next file. Returns False when idle."""
        with self._state_lock:
            if not self.is_busy:
                return False
            self._cancel.set()
            self._progress.update(state=BatchState.CANCELLING,
                                  status="Cancelling...")
        return True

    def _acquire(self) -> None:
        with self._state_lock:
            if self.is_busy:
                raise InspectorBusyError("an inspection run is already in progress")
            self._cancel.clear()
            self._last_summary = None
            self._progress.reset(state=BatchState.LOADING, status="Starting...")

    # ─────────────────── run ───────────────────
    def _execute(self, source_dir: PathLike) -> BatchSummary:
        source = Path(source_dir) if source_dir else None
        outcomes: List[BatchOutcome] = []
        cancelled = False

        ticker = None
        if self.config.tick_interval > 0:
            ticker = ElapsedTicker(self._progress, self.config.tick_interval)
            ticker.start()

        try:
            with ExitStack() as stack:
                problem = self._check_preconditions(source)
                if problem:
                    return self._finish(BatchState.FAILED, problem, outcomes)

                engines = self._load_engines(stack)
                ok_dir, ng_dir = self._ensure_result_dirs(source)

                files = list_images(source, self.config.image_exts)
                total = len(files)
                logger.info("Inspecting %d images in %s", total, source)
                with self._state_lock:
                    self._progress.update(
                        state=self._running_state(), total=total,
                        status=f"Found {total} images",
                    )

                try:
                    for path in files:
                        if self._cancel.is_set():
                            raise _Cancelled()
                        outcome = self._process_file(path, engines, ok_dir, ng_dir)
                        outcomes.append(outcome)
                        self._record(outcome, total)
                except _Cancelled:
                    cancelled = True
            # engines released

            if cancelled:
                return self._finish(
                    BatchState.CANCELLED,
                    f"Inspection cancelled ({len(outcomes)}/{total} files)",
                    outcomes,
                )
            return self._finish(BatchState.COMPLETED, None, outcomes)

        except Exception as exc:
            logger.exception("Inspection aborted")
            return self._finish(BatchState.FAILED, f"Fatal error: {exc}", outcomes)

        finally:
            if ticker is not None:
                ticker.stop()

    def _check_preconditions(self, source: Optional[Path]) -> Optional[str]:
        if source is None or not source.is_dir():
            return "Please select an image folder." if source is None \
                else f"Image folder not found: {source}"

        missing = [
            spec.model_name for spec in self.config.cameras
            if not self.config.model_path(spec).is_file()
        ]
        if missing:
            return (
                f"Both {self._model_names()} must be present in "
                f"{self.config.model_dir} (missing: {', '.join(missing)})"
            )
        return None

    def _load_engines(self, stack: ExitStack) -> Dict[CameraId, InspectionEngine]:
        self._progress.update(status="Loading models...")
        engines: Dict[CameraId, InspectionEngine] = {}
        for spec in self.config.cameras:
            engine = stack.enter_context(self._engine_factory(spec))
            engine.load_model(self.config.model_path(spec))
            engines[spec.camera] = engine
        return engines

    def _ensure_result_dirs(self, source: Path):
        ok_dir = source / self.config.ok_dir_name
        ng_dir = source / self.config.ng_dir_name
        ok_dir.mkdir(parents=True, exist_ok=True)
        ng_dir.mkdir(parents=True, exist_ok=True)
        return ok_dir, ng_dir

    def _running_state(self) -> BatchState:
        return BatchState.CANCELLING if self._cancel.is_set() else BatchState.RUNNING

    # ─────────────────── one file ───────────────────
    def _process_file(
        self,
        path: Path,
        engines: Dict[CameraId, InspectionEngine],
        ok_dir: Path,
        ng_dir: Path,
    ) -> BatchOutcome:
        name = path.name
        camera = classify_camera(name, self.config.cameras)
        if camera is CameraId.UNRECOGNIZED:
            return BatchOutcome(name, camera, OutcomeKind.SKIPPED)

        engine = engines[camera]
        spec = self._specs[camera]
        try:
            if engine.is_product_present(path, spec.thresholds):
                verdict = engine.predict(path)
            else:
                verdict = InspectionVerdict.OK

            dest = (ok_dir if verdict is InspectionVerdict.OK else ng_dir) / name
            shutil.copy2(path, dest)
        except Exception as exc:
            err = exc if isinstance(exc, ProcessingError) else ProcessingError(str(exc))
            logger.warning("[%s] %s failed: %s", camera.label, name, err)
            return BatchOutcome(name, camera, OutcomeKind.ERROR, error=str(err))

        if verdict is InspectionVerdict.ERROR:
            kind = OutcomeKind.ERROR
        else:
            kind = OutcomeKind(verdict.value)
        return BatchOutcome(name, camera, kind, verdict=verdict, destination=dest)

    def _record(self, outcome: BatchOutcome, total: int) -> None:
        snap = self._progress.snapshot()
        current = snap.current + 1
        counter = _COUNTER[outcome.kind]

        if outcome.kind is OutcomeKind.SKIPPED:
            status = f"Skip: {outcome.filename} (filename does not match camera rule)"
        elif outcome.verdict is None:
            status = f"Err: {outcome.filename} - {outcome.error}"
        else:
            status = f"[{outcome.verdict}] {outcome.filename} ({outcome.camera.label})"

        logger.info("[%d/%d] %s", current, total, status)
        self._progress.update(
            current=current,
            percent=percent_of(current, total),
            status=status,
            **{counter: getattr(snap, counter) + 1},
        )

    # ─────────────────── finish ───────────────────
    def _finish(
        self,
        state: BatchState,
        status: Optional[str],
        outcomes: List[BatchOutcome],
    ) -> BatchSummary:
        elapsed = self._progress.stop_clock()
        snap = self._progress.snapshot()
        if status is None:
            status = (
                f"Inspection complete! (total {snap.total} images, "
                f"OK {snap.ok} / NG {snap.ng} / skipped {snap.skipped} / "
                f"errors {snap.errored}, elapsed {format_elapsed(elapsed)})"
            )

        summary = BatchSummary(
            state=state,
            status=status,
            total=snap.total,
            ok=snap.ok,
            ng=snap.ng,
            skipped=snap.skipped,
            errored=snap.errored,
            elapsed=elapsed,
            outcomes=list(outcomes),
        )
        self._last_summary = summary

        log = logger.error if state is BatchState.FAILED else logger.info
        log(status)
        with self._state_lock:
            self._progress.update(state=state, status=status)
        return summary

    def _model_names(self) -> str:
        return " and ".join(f"'{s.model_name}'" for s in self.config.cameras)
