"""
Progress Reporting
==================

The batch worker never touches a UI.  It swaps an immutable
:class:`BatchProgress` snapshot into a :class:`ProgressHolder`; observers
either poll ``holder.snapshot()`` or subscribe a callback.

::

    worker thread ──update()──▶ ProgressHolder ──▶ callbacks (snapshot)
    ElapsedTicker ──touch() ──▶        │
                                       └──▶ snapshot()  (poll from any thread)

``ElapsedTicker`` republishes every ``interval`` seconds so the elapsed
clock keeps moving while the worker is blocked inside one inference.
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class BatchState(str, Enum):
    IDLE = "IDLE"
    LOADING = "LOADING"
    RUNNING = "RUNNING"
    CANCELLING = "CANCELLING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    @property
    def is_busy(self) -> bool:
        return self in (BatchState.LOADING, BatchState.RUNNING, BatchState.CANCELLING)

    @property
    def is_terminal(self) -> bool:
        return self in (BatchState.COMPLETED, BatchState.FAILED, BatchState.CANCELLED)


def format_elapsed(seconds: float) -> str:
    """``hh:mm:ss`` (hours are not wrapped at 24)."""
    total = int(max(seconds, 0.0))
    h, rem = divmod(total, 3600)
    m, s = divmod(rem, 60)
    return f"{h:02d}:{m:02d}:{s:02d}"


def percent_of(current: int, total: int) -> int:
    """floor(current / total × 100); 0 for an empty batch."""
    if total <= 0:
        return 0
    return (current * 100) // total


@dataclass(frozen=True)
class BatchProgress:
    """One immutable view of a batch run."""
    state: BatchState = BatchState.IDLE
    current: int = 0
    total: int = 0
    percent: int = 0
    status: str = ""
    elapsed: float = 0.0
    ok: int = 0
    ng: int = 0
    skipped: int = 0
    errored: int = 0

    @property
    def elapsed_text(self) -> str:
        return format_elapsed(self.elapsed)

    @property
    def is_busy(self) -> bool:
        return self.state.is_busy


ProgressCallback = Callable[[BatchProgress], None]


class ProgressHolder:
    """Thread-safe owner of the current :class:`BatchProgress`."""

    def __init__(self, initial: Optional[BatchProgress] = None):
        self._lock = threading.Lock()
        self._snapshot = initial or BatchProgress()
        self._t0: Optional[float] = None
        self._listeners: List[ProgressCallback] = []

    # ── observers ──
    def subscribe(self, callback: ProgressCallback) -> None:
        with self._lock:
            self._listeners.append(callback)

    def unsubscribe(self, callback: ProgressCallback) -> None:
        with self._lock:
            if callback in self._listeners:
                self._listeners.remove(callback)

    def snapshot(self) -> BatchProgress:
        with self._lock:
            return self._snapshot

    # ── writers ──
    def reset(self, **fields) -> BatchProgress:
        """Start a new run: fresh counters, clock restarted."""
        with self._lock:
            self._t0 = time.perf_counter()
            snap = self._snapshot = BatchProgress(**fields)
            listeners = list(self._listeners)
        self._publish(snap, listeners)
        return snap

    def update(self, **changes) -> BatchProgress:
        with self._lock:
            if self._t0 is not None:
                changes.setdefault("elapsed", time.perf_counter() - self._t0)
            snap = self._snapshot = replace(self._snapshot, **changes)
            listeners = list(self._listeners)
        self._publish(snap, listeners)
        return snap

    def touch(self) -> Optional[BatchProgress]:
        """Refresh elapsed time only; no-op when the clock is stopped."""
        with self._lock:
            if self._t0 is None:
                return None
        return self.update()

    def stop_clock(self) -> float:
        with self._lock:
            if self._t0 is not None:
                self._snapshot = replace(
                    self._snapshot, elapsed=time.perf_counter() - self._t0)
                self._t0 = None
            return self._snapshot.elapsed

    @staticmethod
    def _publish(snap: BatchProgress, listeners: List[ProgressCallback]) -> None:
        for cb in listeners:
            try:
                cb(snap)
            except Exception:
                logger.exception("progress listener %r failed", cb)


class ElapsedTicker(threading.Thread):
    """
    Republishes the progress snapshot every *interval* seconds.
    Runs as daemon so it dies with the process.
    """

    def __init__(self, holder: ProgressHolder, interval: float = 0.1):
        super().__init__(daemon=True, name="ElapsedTicker")
        self.holder = holder
        self.interval = interval
        self.stop_event = threading.Event()

    def run(self) -> None:
        while not self.stop_event.wait(self.interval):
            self.holder.touch()

    def stop(self) -> None:
        self.stop_event.set()
        if self.is_alive() and threading.current_thread() is not self:
            self.join(timeout=max(self.interval * 5, 1.0))
