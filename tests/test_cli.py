"""
CLI Tests - console progress line and Ctrl+C handling in run_inspect.
"""

import io
import threading

from Core_LineInspector.pipeline.progress import BatchProgress, BatchState

from run_inspect import ProgressLine, wait_for_summary


class InterruptingInspector:
    """``wait`` raises KeyboardInterrupt *interrupts* times, then returns a summary."""

    def __init__(self, interrupts: int, summary="done"):
        self.interrupts = interrupts
        self.summary = summary
        self.cancel_calls = 0
        self.wait_calls = 0

    def wait(self, timeout=None):
        self.wait_calls += 1
        if self.interrupts:
            self.interrupts -= 1
            raise KeyboardInterrupt
        return self.summary

    def cancel(self):
        self.cancel_calls += 1
        return True


class TestWaitForSummary:

    def test_no_interrupt(self):
        inspector = InterruptingInspector(0)
        assert wait_for_summary(inspector, poll=0) == "done"
        assert inspector.cancel_calls == 0

    def test_first_interrupt_cancels(self):
        inspector = InterruptingInspector(1)
        assert wait_for_summary(inspector, poll=0) == "done"
        assert inspector.cancel_calls == 1

    def test_repeated_interrupts_are_absorbed(self):
        """Ctrl+C again while the current file finishes must not escape."""
        inspector = InterruptingInspector(3)
        assert wait_for_summary(inspector, poll=0) == "done"
        assert inspector.cancel_calls == 1
        assert inspector.wait_calls == 4

    def test_keeps_polling_until_summary(self):
        class SlowInspector(InterruptingInspector):
            def wait(self, timeout=None):
                self.wait_calls += 1
                return self.summary if self.wait_calls >= 3 else None

        inspector = SlowInspector(0)
        assert wait_for_summary(inspector, poll=0) == "done"
        assert inspector.wait_calls == 3


class TestProgressLine:

    def snap(self, current, status="[OK] a.png (Cam1)"):
        return BatchProgress(state=BatchState.RUNNING, current=current, total=4,
                             percent=current * 25, status=status)

    def test_identical_snapshots_written_once(self):
        out = io.StringIO()
        line = ProgressLine(out)

        line(self.snap(1))
        line(self.snap(1))
        line(self.snap(2))

        assert out.getvalue().count("\r") == 2
        assert " 50% 2/4 " in out.getvalue()

    def test_concurrent_writers_do_not_interleave(self):
        out = io.StringIO()
        line = ProgressLine(out)
        start = threading.Event()

        def feed(offset):
            start.wait()
            for i in range(200):
                line(self.snap(1 + (i + offset) % 4, status=f"file {offset}-{i}"))

        threads = [threading.Thread(target=feed, args=(k,)) for k in range(4)]
        for t in threads:
            t.start()
        start.set()
        for t in threads:
            t.join(timeout=10)
        line.close()

        chunks = out.getvalue().rstrip("\n").split("\r")[1:]
        width = len(chunks[0])
        assert all(len(c) == width for c in chunks)
        assert all(c.startswith("[") for c in chunks)

    def test_close_ends_line(self):
        out = io.StringIO()
        line = ProgressLine(out)
        line(self.snap(4, status="done"))
        line.close()
        assert out.getvalue().endswith("\n")
