import threading
import time
from types import SimpleNamespace

import numpy as np
import pytest

from domino_scorer.analyzer import AnalysisResult
from domino_scorer.errors import PreconditionError, SessionStateError
from domino_scorer.session import CaptureSession, LatestFrameSlot


def _frame(tag: int) -> SimpleNamespace:
    return SimpleNamespace(tag=tag)


class FakeAnalyzer:
    """按 tag 返回点数；tag<0 视为无效帧，可选择阻塞首帧。"""

    def __init__(self, block_first: bool = False) -> None:
        self.block_first = block_first
        self.started = threading.Event()
        self.release = threading.Event()
        self.seen: list[int] = []

    def analyze(self, frame: SimpleNamespace) -> AnalysisResult:
        self.seen.append(frame.tag)
        if self.block_first and len(self.seen) == 1:
            self.started.set()
            self.release.wait(timeout=5)
        if frame.tag < 0:
            raise PreconditionError("bad frame")
        return AnalysisResult(annotated_frame=np.zeros((2, 2, 3), dtype=np.uint8), pip_count=frame.tag)


class Collector:
    def __init__(self, expected: int) -> None:
        self.expected = expected
        self.counts: list[int] = []
        self.done = threading.Event()

    def __call__(self, result: AnalysisResult) -> None:
        self.counts.append(result.pip_count)
        if len(self.counts) >= self.expected:
            self.done.set()


def test_latest_frame_replaces_pending_frame_while_busy() -> None:
    analyzer = FakeAnalyzer(block_first=True)
    collector = Collector(expected=2)
    session = CaptureSession(analyzer, collector)
    session.start()

    session.submit(_frame(1))
    assert analyzer.started.wait(timeout=5)
    assert session.submit(_frame(2)) is False
    assert session.submit(_frame(3)) is True
    analyzer.release.set()

    assert collector.done.wait(timeout=5)
    assert session.stop(timeout=5) == 3
    assert collector.counts == [1, 3]
    assert analyzer.seen == [1, 3]
    assert session.dropped_frames == 1
    assert session.analyzed_frames == 2


def test_precondition_error_skips_frame_and_session_continues() -> None:
    errors: list[str] = []
    failed = threading.Event()

    def on_error(frame: SimpleNamespace, exc: PreconditionError) -> None:
        errors.append(str(exc))
        failed.set()

    collector = Collector(expected=1)
    session = CaptureSession(FakeAnalyzer(), collector, on_frame_error=on_error)
    session.start()

    session.submit(_frame(-1))
    assert failed.wait(timeout=5)
    session.submit(_frame(4))
    assert collector.done.wait(timeout=5)

    assert session.stop(timeout=5) == 4
    assert errors == ["bad frame"]
    assert session.failed_frames == 1


def test_submit_outside_lifecycle_is_rejected() -> None:
    session = CaptureSession(FakeAnalyzer(), Collector(expected=1))
    with pytest.raises(SessionStateError, match="尚未 start"):
        session.submit(_frame(1))

    session.start()
    assert session.is_running
    assert session.stop(timeout=5) == 0
    assert not session.is_running
    with pytest.raises(SessionStateError, match="已 stop"):
        session.submit(_frame(1))


def test_start_twice_is_rejected() -> None:
    session = CaptureSession(FakeAnalyzer(), Collector(expected=1))
    session.start()
    with pytest.raises(SessionStateError, match="重复"):
        session.start()
    session.stop(timeout=5)


def test_unexpected_error_is_raised_from_stop() -> None:
    reached = threading.Event()

    class BrokenAnalyzer:
        def analyze(self, frame: SimpleNamespace) -> AnalysisResult:
            reached.set()
            raise RuntimeError("boom")

    session = CaptureSession(BrokenAnalyzer(), Collector(expected=1))
    session.start()
    session.submit(_frame(1))
    assert reached.wait(timeout=5)

    with pytest.raises(RuntimeError, match="boom"):
        session.stop(timeout=5)


def test_slot_close_counts_pending_frame_as_dropped() -> None:
    slot = LatestFrameSlot()
    slot.put(_frame(1))
    slot.close()

    assert slot.dropped == 1
    assert slot.take() is None
    with pytest.raises(SessionStateError):
        slot.put(_frame(2))


def _wait_until(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_listener_failure_stops_session_and_surfaces_cause() -> None:
    def broken_listener(result: AnalysisResult) -> None:
        raise RuntimeError("listener boom")

    session = CaptureSession(FakeAnalyzer(), broken_listener)
    session.start()
    session.submit(_frame(1))

    assert _wait_until(lambda: not session.is_running)
    with pytest.raises(SessionStateError, match="异常退出") as info:
        session.submit(_frame(2))
    assert isinstance(info.value.__cause__, RuntimeError)
    assert str(info.value.__cause__) == "listener boom"

    with pytest.raises(RuntimeError, match="listener boom"):
        session.stop(timeout=5)


def test_stop_timeout_with_busy_worker_does_not_return_count() -> None:
    analyzer = FakeAnalyzer(block_first=True)
    session = CaptureSession(analyzer, Collector(expected=1))
    session.start()
    session.submit(_frame(7))
    assert analyzer.started.wait(timeout=5)

    with pytest.raises(SessionStateError, match="未结束"):
        session.stop(timeout=0.05)

    analyzer.release.set()
    assert session.stop(timeout=5) == 7
