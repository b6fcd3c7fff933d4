"""采集会话：单工作线程顺序分析 + 仅保留最新帧的背压策略。"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from domino_scorer.analyzer import AnalysisResult, DominoAnalyzer
from domino_scorer.errors import PreconditionError, SessionStateError
from domino_scorer.frames import NativeFrame

logger = logging.getLogger(__name__)

ResultListener = Callable[[AnalysisResult], None]
FrameErrorListener = Callable[[NativeFrame, PreconditionError], None]


class LatestFrameSlot:
    """单槽帧缓存：新帧到达时替换尚未开始分析的旧帧。"""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._frame: Optional[NativeFrame] = None
        self._closed = False
        self.dropped = 0

    def put(self, frame: NativeFrame) -> bool:
        """放入新帧；若替换了待处理帧返回 True。"""
        with self._cond:
            if self._closed:
                raise SessionStateError("帧槽已关闭，无法再提交帧")
            replaced = self._frame is not None
            if replaced:
                self.dropped += 1
            self._frame = frame
            self._cond.notify()
            return replaced

    def take(self) -> Optional[NativeFrame]:
        """阻塞直到有帧可取；关闭后返回 None。"""
        with self._cond:
            while self._frame is None and not self._closed:
                self._cond.wait()
            if self._closed:
                return None
            frame = self._frame
            self._frame = None
            return frame

    def close(self) -> None:
        with self._cond:
            if self._frame is not None:
                self.dropped += 1
                self._frame = None
            self._closed = True
            self._cond.notify_all()


class CaptureSession:
    """把帧源与分析器连接起来的会话。

    - start()/stop() 包住整个帧流，start 之前或 stop 之后提交帧会抛 SessionStateError。
    - 结果按分析顺序推给 listener；被背压丢弃的帧不产生结果。
    - 单帧 PreconditionError 只跳过该帧，会话继续运行。
    - final_count 为最后一次交付的点数，会话结束时交给调用方。
    """

    def __init__(
        self,
        analyzer: DominoAnalyzer,
        listener: ResultListener,
        on_frame_error: FrameErrorListener | None = None,
        thread_name: str = "domino-analyzer",
    ) -> None:
        self.analyzer = analyzer
        self.listener = listener
        self.on_frame_error = on_frame_error
        self.thread_name = thread_name
        self._lock = threading.Lock()
        self._slot = LatestFrameSlot()
        self._thread: threading.Thread | None = None
        self._started = False
        self._stopped = False
        self._final_count = 0
        self._fatal_error: BaseException | None = None
        self.analyzed_frames = 0
        self.failed_frames = 0

    @property
    def is_running(self) -> bool:
        return self._started and not self._stopped and self._fatal_error is None

    @property
    def final_count(self) -> int:
        return self._final_count

    @property
    def dropped_frames(self) -> int:
        return self._slot.dropped

    def start(self) -> None:
        with self._lock:
            if self._started:
                raise SessionStateError("会话已启动过，不能重复 start()")
            self._started = True
            self._thread = threading.Thread(target=self._run, name=self.thread_name, daemon=True)
            self._thread.start()

    def submit(self, frame: NativeFrame) -> bool:
        """提交一帧；返回 True 表示挤掉了一帧尚未分析的旧帧。"""
        if not self._started:
            raise SessionStateError("会话尚未 start()，不能提交帧")
        if self._stopped:
            raise SessionStateError("会话已 stop()，不能提交帧")
        if self._fatal_error is not None:
            raise SessionStateError("分析线程已异常退出，不能提交帧") from self._fatal_error
        try:
            return self._slot.put(frame)
        except SessionStateError as exc:
            if self._fatal_error is not None:
                raise SessionStateError("分析线程已异常退出，不能提交帧") from self._fatal_error
            raise

    def stop(self, timeout: float | None = None) -> int:
        """停止会话：等待进行中的帧完成，丢弃待处理帧，返回最终点数。"""
        with self._lock:
            if not self._started:
                raise SessionStateError("会话尚未 start()")
            if not self._stopped:
                self._stopped = True
                self._slot.close()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                raise SessionStateError(f"分析线程在 {timeout}s 内未结束，点数可能仍会变化")
        if self._fatal_error is not None:
            raise self._fatal_error
        return self._final_count

    def _run(self) -> None:
        while True:
            frame = self._slot.take()
            if frame is None:
                return
            try:
                result = self.analyzer.analyze(frame)
            except PreconditionError as exc:
                self.failed_frames += 1
                logger.warning("跳过无效帧: %s", exc)
                if self.on_frame_error is not None:
                    self.on_frame_error(frame, exc)
                continue
            except Exception as exc:
                logger.exception("分析线程异常退出")
                self._fatal_error = exc
                self._slot.close()
                return

            self.analyzed_frames += 1
            self._final_count = result.pip_count
            try:
                self.listener(result)
            except Exception as exc:
                logger.exception("结果回调异常，会话终止")
                self._fatal_error = exc
                self._slot.close()
                return
