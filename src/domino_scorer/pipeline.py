"""端到端流水线：帧源 -> 分析器（同步）或 帧源 -> 会话（工作线程）。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from domino_scorer.analyzer import DominoAnalyzer
from domino_scorer.errors import PreconditionError
from domino_scorer.frame_clock import FrameClock
from domino_scorer.session import CaptureSession
from domino_scorer.sources.base import FrameSource


@dataclass
class Pipeline:
    source: FrameSource
    analyzer: DominoAnalyzer
    clock: Optional[FrameClock] = None

    def run(self, max_frames: Optional[int] = None) -> int:
        """持续处理帧直到达到上限或帧源结束，返回最后一次交付的点数。"""
        frames = 0
        final_count = 0
        while True:
            frame = self.source.read()
            if frame is None:
                break

            try:
                result = self.analyzer.analyze(frame)
            except PreconditionError as exc:
                print(f"frame={frames} skipped: {exc}")
            else:
                final_count = result.pip_count
                print(f"frame={frames} pips={result.pip_count} rotation={result.rotation_degrees}")

            frames += 1
            if max_frames is not None and frames >= max_frames:
                break

            if self.clock is not None:
                self.clock.tick()
        return final_count


def feed_session(
    source: FrameSource,
    session: CaptureSession,
    clock: Optional[FrameClock] = None,
    max_frames: Optional[int] = None,
) -> int:
    """从帧源读帧并提交给已启动的会话，返回提交帧数。

    帧源异常（UpstreamUnavailable）原样抛给调用方，由其决定重试或结束会话。
    """
    submitted = 0
    while max_frames is None or submitted < max_frames:
        frame = source.read()
        if frame is None:
            break
        session.submit(frame)
        submitted += 1
        if clock is not None:
            clock.tick()
    return submitted
