"""固定帧率时钟：控制帧源读取节奏。"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable

from domino_scorer.settings import DEFAULT_ANALYSIS_FPS


@dataclass
class FrameClock:
    """以固定 FPS 节流；落后时不补帧，直接从当前时间重新对齐。"""

    fps: float = DEFAULT_ANALYSIS_FPS
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)
    monotonic: Callable[[], float] = field(default=time.monotonic, repr=False)

    def __post_init__(self) -> None:
        if self.fps <= 0:
            raise ValueError("fps 必须大于 0")
        self.interval = 1.0 / self.fps
        self.reset()

    def reset(self) -> None:
        self._next_tick = self.monotonic()

    def tick(self) -> float:
        """等待到下一帧时间点，返回实际等待秒数。"""
        now = self.monotonic()
        waited = 0.0
        if now < self._next_tick:
            waited = self._next_tick - now
            self.sleep(waited)
        self._next_tick = max(self._next_tick + self.interval, self.monotonic())
        return waited
