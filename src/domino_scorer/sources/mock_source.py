"""Mock 帧源：把一张本地图片反复作为原生帧输出。"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import cv2

from domino_scorer.frames import NativeFrame
from domino_scorer.sources.base import FrameSource, crop_to_even


class MockImageSource(FrameSource):
    """离线演示/回归用：每次 read() 返回同一张图编码出的 I420 帧。"""

    def __init__(self, image_path: str | Path, rotation_degrees: int = 0) -> None:
        path = Path(image_path)
        image = cv2.imread(str(path), cv2.IMREAD_COLOR)
        if image is None:
            raise FileNotFoundError(f"无法读取图片: {path}")
        self._frame = NativeFrame.from_bgr(crop_to_even(image), rotation_degrees=rotation_degrees)

    def read(self) -> Optional[NativeFrame]:
        frame = self._frame
        return NativeFrame(
            width=frame.width,
            height=frame.height,
            y=frame.y.copy(),
            u=frame.u.copy(),
            v=frame.v.copy(),
            rotation_degrees=frame.rotation_degrees,
        )
