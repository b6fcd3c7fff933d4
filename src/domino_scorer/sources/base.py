"""帧源抽象。"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Callable, Optional

import cv2
import numpy as np

from domino_scorer.errors import UpstreamUnavailable
from domino_scorer.frames import NativeFrame


class FrameSource(ABC):
    """统一帧源接口。"""

    @abstractmethod
    def read(self) -> Optional[NativeFrame]:
        """读取一帧原生图像。返回 None 表示结束。"""

    def close(self) -> None:
        """释放资源（默认空实现）。"""


class SourceError(UpstreamUnavailable):
    """帧源运行期异常基类。"""


class SourceConnectError(SourceError):
    """连接帧源失败（设备被占用、权限被拒、路径不存在等）。"""


class SourceReadError(SourceError):
    """读取帧失败。"""


class OpenCVCaptureSource(FrameSource):
    """通用 OpenCV 帧源（摄像头编号/本地视频/网络流）。

    说明：
    - 连接失败按固定退避重试，重试逻辑只存在于帧源层，分析核心不重试。
    - VideoCapture 输出 BGR，这里裁成偶数宽高后编码成 I420，
      与相机原生帧走同一条格式适配路径。
    """

    def __init__(
        self,
        source: str | int,
        rotation_degrees: int = 0,
        reconnect_attempts: int = 3,
        reconnect_backoff_sec: float = 0.3,
        capture_factory: Callable[[str | int], cv2.VideoCapture] = cv2.VideoCapture,
    ) -> None:
        self.source = source
        self.rotation_degrees = int(rotation_degrees)
        self.reconnect_attempts = max(1, int(reconnect_attempts))
        self.reconnect_backoff_sec = max(0.0, float(reconnect_backoff_sec))
        self._capture_factory = capture_factory
        self._cap: cv2.VideoCapture | None = None
        self._connect_with_retry()

    def read(self) -> Optional[NativeFrame]:
        if self._cap is None:
            raise SourceReadError(f"帧源已关闭：{self.source}")
        ok, frame = self._cap.read()
        if not ok or frame is None:
            return None
        return NativeFrame.from_bgr(crop_to_even(frame), rotation_degrees=self.rotation_degrees)

    def close(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None

    def _connect_with_retry(self) -> None:
        last_error: Exception | None = None
        for attempt in range(1, self.reconnect_attempts + 1):
            try:
                self._open_capture_once()
                return
            except SourceConnectError as exc:
                last_error = exc
                self.close()
                if attempt < self.reconnect_attempts:
                    time.sleep(self.reconnect_backoff_sec)

        raise SourceConnectError(
            f"无法打开视频源：{self.source}（已尝试 {self.reconnect_attempts} 次）。"
            "请确认摄像头未被占用、已授予权限、路径或地址正确。"
        ) from last_error

    def _open_capture_once(self) -> None:
        cap = self._capture_factory(self.source)
        if not cap.isOpened():
            cap.release()
            raise SourceConnectError(f"VideoCapture 打开失败：{self.source}")
        self._cap = cap


def crop_to_even(image: np.ndarray) -> np.ndarray:
    """I420 需要偶数宽高，奇数时裁掉最后一行/列。"""
    height, width = image.shape[:2]
    return np.ascontiguousarray(image[: height - height % 2, : width - width % 2])
