"""帧格式适配：相机原生 I420 多平面帧 -> 交错 RGB 帧。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np

from domino_scorer.errors import PreconditionError


@dataclass
class NativeFrame:
    """相机原生帧（YUV 4:2:0 平面格式）。

    y 为 height x width 的亮度平面，u/v 为 (height/2) x (width/2) 的色度平面。
    rotation_degrees 是帧源给出的旋转元数据，分析核心只透传不做补偿。
    """

    width: int
    height: int
    y: Optional[np.ndarray]
    u: Optional[np.ndarray]
    v: Optional[np.ndarray]
    rotation_degrees: int = 0

    @classmethod
    def from_rgb(cls, rgb: np.ndarray, rotation_degrees: int = 0) -> "NativeFrame":
        """把交错 RGB 图像编码为 I420 原生帧（宽高必须为偶数）。"""
        return cls._from_color(rgb, cv2.COLOR_RGB2YUV_I420, rotation_degrees)

    @classmethod
    def from_bgr(cls, bgr: np.ndarray, rotation_degrees: int = 0) -> "NativeFrame":
        """OpenCV 读出的 BGR 图像 -> I420 原生帧。"""
        return cls._from_color(bgr, cv2.COLOR_BGR2YUV_I420, rotation_degrees)

    @classmethod
    def _from_color(cls, image: np.ndarray, code: int, rotation_degrees: int) -> "NativeFrame":
        if image is None or image.ndim != 3 or image.shape[2] != 3:
            raise PreconditionError("输入图像必须是 HxWx3 的彩色图")
        height, width = image.shape[:2]
        if width == 0 or height == 0 or width % 2 or height % 2:
            raise PreconditionError(f"I420 要求宽高为正偶数，当前 {width}x{height}")

        flat = cv2.cvtColor(image, code).reshape(-1)
        luma_size = width * height
        chroma_size = luma_size // 4
        return cls(
            width=width,
            height=height,
            y=flat[:luma_size].reshape(height, width),
            u=flat[luma_size : luma_size + chroma_size].reshape(height // 2, width // 2),
            v=flat[luma_size + chroma_size :].reshape(height // 2, width // 2),
            rotation_degrees=int(rotation_degrees),
        )

    def has_planes(self) -> bool:
        return self.y is not None and self.u is not None and self.v is not None


class YuvToRgbConverter:
    """把 NativeFrame 写入调用方持有的共享 RGB 缓冲区。

    内部复用一块 I420 打包缓冲区，避免每帧重新分配。
    """

    def __init__(self) -> None:
        self._yuv_buffer: np.ndarray | None = None

    def yuv_to_rgb(self, frame: NativeFrame, output: Optional[np.ndarray]) -> np.ndarray:
        """转换并覆盖 output，返回 output 本身。"""
        if output is None:
            raise PreconditionError("RGB 输出缓冲区尚未分配")
        _check_native_frame(frame)
        expected = (frame.height, frame.width, 3)
        if output.shape != expected or output.dtype != np.uint8:
            raise PreconditionError(
                f"RGB 缓冲区尺寸不匹配：期望 {expected}，实际 {output.shape}"
            )

        packed = self._pack(frame)
        rgb = cv2.cvtColor(packed, cv2.COLOR_YUV2RGB_I420)
        np.copyto(output, rgb)
        return output

    def _pack(self, frame: NativeFrame) -> np.ndarray:
        width, height = frame.width, frame.height
        shape = (height * 3 // 2, width)
        if self._yuv_buffer is None or self._yuv_buffer.shape != shape:
            self._yuv_buffer = np.empty(shape, dtype=np.uint8)

        flat = self._yuv_buffer.reshape(-1)
        luma_size = width * height
        chroma_size = luma_size // 4
        try:
            flat[:luma_size] = np.asarray(frame.y, dtype=np.uint8).reshape(-1)
            flat[luma_size : luma_size + chroma_size] = np.asarray(frame.u, dtype=np.uint8).reshape(-1)
            flat[luma_size + chroma_size :] = np.asarray(frame.v, dtype=np.uint8).reshape(-1)
        except ValueError as exc:
            raise PreconditionError(f"平面数据大小与 {width}x{height} 不符") from exc
        return self._yuv_buffer


def to_rgb_frame(
    frame: NativeFrame,
    output: Optional[np.ndarray],
    converter: YuvToRgbConverter | None = None,
) -> np.ndarray:
    """便捷函数：用（可选的）转换器把原生帧写入 output。"""
    return (converter or YuvToRgbConverter()).yuv_to_rgb(frame, output)


def _check_native_frame(frame: NativeFrame) -> None:
    if frame is None:
        raise PreconditionError("帧为空")
    if frame.width <= 0 or frame.height <= 0:
        raise PreconditionError(f"帧尺寸无效: {frame.width}x{frame.height}")
    if frame.width % 2 or frame.height % 2:
        raise PreconditionError(f"I420 要求宽高为偶数: {frame.width}x{frame.height}")
    if not frame.has_planes():
        raise PreconditionError("帧缺少像素平面数据")
