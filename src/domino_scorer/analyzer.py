"""骨牌点数检测：预处理 -> Hough 圆检测 -> 标注计数。"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

import cv2
import numpy as np

from domino_scorer.errors import AnnotationError, PreconditionError
from domino_scorer.frames import NativeFrame, YuvToRgbConverter
from domino_scorer.settings import DetectorParams

logger = logging.getLogger(__name__)

# (center_x, center_y, radius)，像素坐标
DetectedCircle = tuple[float, float, float]


@dataclass
class AnalysisResult:
    """单帧分析结果。

    annotated_frame 在 DominoAnalyzer 中是共享缓冲区，下一帧会被覆盖；
    需要保留时请先 copy()。
    """

    annotated_frame: np.ndarray
    pip_count: int
    circles: list[DetectedCircle] = field(default_factory=list)
    rotation_degrees: int = 0


@dataclass
class SessionGeometry:
    """首帧确定的会话几何信息，之后保持不变。"""

    initialized: bool = False
    rotation_degrees: int = 0
    width: int = 0
    height: int = 0

    def ensure(self, frame: NativeFrame) -> bool:
        """首次调用时记录几何信息并返回 True，之后返回 False。"""
        if self.initialized:
            return False
        self.rotation_degrees = int(frame.rotation_degrees)
        self.width = int(frame.width)
        self.height = int(frame.height)
        self.initialized = True
        return True


def preprocess(rgb: np.ndarray, params: DetectorParams | None = None) -> np.ndarray:
    """RGB -> 灰度 -> 高斯模糊 -> Canny，顺序固定。"""
    p = params or DetectorParams()
    _check_image(rgb, channels=3)

    gray = cv2.cvtColor(rgb, cv2.COLOR_RGB2GRAY)
    blurred = cv2.GaussianBlur(gray, (p.blur_kernel, p.blur_kernel), p.blur_sigma)
    return cv2.Canny(blurred, p.canny_low, p.canny_high)


def detect_circles(edges: np.ndarray, params: DetectorParams | None = None) -> list[DetectedCircle]:
    """在边缘图上做 Hough 梯度圆检测，未检测到返回空列表。"""
    p = params or DetectorParams()
    _check_image(edges, channels=1)

    found = cv2.HoughCircles(
        edges,
        cv2.HOUGH_GRADIENT,
        p.dp,
        p.min_distance,
        param1=p.param1,
        param2=p.param2,
        minRadius=p.min_radius,
        maxRadius=p.max_radius,
    )
    if found is None:
        return []

    circles: list[DetectedCircle] = []
    for x, y, r in found.reshape(-1, 3):
        radius = float(r)
        if radius < p.min_radius or radius > p.max_radius:
            logger.debug("丢弃半径越界的圆: r=%.2f", radius)
            continue
        circles.append((float(x), float(y), radius))
    return circles


def annotate(
    edges: np.ndarray,
    circles: Sequence[Sequence[float]],
    params: DetectorParams | None = None,
) -> np.ndarray:
    """把边缘图转为彩色并在每个圆上画实心标记；坏记录跳过。"""
    p = params or DetectorParams()
    canvas = cv2.cvtColor(edges, cv2.COLOR_GRAY2RGB)
    for index, record in enumerate(circles):
        try:
            _draw_pip(canvas, record, p.marker_color)
        except AnnotationError as exc:
            logger.debug("跳过第 %d 个检测记录: %s", index, exc)
    return canvas


def run_pipeline(rgb: np.ndarray, params: DetectorParams | None = None) -> AnalysisResult:
    """纯函数形式的完整流水线，不触碰任何共享状态。"""
    p = params or DetectorParams()
    edges = preprocess(rgb, p)
    circles = detect_circles(edges, p)
    # 计数取检测输出，和标注是否成功无关
    pip_count = len(circles)
    annotated = annotate(edges, circles, p)
    return AnalysisResult(annotated_frame=annotated, pip_count=pip_count, circles=circles)


class DominoAnalyzer:
    """逐帧分析器：原生帧 -> 共享 RGB 缓冲区 -> 流水线 -> AnalysisResult。"""

    def __init__(
        self,
        params: DetectorParams | None = None,
        converter: YuvToRgbConverter | None = None,
    ) -> None:
        self.params = params or DetectorParams()
        self.geometry = SessionGeometry()
        self._converter = converter or YuvToRgbConverter()
        self._rgb_buffer: Optional[np.ndarray] = None

    @property
    def rgb_buffer(self) -> Optional[np.ndarray]:
        return self._rgb_buffer

    def analyze(self, frame: NativeFrame) -> AnalysisResult:
        if frame is None or frame.width <= 0 or frame.height <= 0:
            size = "None" if frame is None else f"{frame.width}x{frame.height}"
            raise PreconditionError(f"帧尺寸无效: {size}")

        if self.geometry.ensure(frame):
            # 旋转角与 RGB 缓冲区只在首帧初始化一次
            self._rgb_buffer = np.zeros((frame.height, frame.width, 3), dtype=np.uint8)
            logger.debug(
                "会话几何已初始化: %dx%d rotation=%d",
                self.geometry.width,
                self.geometry.height,
                self.geometry.rotation_degrees,
            )

        rgb = self._converter.yuv_to_rgb(frame, self._rgb_buffer)
        result = run_pipeline(rgb, self.params)
        np.copyto(rgb, result.annotated_frame)
        return AnalysisResult(
            annotated_frame=rgb,
            pip_count=result.pip_count,
            circles=result.circles,
            rotation_degrees=self.geometry.rotation_degrees,
        )


def _draw_pip(canvas: np.ndarray, record: Sequence[float], color: tuple[int, int, int]) -> None:
    try:
        x, y, r = record[0], record[1], record[2]
        center = (int(round(float(x))), int(round(float(y))))
        radius = int(float(r))
    except (IndexError, KeyError, TypeError, ValueError, OverflowError) as exc:
        raise AnnotationError(f"检测记录格式错误: {record!r}") from exc
    if radius <= 0:
        raise AnnotationError(f"半径无效: {record!r}")
    try:
        cv2.circle(canvas, center, radius, color, thickness=-1)
    except (cv2.error, OverflowError, TypeError) as exc:
        raise AnnotationError(f"无法绘制检测记录: {record!r}") from exc


def _check_image(image: Optional[np.ndarray], channels: int) -> None:
    if image is None:
        raise PreconditionError("图像缓冲区未初始化")
    if image.ndim not in (2, 3) or image.size == 0:
        raise PreconditionError(f"图像尺寸无效: {image.shape}")
    if image.dtype != np.uint8:
        raise PreconditionError(f"期望 uint8 图像，实际 {image.dtype}")
    actual = 1 if image.ndim == 2 else image.shape[2]
    if actual != channels:
        raise PreconditionError(f"期望 {channels} 通道图像，实际 {actual} 通道")
