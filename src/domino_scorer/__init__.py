"""骨牌点数识别：灰度 -> 高斯模糊 -> Canny -> Hough 圆检测 -> 计数与标注。"""

from __future__ import annotations

from domino_scorer.analyzer import AnalysisResult, DetectedCircle, DominoAnalyzer, run_pipeline
from domino_scorer.errors import (
    AnnotationError,
    PreconditionError,
    SessionStateError,
    UpstreamUnavailable,
)
from domino_scorer.frames import NativeFrame
from domino_scorer.settings import DetectorParams

__all__ = [
    "AnalysisResult",
    "AnnotationError",
    "DetectedCircle",
    "DetectorParams",
    "DominoAnalyzer",
    "NativeFrame",
    "PreconditionError",
    "SessionStateError",
    "UpstreamUnavailable",
    "run_pipeline",
]
