"""帧源实现集合。"""

from __future__ import annotations

from domino_scorer.sources.base import (
    FrameSource,
    OpenCVCaptureSource,
    SourceConnectError,
    SourceError,
    SourceReadError,
)
from domino_scorer.sources.mock_source import MockImageSource

__all__ = [
    "FrameSource",
    "MockImageSource",
    "OpenCVCaptureSource",
    "SourceConnectError",
    "SourceError",
    "SourceReadError",
]
