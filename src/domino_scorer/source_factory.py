"""帧源工厂：统一构建 source 并输出可读错误。"""

from __future__ import annotations

from domino_scorer.sources.base import FrameSource, OpenCVCaptureSource
from domino_scorer.sources.mock_source import MockImageSource

SUPPORTED_SOURCE_MODES = ("mock", "capture")


class SourceFactoryError(ValueError):
    """源工厂可预期错误，带错误码便于映射提示文案。"""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


def build_source(mode: str, source_text: str, rotation_degrees: int = 0) -> FrameSource:
    """按模式构建帧源，并把常见错误转成清晰中文信息。"""

    normalized_mode = mode.strip().lower()
    source = source_text.strip()

    if normalized_mode not in SUPPORTED_SOURCE_MODES:
        raise SourceFactoryError(
            code="bad_mode",
            message=f"未知 source mode: {mode}（仅支持 mock/capture）",
        )

    if normalized_mode == "mock":
        if not source:
            raise SourceFactoryError(
                code="empty_source",
                message="mock 模式需要图片路径",
            )
        try:
            return MockImageSource(source, rotation_degrees=rotation_degrees)
        except FileNotFoundError as exc:
            raise SourceFactoryError(code="image_missing", message=str(exc)) from exc

    if not source:
        raise SourceFactoryError(
            code="empty_source",
            message="capture 模式需要摄像头编号/视频路径/流地址",
        )
    cap_source = parse_capture_source(source)
    try:
        return OpenCVCaptureSource(cap_source, rotation_degrees=rotation_degrees)
    except Exception as exc:
        raise SourceFactoryError(
            code="capture_open_failed",
            message=f"无法打开 capture 源（{source}）：{exc}",
        ) from exc


def parse_capture_source(source: str) -> str | int:
    """解析 capture 输入，允许非负整数编号或路径/URL。"""

    raw = source.strip()
    if raw.lstrip("+-").isdigit():
        value = int(raw)
        if value < 0:
            raise SourceFactoryError(
                code="capture_index_invalid",
                message=f"capture 摄像头编号无效: {value}（必须 >= 0）",
            )
        return value
    return raw


def map_source_factory_error(exc: Exception, *, mode: str) -> str:
    """把工厂错误映射为可直接展示的中文提示。"""

    if isinstance(exc, SourceFactoryError):
        prefix_map = {
            "empty_source": "源输入为空",
            "bad_mode": "模式错误",
            "image_missing": "图片不存在",
            "capture_index_invalid": "采集编号错误",
            "capture_open_failed": "采集源打开失败",
        }
        prefix = prefix_map.get(exc.code, "连接失败")
        return f"[{mode}] {prefix}: {exc.message}"
    return f"[{mode}] 连接失败: {exc}"
