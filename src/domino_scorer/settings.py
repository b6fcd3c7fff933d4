"""检测参数与运行设置：YAML 持久化 + 环境变量解析。"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Mapping

import yaml

DEFAULT_ANALYSIS_FPS = 16.0
MIN_ANALYSIS_FPS = 1.0
MAX_ANALYSIS_FPS = 60.0


@dataclass(frozen=True)
class DetectorParams:
    """流水线参数。默认值按标定距离下的点径调好，改动会改变检出行为。"""

    blur_kernel: int = 3
    blur_sigma: float = 1.0
    canny_low: float = 300.0
    canny_high: float = 500.0
    # Hough 累加器分辨率，1.0 表示与图像同分辨率
    dp: float = 1.0
    # 圆心最小间距，小于该值的重复检测会被合并
    min_distance: float = 20.0
    # param1: Hough 内部边缘梯度阈值；param2: 累加器票数阈值，越小圆越多（含误检）
    param1: float = 30.0
    param2: float = 18.0
    min_radius: int = 10
    max_radius: int = 20
    marker_color: tuple[int, int, int] = (0, 255, 0)


class SettingsStore:
    """读取/写入 detector.yaml。非法字段逐项回退默认值。"""

    def __init__(self, settings_path: str | Path = "config/detector.yaml") -> None:
        self.settings_path = Path(settings_path)

    def load(self) -> DetectorParams:
        if not self.settings_path.exists():
            return DetectorParams()

        with self.settings_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            return DetectorParams()
        return normalize_params(data)

    def save(self, params: DetectorParams) -> Path:
        normalized = normalize_params(asdict(params))
        payload = asdict(normalized)
        payload["marker_color"] = list(normalized.marker_color)
        self.settings_path.parent.mkdir(parents=True, exist_ok=True)
        with self.settings_path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(payload, f, allow_unicode=True, sort_keys=False)
        return self.settings_path


def normalize_params(data: Mapping[str, Any]) -> DetectorParams:
    """把松散的映射整理为合法的 DetectorParams。"""
    defaults = DetectorParams()
    values: dict[str, Any] = {}
    for item in fields(DetectorParams):
        default = getattr(defaults, item.name)
        raw = data.get(item.name)
        if item.name == "marker_color":
            values[item.name] = _normalize_color(raw, default)
        elif isinstance(default, int):
            values[item.name] = _positive_number(raw, default, int)
        else:
            values[item.name] = _positive_number(raw, default, float)

    if values["blur_kernel"] % 2 == 0:
        values["blur_kernel"] = defaults.blur_kernel
    if values["canny_low"] >= values["canny_high"]:
        values["canny_low"] = defaults.canny_low
        values["canny_high"] = defaults.canny_high
    if values["min_radius"] > values["max_radius"]:
        values["min_radius"] = defaults.min_radius
        values["max_radius"] = defaults.max_radius
    return DetectorParams(**values)


def read_analysis_fps(env: Mapping[str, str] | None = None) -> float:
    """读取 DOMINO_SCORER_FPS，非法或越界回退默认值。"""

    source = env if env is not None else os.environ
    raw = source.get("DOMINO_SCORER_FPS", "").strip()
    if not raw:
        return DEFAULT_ANALYSIS_FPS
    try:
        fps = float(raw)
    except ValueError:
        return DEFAULT_ANALYSIS_FPS
    if fps < MIN_ANALYSIS_FPS or fps > MAX_ANALYSIS_FPS:
        return DEFAULT_ANALYSIS_FPS
    return fps


def _positive_number(value: object, default: Any, cast: type) -> Any:
    if value is None or isinstance(value, bool):
        return default
    try:
        number = cast(value)
    except (TypeError, ValueError):
        return default
    if number <= 0:
        return default
    return number


def _normalize_color(value: object, default: tuple[int, int, int]) -> tuple[int, int, int]:
    if not isinstance(value, (list, tuple)) or len(value) != 3:
        return default
    try:
        channels = tuple(int(c) for c in value)
    except (TypeError, ValueError):
        return default
    if any(c < 0 or c > 255 for c in channels):
        return default
    return channels  # type: ignore[return-value]
