"""骨牌点数识别的异常分类。"""

from __future__ import annotations


class PreconditionError(ValueError):
    """调用时序或缓冲区状态不满足前置条件，本帧分析失败。"""


class AnnotationError(ValueError):
    """单个检测记录无法绘制；只跳过该圆，不影响本帧计数。"""


class UpstreamUnavailable(RuntimeError):
    """上游帧源不可用（权限被拒、设备占用、流中断等）。

    分析核心不做重试，由帧源/会话协作者决定是否重连或终止。
    """


class SessionStateError(RuntimeError):
    """会话生命周期使用错误：start() 之前或 stop() 之后提交帧。"""
