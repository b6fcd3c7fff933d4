"""命令行入口。"""

from __future__ import annotations

import argparse
import logging
from typing import Optional, Sequence


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="骨牌点数识别 CLI")
    parser.add_argument("--settings", default="config/detector.yaml", help="检测参数 YAML 路径")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="日志级别",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    image = sub.add_parser("image", help="分析单张图片并输出点数")
    image.add_argument("--image", required=True, help="图片路径")
    image.add_argument("--output", default=None, help="标注结果输出路径（可选）")

    mock = sub.add_parser("mock", help="使用本地图片重复模拟帧源，同步执行检测")
    mock.add_argument("--image", required=True, help="图片路径")
    mock.add_argument("--fps", type=float, default=None, help="处理帧率（默认读 DOMINO_SCORER_FPS）")
    mock.add_argument("--max-frames", type=int, default=30, help="最多处理帧数")

    capture = sub.add_parser("capture", help="从摄像头/视频读取，后台线程分析（仅保留最新帧）")
    capture.add_argument("--source", required=True, help="摄像头编号、视频路径或流地址")
    capture.add_argument("--rotation", type=int, default=0, help="帧旋转角元数据")
    capture.add_argument("--fps", type=float, default=None, help="读取帧率（默认读 DOMINO_SCORER_FPS）")
    capture.add_argument("--max-frames", type=int, default=None, help="最多读取帧数")
    return parser


def validate_source_mode_args(mode: str, source: str, allow_empty_source: bool = False) -> str:
    """校验 source mode 与源输入是否匹配，返回规范化后的模式名。"""

    from domino_scorer.source_factory import SUPPORTED_SOURCE_MODES

    normalized = (mode or "").strip().lower()
    if normalized not in SUPPORTED_SOURCE_MODES:
        raise ValueError(f"未知 source mode: {mode}（仅支持 {'/'.join(SUPPORTED_SOURCE_MODES)}）")
    if allow_empty_source or (source or "").strip():
        return normalized
    if normalized == "mock":
        raise ValueError("mock 模式需要图片路径（--image）")
    raise ValueError("capture 模式需要 --source（摄像头编号/视频路径/流地址）")


def run_image(args: argparse.Namespace) -> int:
    # 按需导入，避免在仅查看 --help 时要求完整三方依赖。
    import cv2

    from domino_scorer.analyzer import DominoAnalyzer
    from domino_scorer.source_factory import build_source

    validate_source_mode_args("mock", args.image)
    source = build_source("mock", args.image)
    analyzer = DominoAnalyzer(params=_load_params(args.settings))
    result = analyzer.analyze(source.read())
    print(f"pips={result.pip_count}")

    if args.output:
        annotated = cv2.cvtColor(result.annotated_frame, cv2.COLOR_RGB2BGR)
        if not cv2.imwrite(args.output, annotated):
            raise OSError(f"无法写出标注图片: {args.output}")
        print(f"已保存标注结果: {args.output}")
    return 0


def run_mock(args: argparse.Namespace) -> int:
    from domino_scorer.analyzer import DominoAnalyzer
    from domino_scorer.frame_clock import FrameClock
    from domino_scorer.pipeline import Pipeline
    from domino_scorer.source_factory import build_source

    validate_source_mode_args("mock", args.image)
    source = build_source("mock", args.image)
    analyzer = DominoAnalyzer(params=_load_params(args.settings))
    clock = FrameClock(fps=_resolve_fps(args.fps))

    print(f"启动 mock 模式: image={args.image}")
    try:
        final_count = Pipeline(source, analyzer, clock).run(max_frames=args.max_frames)
    finally:
        source.close()
    print(f"count={final_count}")
    return 0


def run_capture(args: argparse.Namespace) -> int:
    from domino_scorer.analyzer import AnalysisResult, DominoAnalyzer
    from domino_scorer.errors import SessionStateError
    from domino_scorer.frame_clock import FrameClock
    from domino_scorer.pipeline import feed_session
    from domino_scorer.session import CaptureSession
    from domino_scorer.source_factory import build_source
    from domino_scorer.sources.base import SourceError

    validate_source_mode_args("capture", args.source)
    source = build_source("capture", args.source, rotation_degrees=args.rotation)
    analyzer = DominoAnalyzer(params=_load_params(args.settings))

    def on_result(result: AnalysisResult) -> None:
        print(f"pips={result.pip_count} rotation={result.rotation_degrees}")

    session = CaptureSession(analyzer, on_result)
    session.start()
    exit_code = 0
    try:
        feed_session(source, session, FrameClock(fps=_resolve_fps(args.fps)), args.max_frames)
    except SourceError as exc:
        print(f"帧源不可用: {exc}")
        exit_code = 1
    except SessionStateError as exc:
        # 分析线程已退出，真实异常由 stop() 重新抛出
        print(f"分析会话已终止: {exc}")
    except KeyboardInterrupt:
        print("已中断")
    finally:
        source.close()
        final_count = session.stop()

    print(
        f"count={final_count} analyzed={session.analyzed_frames} "
        f"dropped={session.dropped_frames} failed={session.failed_frames}"
    )
    return exit_code


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    from domino_scorer.errors import PreconditionError
    from domino_scorer.source_factory import SourceFactoryError, map_source_factory_error

    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    try:
        if args.command == "image":
            return run_image(args)
        if args.command == "mock":
            return run_mock(args)
        if args.command == "capture":
            return run_capture(args)
    except SourceFactoryError as exc:
        print(map_source_factory_error(exc, mode=args.command))
        return 2
    except PreconditionError as exc:
        print(f"帧无效: {exc}")
        return 1
    except ValueError as exc:
        parser.error(str(exc))
    return 0


def _load_params(settings_path: str):
    from domino_scorer.settings import SettingsStore

    return SettingsStore(settings_path).load()


def _resolve_fps(value: float | None) -> float:
    from domino_scorer.settings import read_analysis_fps

    if value is not None and value > 0:
        return value
    return read_analysis_fps()


if __name__ == "__main__":
    raise SystemExit(main())
