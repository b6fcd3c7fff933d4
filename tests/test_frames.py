import numpy as np
import pytest

from domino_scorer.errors import PreconditionError
from domino_scorer.frames import NativeFrame, YuvToRgbConverter, to_rgb_frame


def test_from_rgb_splits_i420_planes() -> None:
    frame = NativeFrame.from_rgb(np.zeros((48, 64, 3), dtype=np.uint8), rotation_degrees=180)

    assert (frame.width, frame.height) == (64, 48)
    assert frame.y.shape == (48, 64)
    assert frame.u.shape == (24, 32)
    assert frame.v.shape == (24, 32)
    assert frame.rotation_degrees == 180
    assert frame.has_planes()


def test_from_rgb_rejects_odd_dimensions() -> None:
    with pytest.raises(PreconditionError, match="偶数"):
        NativeFrame.from_rgb(np.zeros((47, 64, 3), dtype=np.uint8))


def test_converter_writes_into_shared_buffer() -> None:
    gray = np.full((48, 64, 3), 128, dtype=np.uint8)
    output = np.zeros((48, 64, 3), dtype=np.uint8)

    returned = to_rgb_frame(NativeFrame.from_rgb(gray), output)

    assert returned is output
    assert np.allclose(output.astype(int), 128, atol=3)


def test_converter_requires_allocated_buffer() -> None:
    frame = NativeFrame.from_rgb(np.zeros((48, 64, 3), dtype=np.uint8))
    with pytest.raises(PreconditionError, match="尚未分配"):
        YuvToRgbConverter().yuv_to_rgb(frame, None)


def test_converter_rejects_mismatched_buffer() -> None:
    frame = NativeFrame.from_rgb(np.zeros((48, 64, 3), dtype=np.uint8))
    with pytest.raises(PreconditionError, match="尺寸不匹配"):
        YuvToRgbConverter().yuv_to_rgb(frame, np.zeros((64, 48, 3), dtype=np.uint8))


def test_converter_rejects_truncated_plane_data() -> None:
    frame = NativeFrame.from_rgb(np.zeros((48, 64, 3), dtype=np.uint8))
    frame.u = frame.u[:10]
    with pytest.raises(PreconditionError, match="平面数据大小"):
        YuvToRgbConverter().yuv_to_rgb(frame, np.zeros((48, 64, 3), dtype=np.uint8))
