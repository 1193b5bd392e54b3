"""
Tests for frame preprocessing.
"""

import numpy as np
import pytest

from inference.preprocess import prepare_input, to_rgb, yuv420_to_rgb
from models.frame import FrameData, YuvPlanes


def _planes(width, height, y, u, v, uv_pixel_stride=1):
    c_w, c_h = width // 2, height // 2
    uv_row_stride = c_w * uv_pixel_stride
    return YuvPlanes(
        y=np.full(width * height, y, dtype=np.uint8),
        u=np.full(uv_row_stride * c_h, u, dtype=np.uint8),
        v=np.full(uv_row_stride * c_h, v, dtype=np.uint8),
        width=width,
        height=height,
        y_row_stride=width,
        uv_row_stride=uv_row_stride,
        uv_pixel_stride=uv_pixel_stride,
    )


class TestYuvToRgb:
    def test_neutral_chroma_is_gray(self):
        rgb = yuv420_to_rgb(_planes(4, 4, y=100, u=128, v=128))
        assert rgb.shape == (4, 4, 3)
        assert rgb.dtype == np.uint8
        assert np.all(rgb == 100)

    def test_red_chroma(self):
        """V above neutral pushes red up and green down."""
        rgb = yuv420_to_rgb(_planes(2, 2, y=100, u=128, v=228))
        r, g, b = rgb[0, 0]
        assert r == int(100 + 1.370705 * 100)
        assert g == int(100 - 0.698001 * 100)
        assert b == 100

    def test_channels_clamped(self):
        rgb = yuv420_to_rgb(_planes(2, 2, y=250, u=255, v=255))
        assert rgb[0, 0, 0] == 255
        assert rgb[0, 0, 2] == 255

    def test_chroma_shared_by_2x2_block(self):
        planes = _planes(4, 2, y=100, u=128, v=128)
        v = planes.v.copy()
        v[1] = 228  # chroma for columns 2-3
        planes = YuvPlanes(
            y=planes.y, u=planes.u, v=v, width=4, height=2,
            y_row_stride=4, uv_row_stride=2, uv_pixel_stride=1,
        )

        rgb = yuv420_to_rgb(planes)

        assert np.all(rgb[:, :2, 0] == 100)
        assert np.all(rgb[:, 2:, 0] > 200)

    def test_semi_planar_stride(self):
        rgb = yuv420_to_rgb(_planes(4, 4, y=80, u=128, v=128, uv_pixel_stride=2))
        assert np.all(rgb == 80)

    def test_from_i420_buffer(self):
        width, height = 4, 2
        buf = np.concatenate([
            np.full(width * height, 60, dtype=np.uint8),
            np.full(2, 128, dtype=np.uint8),
            np.full(2, 128, dtype=np.uint8),
        ]).reshape(3, 4)

        planes = YuvPlanes.from_i420(buf, width, height)

        assert planes.uv_row_stride == 2
        assert np.all(yuv420_to_rgb(planes) == 60)


class TestToRgb:
    def test_bgr_frame_is_swapped(self):
        frame = np.zeros((2, 2, 3), dtype=np.uint8)
        frame[..., 0] = 255  # blue in BGR
        rgb = to_rgb(FrameData.from_numpy(frame, timestamp=0.0))
        assert np.all(rgb[..., 2] == 255)
        assert np.all(rgb[..., 0] == 0)

    def test_yuv_frame(self):
        planes = _planes(2, 2, y=30, u=128, v=128)
        frame = FrameData(frame=planes, width=2, height=2, timestamp=0.0)
        assert np.all(to_rgb(frame) == 30)


class TestPrepareInput:
    def test_float_input_normalized(self):
        rgb = np.full((480, 640, 3), 255, dtype=np.uint8)
        tensor = prepare_input(rgb, (1, 320, 320, 3), np.float32)
        assert tensor.shape == (1, 320, 320, 3)
        assert tensor.dtype == np.float32
        assert tensor.max() == pytest.approx(1.0)

    def test_uint8_input_keeps_raw_values(self):
        rgb = np.full((10, 10, 3), 200, dtype=np.uint8)
        tensor = prepare_input(rgb, [1, 4, 4, 3], np.uint8)
        assert tensor.dtype == np.uint8
        assert np.all(tensor == 200)

    def test_int8_input_shifted(self):
        rgb = np.full((10, 10, 3), 200, dtype=np.uint8)
        tensor = prepare_input(rgb, [1, 4, 4, 3], np.int8)
        assert tensor.dtype == np.int8
        assert np.all(tensor == 72)

    def test_nearest_resize_keeps_pixel_values(self):
        rgb = np.zeros((4, 4, 3), dtype=np.uint8)
        rgb[:, 2:] = 255
        tensor = prepare_input(rgb, [1, 2, 2, 3], np.uint8)
        assert set(np.unique(tensor)) <= {0, 255}

    def test_rejects_non_nhwc_shape(self):
        rgb = np.zeros((4, 4, 3), dtype=np.uint8)
        with pytest.raises(ValueError):
            prepare_input(rgb, [1, 3, 224, 224])
        with pytest.raises(ValueError):
            prepare_input(rgb, [224, 224, 3])
