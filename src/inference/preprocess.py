"""
Frame preprocessing: camera pixels -> model input tensor.

Steps:
- YUV 4:2:0 planes (or an OpenCV BGR frame) -> RGB uint8
- nearest-neighbor resize to the model input size
- normalization to float32 in [0, 1] (quantized inputs keep raw bytes)
- reshape to NHWC [1, H, W, 3]
"""

from __future__ import annotations

from typing import Sequence

import cv2
import numpy as np

from models.frame import FrameData, YuvPlanes

# BT.601 full-range coefficients applied to offset chroma.
_R_V = 1.370705
_G_U = 0.337633
_G_V = 0.698001
_B_U = 1.732446


def yuv420_to_rgb(planes: YuvPlanes) -> np.ndarray:
    """
    Convert YUV 4:2:0 planes to an (H, W, 3) RGB uint8 image.

    Each 2x2 block of luma shares one chroma sample, addressed with the
    plane's row and pixel strides. Channels are clamped to [0, 255] and
    truncated.
    """
    h, w = planes.height, planes.width
    rows = np.arange(h)[:, None]
    cols = np.arange(w)[None, :]

    y_index = rows * planes.y_row_stride + cols
    uv_index = (rows >> 1) * planes.uv_row_stride + (cols >> 1) * planes.uv_pixel_stride

    y = np.asarray(planes.y, dtype=np.uint8).reshape(-1)[y_index].astype(np.float32)
    u = np.asarray(planes.u, dtype=np.uint8).reshape(-1)[uv_index].astype(np.float32) - 128.0
    v = np.asarray(planes.v, dtype=np.uint8).reshape(-1)[uv_index].astype(np.float32) - 128.0

    r = y + _R_V * v
    g = y - _G_U * u - _G_V * v
    b = y + _B_U * u

    rgb = np.stack([r, g, b], axis=-1)
    return np.clip(rgb, 0, 255).astype(np.uint8)


def to_rgb(frame_data: FrameData) -> np.ndarray:
    """RGB uint8 pixels for any supported frame payload."""
    if isinstance(frame_data.frame, YuvPlanes):
        return yuv420_to_rgb(frame_data.frame)
    return cv2.cvtColor(frame_data.frame, cv2.COLOR_BGR2RGB)


def prepare_input(rgb: np.ndarray, input_shape: Sequence[int], dtype=np.float32) -> np.ndarray:
    """
    Resize and normalize an RGB image into an NHWC model input.

    Args:
        rgb: (H, W, 3) uint8 image.
        input_shape: Model input shape [1, height, width, 3].
        dtype: Model input dtype. Floating inputs are scaled to [0, 1];
            uint8 inputs keep raw pixel values; int8 inputs are shifted by -128.
    """
    if len(input_shape) != 4 or input_shape[3] != 3:
        raise ValueError(f"Expected an NHWC RGB input shape, got {list(input_shape)}")

    height, width = int(input_shape[1]), int(input_shape[2])
    resized = cv2.resize(rgb, (width, height), interpolation=cv2.INTER_NEAREST)

    dtype = np.dtype(dtype)
    if dtype == np.uint8:
        tensor = resized
    elif dtype == np.int8:
        tensor = (resized.astype(np.int16) - 128).astype(np.int8)
    else:
        tensor = resized.astype(np.float32) / 255.0

    return tensor.reshape(1, height, width, 3).astype(dtype, copy=False)
