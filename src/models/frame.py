"""
FrameData model for captured video frames.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple, Union

import numpy as np


@dataclass(frozen=True)
class YuvPlanes:
    """
    A YUV 4:2:0 camera frame as three byte planes.

    Chroma planes are subsampled by two in both directions. The row and
    pixel strides describe how chroma samples are laid out, which covers
    both planar (I420, pixel stride 1) and semi-planar (NV12/NV21, pixel
    stride 2) buffers.

    Attributes:
        y: Luma plane bytes.
        u: U (Cb) plane bytes.
        v: V (Cr) plane bytes.
        width: Frame width in pixels.
        height: Frame height in pixels.
        y_row_stride: Bytes per luma row.
        uv_row_stride: Bytes per chroma row.
        uv_pixel_stride: Bytes between consecutive chroma samples in a row.
    """
    y: np.ndarray
    u: np.ndarray
    v: np.ndarray
    width: int
    height: int
    y_row_stride: int
    uv_row_stride: int
    uv_pixel_stride: int = 1

    @classmethod
    def from_i420(cls, buf: np.ndarray, width: int, height: int) -> "YuvPlanes":
        """
        Split a contiguous I420 buffer (as returned by Picamera2's "YUV420"
        format, shape (height * 3 / 2, width)) into planes.
        """
        flat = np.asarray(buf, dtype=np.uint8).reshape(-1)
        y_size = width * height
        c_w, c_h = width // 2, height // 2
        c_size = c_w * c_h
        return cls(
            y=flat[:y_size],
            u=flat[y_size:y_size + c_size],
            v=flat[y_size + c_size:y_size + 2 * c_size],
            width=width,
            height=height,
            y_row_stride=width,
            uv_row_stride=c_w,
            uv_pixel_stride=1,
        )


Pixels = Union[np.ndarray, YuvPlanes]


@dataclass
class FrameData:
    """
    Metadata and payload for a captured video frame.

    Attributes:
        frame: Either a BGR numpy array (OpenCV sources) or YuvPlanes.
        width: Frame width in pixels.
        height: Frame height in pixels.
        timestamp: Unix timestamp when frame was captured.
        frame_index: Sequential frame number since start.
        source: Identifier for the camera/video source.
    """
    frame: Pixels
    width: int
    height: int
    timestamp: float
    frame_index: int = 0
    source: Optional[str] = None

    @classmethod
    def from_numpy(
        cls,
        frame: np.ndarray,
        timestamp: float,
        frame_index: int = 0,
        source: Optional[str] = None,
    ) -> "FrameData":
        """Create FrameData from a numpy array."""
        h, w = frame.shape[:2]
        return cls(
            frame=frame,
            width=w,
            height=h,
            timestamp=timestamp,
            frame_index=frame_index,
            source=source,
        )

    @property
    def is_yuv(self) -> bool:
        return isinstance(self.frame, YuvPlanes)

    @property
    def size(self) -> Tuple[int, int]:
        """Return (width, height)."""
        return (self.width, self.height)
