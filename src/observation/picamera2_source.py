"""
Picamera2-based observation source.

Streams raw YUV 4:2:0 frames from a Raspberry Pi CSI camera, the same
format a phone camera stream delivers, and leaves color conversion to the
preprocessing stage.

Requirements:
  - Raspberry Pi with camera module
  - Picamera2 installed: sudo apt install -y python3-picamera2
"""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

from models.frame import FrameData, YuvPlanes
from .base import CameraNotFound, ObservationSource, ObservationConfig


class Picamera2Source(ObservationSource):
    """
    Observation source yielding YuvPlanes frames.

    Flips (and 180 degree rotation) are applied by the sensor pipeline;
    90/270 degree rotation is not available for YUV output.
    """

    def __init__(self, config: ObservationConfig):
        super().__init__(config)
        self._picam2: Any = None

    def open(self) -> None:
        if self._is_open:
            return

        try:
            from picamera2 import Picamera2  # type: ignore
            from libcamera import Transform  # type: ignore
        except ImportError as e:
            raise ImportError(
                "Picamera2 is not available. This backend only works on Raspberry Pi OS. "
                "Install with `sudo apt install -y python3-picamera2` or use backend 'opencv'."
            ) from e

        if not Picamera2.global_camera_info():
            raise CameraNotFound("libcamera reports no attached cameras")

        cfg = self._config
        hflip = cfg.flip_horizontal
        vflip = cfg.flip_vertical
        if cfg.rotate == 180:
            hflip, vflip = not hflip, not vflip
        elif cfg.rotate in (90, 270):
            logging.warning(f"Picamera2Source: rotate={cfg.rotate} not supported for YUV frames, ignoring")

        resolution = cfg.resolution or (640, 480)
        fps = cfg.fps or 30

        self._picam2 = Picamera2()
        video_config = self._picam2.create_video_configuration(
            main={"size": resolution, "format": "YUV420"},
            controls={"FrameRate": fps},
            transform=Transform(hflip=int(hflip), vflip=int(vflip)),
        )
        self._picam2.configure(video_config)
        self._picam2.start()

        self._is_open = True
        self._frame_index = 0
        logging.info(
            f"Picamera2Source opened: source_id={self.source_id}, "
            f"resolution={resolution}, fps={fps}"
        )

    def read(self) -> Optional[FrameData]:
        if not self._is_open or self._picam2 is None:
            return None

        try:
            buf = self._picam2.capture_array("main")
        except RuntimeError as e:
            logging.error(f"Error capturing frame from Picamera2: {e}")
            return None

        # I420 arrives as a (height * 3 / 2, width) byte array.
        width = buf.shape[1]
        height = buf.shape[0] * 2 // 3
        self._frame_index += 1
        return FrameData(
            frame=YuvPlanes.from_i420(buf, width, height),
            width=width,
            height=height,
            timestamp=time.time(),
            frame_index=self._frame_index,
            source=self.source_id,
        )

    def close(self) -> None:
        if self._picam2 is not None:
            self._picam2.stop()
            self._picam2.close()
            self._picam2 = None
        self._is_open = False
        logging.info(f"Picamera2Source closed: source_id={self.source_id}")
