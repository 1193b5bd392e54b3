"""
Frame source backed by cv2.VideoCapture.

device_id selects a webcam by index, or a recorded clip by path. Clips are
handy for replaying a scene through the detector on a desktop.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import cv2
import numpy as np

from models.frame import FrameData
from .base import CameraNotFound, ObservationSource, ObservationConfig

# Seconds between open attempts is 2**attempt, capped here.
MAX_RETRY_WAIT_S = 10


@dataclass
class OpenCVSourceConfig(ObservationConfig):
    """
    OpenCV capture settings.

    Attributes:
        device_id: Webcam index, or path of a video file.
        buffer_size: Driver-side frame queue; 1 keeps the newest frame only.
        max_retries: Open attempts before giving up.
    """
    device_id: Union[int, str] = 0
    buffer_size: int = 1
    max_retries: int = 3

    @classmethod
    def from_camera_config(cls, camera_cfg: Dict[str, Any], source_id: str = "camera") -> "OpenCVSourceConfig":
        base = ObservationConfig.from_camera_config(camera_cfg, source_id)
        extra = {
            "device_id": camera_cfg.get("device_id", 0),
            "buffer_size": camera_cfg.get("buffer_size", 1),
            "max_retries": camera_cfg.get("max_retries", 3),
        }
        return cls(**{**base.__dict__, **extra})


def apply_transforms(frame: np.ndarray, cfg: ObservationConfig) -> np.ndarray:
    """Rotate, then mirror, a BGR frame as configured."""
    rotations = {
        90: cv2.ROTATE_90_CLOCKWISE,
        180: cv2.ROTATE_180,
        270: cv2.ROTATE_90_COUNTERCLOCKWISE,
    }
    if cfg.rotate in rotations:
        frame = cv2.rotate(frame, rotations[cfg.rotate])

    # cv2.flip codes: 1 mirrors columns, 0 mirrors rows, -1 both.
    if cfg.flip_horizontal and cfg.flip_vertical:
        frame = cv2.flip(frame, -1)
    elif cfg.flip_horizontal:
        frame = cv2.flip(frame, 1)
    elif cfg.flip_vertical:
        frame = cv2.flip(frame, 0)
    return frame


class OpenCVSource(ObservationSource):
    """
    BGR frames from a webcam or video file.

    Example:
        source = OpenCVSource(OpenCVSourceConfig(device_id=0, resolution=(640, 480)))
        with source:
            for frame_data in source:
                engine.on_frame(frame_data)
    """

    def __init__(self, config: OpenCVSourceConfig):
        super().__init__(config)
        self._cv_config = config
        self._cap: Optional[cv2.VideoCapture] = None

    @property
    def device_id(self) -> Union[int, str]:
        return self._cv_config.device_id

    @property
    def is_file(self) -> bool:
        return isinstance(self.device_id, str) and os.path.exists(self.device_id)

    def open(self) -> None:
        if self._is_open:
            return

        self._cap = self._open_capture()
        self._configure_capture(self._cap)
        self._is_open = True
        self._frame_index = 0
        logging.info(
            f"Camera source {self.source_id} ready: device={self.device_id} "
            f"resolution={self._cv_config.resolution}"
        )

    def _open_capture(self) -> cv2.VideoCapture:
        device = self.device_id
        if isinstance(device, str) and "://" not in device and not os.path.exists(device):
            raise CameraNotFound(f"Video file not found: {device}")

        attempts = max(1, self._cv_config.max_retries)
        for attempt in range(attempts):
            if attempt:
                wait_s = min(2 ** attempt, MAX_RETRY_WAIT_S)
                logging.warning(
                    f"Could not open device {self.device_id}; retry {attempt + 1}/{attempts} in {wait_s}s"
                )
                time.sleep(wait_s)
            cap = cv2.VideoCapture(self.device_id)
            if cap.isOpened():
                return cap
            cap.release()
        # VideoCapture cannot tell a missing index from a busy one; missing is the usual case.
        if isinstance(device, int):
            raise CameraNotFound(f"No camera at index {device} ({attempts} attempts)")
        raise RuntimeError(f"Could not open device {device} ({attempts} attempts)")

    def _configure_capture(self, cap: cv2.VideoCapture) -> None:
        # Files play at their recorded size and rate.
        if not isinstance(self.device_id, int):
            return
        cfg = self._cv_config
        if cfg.resolution:
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, cfg.resolution[0])
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, cfg.resolution[1])
        if cfg.fps:
            cap.set(cv2.CAP_PROP_FPS, cfg.fps)
        cap.set(cv2.CAP_PROP_BUFFERSIZE, cfg.buffer_size)

    def read(self) -> Optional[FrameData]:
        if self._cap is None or not self._is_open:
            return None

        ok, frame = self._cap.read()
        if not ok or frame is None:
            if self.is_file:
                logging.info(f"Video file {self.device_id} finished")
            else:
                logging.warning(f"No frame from device {self.device_id}")
            return None

        self._frame_index += 1
        return FrameData.from_numpy(
            apply_transforms(frame, self._cv_config),
            timestamp=time.time(),
            frame_index=self._frame_index,
            source=self.source_id,
        )

    def close(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        if self._is_open:
            logging.info(f"Camera source {self.source_id} closed")
        self._is_open = False
