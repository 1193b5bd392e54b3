"""
Frame source interface.

A source hands the detection engine one FrameData per captured frame,
whether the pixels come from an OpenCV capture (BGR arrays) or a camera
stack that delivers YUV 4:2:0 planes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional, Tuple

from models.frame import FrameData


class CameraNotFound(RuntimeError):
    """No camera device is present, as opposed to one that failed to start."""


@dataclass
class ObservationConfig:
    """
    Settings shared by every frame source.

    Attributes:
        source_id: Name stamped on each frame (e.g., "back-camera").
        resolution: Requested (width, height); None keeps the device default.
        fps: Requested frame rate; None keeps the device default.
        rotate: Clockwise rotation in degrees (0, 90, 180, 270).
        flip_horizontal: Mirror left/right.
        flip_vertical: Mirror top/bottom.
        metadata: Backend-specific extras.
    """
    source_id: str = "default"
    resolution: Optional[Tuple[int, int]] = None
    fps: Optional[int] = None
    rotate: int = 0
    flip_horizontal: bool = False
    flip_vertical: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_camera_config(cls, camera_cfg: Dict[str, Any], source_id: str = "camera"):
        """Adapter: Build from the `camera` section of config.yaml."""
        resolution = camera_cfg.get("resolution")
        return cls(
            source_id=source_id,
            resolution=tuple(resolution) if resolution else None,
            fps=camera_cfg.get("fps"),
            rotate=camera_cfg.get("rotate", 0) or 0,
            flip_horizontal=camera_cfg.get("flip_horizontal", False),
            flip_vertical=camera_cfg.get("flip_vertical", False),
        )


class ObservationSource(ABC):
    """
    A camera or clip that yields frames.

    Call open() once, read() per frame until it returns None, then close().
    Sources are context managers and iterate their frames while open:

        with create_source_from_config(cfg) as source:
            for frame_data in source:
                engine.on_frame(frame_data)
    """

    def __init__(self, config: ObservationConfig):
        self._config = config
        self._is_open = False
        self._frame_index = 0

    @property
    def source_id(self) -> str:
        return self._config.source_id

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def frame_index(self) -> int:
        """Frames delivered since the last open()."""
        return self._frame_index

    @abstractmethod
    def open(self) -> None:
        """
        Start the device.

        Raises:
            CameraNotFound: No such device.
            RuntimeError: The device exists but could not be started.
            ImportError: The backend library is not installed.
        """

    @abstractmethod
    def read(self) -> Optional[FrameData]:
        """Next frame, or None at end of clip or on a capture error."""

    @abstractmethod
    def close(self) -> None:
        """Release the device. Idempotent."""

    def __enter__(self) -> "ObservationSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __iter__(self) -> Iterator[FrameData]:
        if not self._is_open:
            raise RuntimeError("Source must be open before iterating")
        return iter(self.read, None)
