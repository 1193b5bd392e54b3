"""
Observation layer for pluggable frame sources.

Each source implements the ObservationSource interface and returns
FrameData objects carrying either BGR arrays or YUV planes.
"""

from typing import Any, Dict

from .base import CameraNotFound, ObservationSource, ObservationConfig
from .opencv_source import OpenCVSource, OpenCVSourceConfig
from .picamera2_source import Picamera2Source


def create_source_from_config(camera_cfg: Dict[str, Any]) -> ObservationSource:
    """Build the source selected by camera.backend."""
    backend = camera_cfg.get("backend", "opencv")
    if backend == "picamera2":
        return Picamera2Source(ObservationConfig.from_camera_config(camera_cfg, source_id="picamera2"))
    if backend == "opencv":
        return OpenCVSource(OpenCVSourceConfig.from_camera_config(camera_cfg))
    raise ValueError(f"Unknown camera backend: {backend}")


__all__ = [
    "CameraNotFound",
    "ObservationSource",
    "ObservationConfig",
    "OpenCVSource",
    "OpenCVSourceConfig",
    "Picamera2Source",
    "create_source_from_config",
]
