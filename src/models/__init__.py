"""
Typed models for the live detection service.

Frames flow in as FrameData, decoded results flow out as DetectionRecord
(detection models) or ClassificationResult (classifier models).
"""

from .frame import FrameData, YuvPlanes
from .detection import BoundingBox, ClassificationResult, DetectionRecord, records_to_numpy
from .config import (
    Config,
    CameraConfig,
    ModelConfig,
    DecoderConfig,
    ThrottleConfig,
    WebConfig,
)

__all__ = [
    # Frame
    "FrameData",
    "YuvPlanes",
    # Results
    "BoundingBox",
    "ClassificationResult",
    "DetectionRecord",
    "records_to_numpy",
    # Config
    "Config",
    "CameraConfig",
    "ModelConfig",
    "DecoderConfig",
    "ThrottleConfig",
    "WebConfig",
]
