"""
Pipeline module for the live detection service.

The pipeline orchestrates the per-frame flow:
- Frame admission (throttle + single in-flight frame)
- Preprocessing and inference
- Output decoding and result publishing
"""

from .engine import DetectionEngine, EngineStats
from .gate import FrameThrottle, InFlightGuard

__all__ = [
    "DetectionEngine",
    "EngineStats",
    "FrameThrottle",
    "InFlightGuard",
]
