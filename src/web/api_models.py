from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class DetectionOut(BaseModel):
    label: str
    confidence: float
    class_id: int
    center_x: float = Field(..., description="Normalized box center x")
    center_y: float = Field(..., description="Normalized box center y")
    width: float = Field(..., description="Normalized box width")
    height: float = Field(..., description="Normalized box height")


class ClassificationOut(BaseModel):
    index: int
    label: str
    confidence: float


class DetectionsResponse(BaseModel):
    task: Optional[str] = None
    timestamp: Optional[float] = Field(None, description="When the results were produced")
    detections: List[DetectionOut] = Field(default_factory=list)
    classifications: List[ClassificationOut] = Field(default_factory=list)


class StatusResponse(BaseModel):
    """
    Compact status for polling clients.
    """
    status: str = Field(..., description="Human-readable engine status")
    running: bool = Field(..., description="True while frames are being decoded")
    uptime_seconds: int
    last_frame_age_s: Optional[float] = Field(None, description="Seconds since last frame")
    frames_seen: int = 0
    frames_processed: int = 0
    frames_throttled: int = 0
    frames_dropped_busy: int = 0
    errors: int = 0
    infer_latency_ms: Optional[float] = None
    last_decode: Optional[Dict[str, object]] = None


class HealthResponse(BaseModel):
    model_loaded: bool
    task: Optional[str] = None
    model_path: Optional[str] = None
    input_shape: Optional[List[int]] = None
    output_shape: Optional[List[int]] = None
    layout: Optional[str] = None
    labels: int = 0
