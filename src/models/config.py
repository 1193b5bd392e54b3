"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union


@dataclass
class CameraConfig:
    """Camera configuration."""
    backend: str = "opencv"
    device_id: Union[int, str] = 0
    resolution: List[int] = field(default_factory=lambda: [640, 480])
    fps: int = 30
    rotate: int = 0
    flip_horizontal: bool = False
    flip_vertical: bool = False

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CameraConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            backend=d.get("backend", "opencv"),
            device_id=d.get("device_id", 0),
            resolution=d.get("resolution", [640, 480]),
            fps=d.get("fps", 30),
            rotate=d.get("rotate", 0) or 0,
            flip_horizontal=d.get("flip_horizontal", False),
            flip_vertical=d.get("flip_vertical", False),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "backend": self.backend,
            "device_id": self.device_id,
            "resolution": self.resolution,
            "fps": self.fps,
            "rotate": self.rotate,
            "flip_horizontal": self.flip_horizontal,
            "flip_vertical": self.flip_vertical,
        }


@dataclass
class ModelConfig:
    """Bundled model configuration."""
    path: str = "assets/models/model.tflite"
    labels_path: str = "assets/models/labels.txt"
    task: str = "detection"
    threads: int = 2

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ModelConfig":
        return cls(
            path=d.get("path", "assets/models/model.tflite"),
            labels_path=d.get("labels_path", "assets/models/labels.txt"),
            task=d.get("task", "detection"),
            threads=d.get("threads", 2),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "labels_path": self.labels_path,
            "task": self.task,
            "threads": self.threads,
        }


@dataclass
class DecoderConfig:
    """Output decoding thresholds and caps."""
    max_results: int = 3
    confidence_threshold: float = 0.5
    box_min: float = 0.01
    box_max: float = 1.0
    candidate_cap: Optional[int] = None
    class_scores: int = 3

    @property
    def box_size_bounds(self) -> Tuple[float, float]:
        return (self.box_min, self.box_max)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DecoderConfig":
        return cls(
            max_results=d.get("max_results", 3),
            confidence_threshold=d.get("confidence_threshold", 0.5),
            box_min=d.get("box_min", 0.01),
            box_max=d.get("box_max", 1.0),
            candidate_cap=d.get("candidate_cap"),
            class_scores=d.get("class_scores", 3),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "max_results": self.max_results,
            "confidence_threshold": self.confidence_threshold,
            "box_min": self.box_min,
            "box_max": self.box_max,
            "class_scores": self.class_scores,
        }
        if self.candidate_cap is not None:
            d["candidate_cap"] = self.candidate_cap
        return d


@dataclass
class ThrottleConfig:
    """Frame admission policy applied before inference."""
    every_n_frames: int = 1
    min_interval_ms: int = 0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ThrottleConfig":
        return cls(
            every_n_frames=d.get("every_n_frames", 1),
            min_interval_ms=d.get("min_interval_ms", 0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "every_n_frames": self.every_n_frames,
            "min_interval_ms": self.min_interval_ms,
        }


@dataclass
class WebConfig:
    """Status API configuration."""
    enabled: bool = True
    host: str = "0.0.0.0"
    port: int = 5000

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "WebConfig":
        return cls(
            enabled=d.get("enabled", True),
            host=d.get("host", "0.0.0.0"),
            port=d.get("port", 5000),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"enabled": self.enabled, "host": self.host, "port": self.port}


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    camera: CameraConfig = field(default_factory=CameraConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    decoder: DecoderConfig = field(default_factory=DecoderConfig)
    throttle: ThrottleConfig = field(default_factory=ThrottleConfig)
    web: WebConfig = field(default_factory=WebConfig)
    log_path: str = "logs/live_detect.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            camera=CameraConfig.from_dict(d.get("camera", {}) or {}),
            model=ModelConfig.from_dict(d.get("model", {}) or {}),
            decoder=DecoderConfig.from_dict(d.get("decoder", {}) or {}),
            throttle=ThrottleConfig.from_dict(d.get("throttle", {}) or {}),
            web=WebConfig.from_dict(d.get("web", {}) or {}),
            log_path=d.get("log_path", "logs/live_detect.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or logging)."""
        return {
            "camera": self.camera.to_dict(),
            "model": self.model.to_dict(),
            "decoder": self.decoder.to_dict(),
            "throttle": self.throttle.to_dict(),
            "web": self.web.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
