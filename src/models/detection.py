"""
Detection models for decoded inference results.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

import numpy as np


@dataclass(frozen=True)
class BoundingBox:
    """
    A bounding box in pixel coordinates.

    Attributes:
        x1: Left edge x coordinate.
        y1: Top edge y coordinate.
        x2: Right edge x coordinate.
        y2: Bottom edge y coordinate.
    """
    x1: float
    y1: float
    x2: float
    y2: float

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    @property
    def area(self) -> float:
        return self.width * self.height

    def as_int_tuple(self) -> Tuple[int, int, int, int]:
        """Return as integer (x1, y1, x2, y2) tuple."""
        return (int(self.x1), int(self.y1), int(self.x2), int(self.y2))


@dataclass(frozen=True)
class DetectionRecord:
    """
    A single decoded detection.

    The box is normalized to the model input, center-based, so values are
    image-relative in [0, 1] for well-formed model output.

    Attributes:
        center_x: Box center x (normalized).
        center_y: Box center y (normalized).
        width: Box width (normalized).
        height: Box height (normalized).
        confidence: Final score used for ranking.
        class_id: Index into the label table.
        label: Resolved class name.
    """
    center_x: float
    center_y: float
    width: float
    height: float
    confidence: float
    class_id: int = 0
    label: str = "Object"

    def to_pixel_box(self, frame_width: int, frame_height: int) -> BoundingBox:
        """Scale to pixel corners for a frame of the given size, clamped to the frame."""
        x1 = (self.center_x - self.width / 2) * frame_width
        y1 = (self.center_y - self.height / 2) * frame_height
        x2 = (self.center_x + self.width / 2) * frame_width
        y2 = (self.center_y + self.height / 2) * frame_height
        return BoundingBox(
            x1=min(max(x1, 0.0), float(frame_width)),
            y1=min(max(y1, 0.0), float(frame_height)),
            x2=min(max(x2, 0.0), float(frame_width)),
            y2=min(max(y2, 0.0), float(frame_height)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "center_x": self.center_x,
            "center_y": self.center_y,
            "width": self.width,
            "height": self.height,
            "confidence": self.confidence,
            "class_id": self.class_id,
            "label": self.label,
        }

    def to_numpy(self) -> np.ndarray:
        """Convert to numpy array [cx, cy, w, h, confidence, class_id]."""
        return np.array([
            self.center_x, self.center_y, self.width, self.height,
            self.confidence, self.class_id,
        ])


def records_to_numpy(records: List[DetectionRecord]) -> np.ndarray:
    """
    Adapter: Convert decoded records to a numpy array.

    Returns:
        Array of shape (N, 6) with [cx, cy, w, h, confidence, class_id].
    """
    if not records:
        return np.zeros((0, 6))
    return np.array([r.to_numpy() for r in records])


@dataclass(frozen=True)
class ClassificationResult:
    """One ranked entry of a classifier output vector."""
    index: int
    label: str
    confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return {"index": self.index, "label": self.label, "confidence": self.confidence}
