"""
Tests for result and frame models.
"""

import dataclasses

import numpy as np
import pytest

from models import BoundingBox, DetectionRecord, FrameData, records_to_numpy


class TestBoundingBox:
    def test_dimensions(self):
        box = BoundingBox(x1=10, y1=20, x2=50, y2=80)
        assert box.width == 40
        assert box.height == 60
        assert box.area == 2400
        assert box.as_int_tuple() == (10, 20, 50, 80)


class TestDetectionRecord:
    def test_defaults(self):
        rec = DetectionRecord(center_x=0.5, center_y=0.5, width=0.2, height=0.2, confidence=0.9)
        assert rec.class_id == 0
        assert rec.label == "Object"

    def test_immutable(self):
        rec = DetectionRecord(0.5, 0.5, 0.2, 0.2, 0.9)
        with pytest.raises(dataclasses.FrozenInstanceError):
            rec.confidence = 0.1

    def test_to_pixel_box(self):
        rec = DetectionRecord(center_x=0.5, center_y=0.5, width=0.5, height=0.25, confidence=0.9)
        box = rec.to_pixel_box(640, 480)
        assert box.x1 == pytest.approx(160)
        assert box.x2 == pytest.approx(480)
        assert box.y1 == pytest.approx(180)
        assert box.y2 == pytest.approx(300)

    def test_to_pixel_box_clamped(self):
        rec = DetectionRecord(center_x=0.05, center_y=0.95, width=0.2, height=0.2, confidence=0.9)
        box = rec.to_pixel_box(100, 100)
        assert box.x1 == 0.0
        assert box.y2 == 100.0

    def test_to_dict(self):
        rec = DetectionRecord(0.1, 0.2, 0.3, 0.4, 0.9, class_id=2, label="car")
        d = rec.to_dict()
        assert d["label"] == "car"
        assert d["class_id"] == 2
        assert d["center_y"] == 0.2

    def test_records_to_numpy(self):
        recs = [DetectionRecord(0.1, 0.2, 0.3, 0.4, 0.9, class_id=2)]
        arr = records_to_numpy(recs)
        assert arr.shape == (1, 6)
        assert arr[0, 5] == 2
        assert records_to_numpy([]).shape == (0, 6)


class TestFrameData:
    def test_from_numpy(self):
        frame = np.zeros((480, 640, 3), dtype=np.uint8)
        data = FrameData.from_numpy(frame, timestamp=1.5, frame_index=3, source="cam")
        assert data.size == (640, 480)
        assert data.frame_index == 3
        assert data.is_yuv is False
