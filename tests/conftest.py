"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
camera:
  backend: "opencv"
  device_id: 0
  resolution: [640, 480]
  fps: 30

model:
  path: "assets/models/model.tflite"
  labels_path: "assets/models/labels.txt"
  task: "detection"
  threads: 2

decoder:
  max_results: 3
  confidence_threshold: 0.5
  box_min: 0.01
  box_max: 1.0

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "camera": {
            "backend": "opencv",
            "device_id": 0,
            "resolution": [1280, 720],
            "fps": 30,
        },
        "model": {
            "path": "assets/models/model.tflite",
            "labels_path": "assets/models/labels.txt",
            "task": "detection",
            "threads": 2,
        },
        "decoder": {
            "max_results": 3,
            "confidence_threshold": 0.5,
            "box_min": 0.01,
            "box_max": 1.0,
        },
        "throttle": {
            "every_n_frames": 1,
            "min_interval_ms": 0,
        },
        "web": {
            "enabled": True,
            "host": "0.0.0.0",
            "port": 5000,
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }


@pytest.fixture
def labels_file(tmp_path):
    """A small label file with a comment and a blank line."""
    path = tmp_path / "labels.txt"
    path.write_text("# coco subset\nperson\n\nbicycle\ncar\n")
    return path


def channel_major_buffer(rows, detection_count):
    """
    Build a flat channel-major buffer from per-candidate value rows.

    rows[i] holds the values of candidate i; candidates past len(rows) are
    zero, which the decoder rejects on box size.
    """
    value_count = len(rows[0])
    buf = np.zeros((value_count, detection_count), dtype=np.float32)
    for i, row in enumerate(rows):
        buf[:, i] = row
    return buf.reshape(-1)


def detection_major_buffer(rows, detection_count):
    """Flat detection-major buffer; same conventions as channel_major_buffer."""
    value_count = len(rows[0])
    buf = np.zeros((detection_count, value_count), dtype=np.float32)
    for i, row in enumerate(rows):
        buf[i, :] = row
    return buf.reshape(-1)
