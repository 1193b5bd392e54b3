"""
Tests for the detection engine with a fake inference backend.
"""

import threading
from unittest.mock import MagicMock

import numpy as np
import pytest

from conftest import channel_major_buffer
from models.config import DecoderConfig, ModelConfig
from models.detection import ClassificationResult, DetectionRecord
from models.frame import FrameData
from observation import CameraNotFound
from pipeline.engine import (
    STATUS_CAMERA_NO_MODEL,
    STATUS_MODEL_LOADED,
    STATUS_NO_CAMERA,
    STATUS_NO_RESULTS,
    STATUS_RUNNING,
    DetectionEngine,
)
from pipeline.gate import FrameThrottle


class FakeModel:
    """Stands in for TFLiteEngine: fixed shapes, canned output."""

    def __init__(self, output, input_shape=(1, 4, 4, 3)):
        self.input_shape = input_shape
        self.input_dtype = np.dtype(np.float32)
        self.output_shape = tuple(np.asarray(output).shape)
        self.output = np.asarray(output, dtype=np.float32)
        self.inputs = []
        self.closed = False

    def run(self, tensor):
        self.inputs.append(tensor)
        return self.output

    def close(self):
        self.closed = True


def _frame(index=1, ts=100.0):
    return FrameData.from_numpy(np.zeros((8, 8, 3), dtype=np.uint8), timestamp=ts, frame_index=index)


def _engine(model, labels_file, task="detection", throttle=None, state=None, **kwargs):
    model_cfg = ModelConfig(path="model.tflite", labels_path=str(labels_file), task=task)
    return DetectionEngine(
        model_cfg,
        DecoderConfig(),
        throttle=throttle,
        state=state,
        engine_factory=lambda cfg: model,
        **kwargs,
    )


@pytest.fixture
def detection_output():
    rows = [[0.5, 0.5, 0.2, 0.2, 0.1, 0.9, 0.1]]
    return channel_major_buffer(rows, 20).reshape(1, 7, 20)


class TestLoad:
    def test_load_publishes_model_info(self, labels_file, detection_output):
        state = MagicMock()
        engine = _engine(FakeModel(detection_output), labels_file, state=state)

        assert engine.load() is True

        assert engine.model_loaded is True
        assert engine.status == STATUS_MODEL_LOADED
        assert engine.decoder is not None
        assert engine.decoder.layout.name == "channel_major"
        info = state.set_model_info.call_args[0][0]
        assert info["output_shape"] == [1, 7, 20]
        assert info["labels"] == 3
        assert info["layout"] == "channel_major"

    def test_load_failure_sets_status(self, labels_file):
        def factory(cfg):
            raise FileNotFoundError(f"Model file not found: {cfg.model_path}")

        engine = DetectionEngine(
            ModelConfig(path="missing.tflite", labels_path=str(labels_file)),
            DecoderConfig(),
            engine_factory=factory,
        )

        assert engine.load() is False
        assert engine.model_loaded is False
        assert engine.status.startswith("Model load failed:")
        assert engine.on_frame(_frame()) is None
        assert engine.stats.frames_seen == 1

    def test_classification_task_has_no_decoder(self, labels_file):
        engine = _engine(FakeModel([[0.1, 0.8, 0.1]]), labels_file, task="classification")
        engine.load()
        assert engine.decoder is None

    def test_unknown_task_rejected(self, labels_file):
        with pytest.raises(ValueError):
            DetectionEngine(ModelConfig(task="segmentation"), DecoderConfig())

    def test_close_releases_model(self, labels_file, detection_output):
        model = FakeModel(detection_output)
        engine = _engine(model, labels_file)
        engine.load()
        engine.close()
        assert model.closed is True
        assert engine.model is None


class TestOnFrame:
    def test_detection_results(self, labels_file, detection_output):
        state = MagicMock()
        model = FakeModel(detection_output)
        engine = _engine(model, labels_file, state=state)
        engine.load()

        results = engine.on_frame(_frame())

        assert len(results) == 1
        assert isinstance(results[0], DetectionRecord)
        assert results[0].label == "bicycle"
        assert engine.status == STATUS_RUNNING
        assert engine.stats.frames_processed == 1
        assert engine.stats.last_latency_ms is not None
        assert engine.stats.last_decode["returned"] == 1
        assert model.inputs[0].shape == (1, 4, 4, 3)
        state.set_results.assert_called_once_with(results)

    def test_no_confident_results(self, labels_file):
        engine = _engine(FakeModel(np.zeros((1, 5, 10))), labels_file)
        engine.load()
        assert engine.on_frame(_frame()) == []
        assert engine.status == STATUS_NO_RESULTS

    def test_classification_results(self, labels_file):
        engine = _engine(FakeModel([[0.1, 0.8, 0.1]]), labels_file, task="classification")
        engine.load()

        results = engine.on_frame(_frame())

        assert isinstance(results[0], ClassificationResult)
        assert results[0].label == "bicycle"
        assert len(results) == 3

    def test_throttled_frames_skipped(self, labels_file, detection_output):
        engine = _engine(
            FakeModel(detection_output), labels_file,
            throttle=FrameThrottle(every_n_frames=2),
        )
        engine.load()

        engine.on_frame(_frame(1))
        assert engine.on_frame(_frame(2)) is None

        assert engine.stats.frames_processed == 1
        assert engine.stats.frames_throttled == 1

    def test_busy_frame_dropped(self, labels_file, detection_output):
        engine = _engine(FakeModel(detection_output), labels_file)
        engine.load()

        engine.guard.try_acquire()
        try:
            assert engine.on_frame(_frame()) is None
        finally:
            engine.guard.release()

        assert engine.stats.frames_dropped_busy == 1
        assert engine.stats.frames_processed == 0

    def test_inference_error_reported(self, labels_file, detection_output):
        model = FakeModel(detection_output)
        model.run = MagicMock(side_effect=RuntimeError("delegate failed"))
        engine = _engine(model, labels_file)
        engine.load()

        assert engine.on_frame(_frame()) is None

        assert engine.stats.errors == 1
        assert engine.status == "Detection error: delegate failed"
        assert engine.guard.busy is False

    def test_frame_timestamp_recorded(self, labels_file, detection_output):
        engine = _engine(FakeModel(detection_output), labels_file)
        engine.load()
        engine.on_frame(_frame(ts=42.0))
        assert engine.stats.last_frame_ts == 42.0

    def test_counters_exact_under_concurrent_callers(self, labels_file, detection_output):
        engine = _engine(
            FakeModel(detection_output), labels_file,
            throttle=FrameThrottle(every_n_frames=3),
        )
        engine.load()
        threads_n, frames_per_thread = 8, 500

        def feed():
            for i in range(frames_per_thread):
                engine.on_frame(_frame(i))

        workers = [threading.Thread(target=feed) for _ in range(threads_n)]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join()

        stats = engine.stats
        assert stats.frames_seen == threads_n * frames_per_thread
        assert (
            stats.frames_processed + stats.frames_throttled
            + stats.frames_dropped_busy + stats.errors
        ) == stats.frames_seen

    def test_count_increments_named_counter(self, labels_file, detection_output):
        engine = _engine(FakeModel(detection_output), labels_file)
        engine._count("frames_dropped_busy")
        engine._count("frames_dropped_busy")
        assert engine.stats.frames_dropped_busy == 2


class TestRun:
    def test_processes_frames_until_source_fails(self, labels_file, detection_output):
        engine = _engine(FakeModel(detection_output), labels_file, max_consecutive_failures=1)
        engine.load()
        source = MagicMock()
        source.source_id = "test"
        source.read.side_effect = [_frame(1), _frame(2), None]

        engine.run(source)

        source.open.assert_called_once()
        source.close.assert_called_once()
        assert engine.stats.frames_seen == 2
        assert engine.stats.frames_processed == 2

    def test_camera_error_sets_status(self, labels_file, detection_output):
        engine = _engine(FakeModel(detection_output), labels_file)
        engine.load()
        source = MagicMock()
        source.open.side_effect = RuntimeError("no camera")

        engine.run(source)

        assert engine.status == "Camera error: no camera"
        source.read.assert_not_called()

    def test_missing_camera_sets_status(self, labels_file, detection_output):
        state = MagicMock()
        engine = _engine(FakeModel(detection_output), labels_file, state=state)
        engine.load()
        source = MagicMock()
        source.open.side_effect = CameraNotFound("libcamera reports no attached cameras")

        engine.run(source)

        assert engine.status == STATUS_NO_CAMERA
        state.set_status.assert_called_with(STATUS_NO_CAMERA)
        source.read.assert_not_called()

    def test_camera_without_model(self, labels_file):
        def factory(cfg):
            raise FileNotFoundError("missing")

        engine = DetectionEngine(
            ModelConfig(labels_path=str(labels_file)), DecoderConfig(),
            engine_factory=factory, max_consecutive_failures=1,
        )
        engine.load()
        source = MagicMock()
        source.source_id = "test"
        statuses = []
        source.read.side_effect = lambda: statuses.append(engine.status)

        engine.run(source)

        assert statuses == [STATUS_CAMERA_NO_MODEL]
