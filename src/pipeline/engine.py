"""
Detection engine for the live detection service.

This module owns the per-frame flow:
frame source -> admission (throttle + in-flight guard) -> preprocess ->
inference -> output decoding -> shared state for the status API.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from decoding import DetectionDecoder, LabelTable, load_labels, top_k
from inference import TFLiteConfig, TFLiteEngine, prepare_input, to_rgb
from models.config import DecoderConfig, ModelConfig
from models.frame import FrameData
from observation import CameraNotFound, ObservationSource
from .gate import FrameThrottle, InFlightGuard

STATUS_LOADING = "Loading model..."
STATUS_MODEL_LOADED = "Model loaded. Starting camera..."
STATUS_RUNNING = "Running detection..."
STATUS_NO_RESULTS = "No confident results"
STATUS_CAMERA_NO_MODEL = "Camera ready (model missing)"
STATUS_NO_CAMERA = "No camera found on this device."

TASKS = ("detection", "classification")

EngineFactory = Callable[[TFLiteConfig], Any]


@dataclass
class EngineStats:
    """Runtime statistics for the engine."""
    frames_seen: int = 0
    frames_throttled: int = 0
    frames_dropped_busy: int = 0
    frames_processed: int = 0
    errors: int = 0
    last_latency_ms: Optional[float] = None
    last_frame_ts: Optional[float] = None
    start_time: float = field(default_factory=time.time)
    last_decode: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.__dict__)


class DetectionEngine:
    """
    Runs the bundled model on admitted frames and publishes results.

    Lifecycle mirrors the camera screen it serves: load() reads labels and
    the model, run() opens the camera and feeds frames to on_frame() until
    stopped. on_frame() may also be called directly from a camera callback
    thread; concurrent calls never run more than one inference at a time.

    Example:
        engine = DetectionEngine(model_cfg, decoder_cfg, FrameThrottle(), state=state)
        engine.load()
        engine.run(source)
    """

    def __init__(
        self,
        model_cfg: ModelConfig,
        decoder_cfg: DecoderConfig,
        throttle: Optional[FrameThrottle] = None,
        state: Any = None,
        engine_factory: EngineFactory = TFLiteEngine,
        max_consecutive_failures: int = 10,
    ):
        if model_cfg.task not in TASKS:
            raise ValueError(f"model.task must be one of: {', '.join(TASKS)}")
        self.model_cfg = model_cfg
        self.decoder_cfg = decoder_cfg
        self.throttle = throttle or FrameThrottle()
        self.guard = InFlightGuard()
        self.state = state
        self._engine_factory = engine_factory
        self.max_consecutive_failures = max_consecutive_failures

        self.labels = LabelTable()
        self.model: Any = None
        self.decoder: Optional[DetectionDecoder] = None
        self.model_loaded = False
        self.status = STATUS_LOADING
        self.results: List[Any] = []
        self.stats = EngineStats()
        self._stats_lock = threading.Lock()
        self._running = False

    # ------------------------------------------------------------------
    # Model lifecycle
    # ------------------------------------------------------------------

    def load(self) -> bool:
        """Load labels and the model. Returns whether the model is usable."""
        self._set_status(STATUS_LOADING)
        self.labels = load_labels(self.model_cfg.labels_path)
        try:
            self.model = self._engine_factory(
                TFLiteConfig(model_path=self.model_cfg.path, num_threads=self.model_cfg.threads)
            )
            if self.model_cfg.task == "detection":
                self.decoder = DetectionDecoder.from_config(
                    self.model.output_shape, self.labels, self.decoder_cfg
                )
        except (ImportError, OSError, ValueError, RuntimeError) as e:
            logging.error(f"Model load failed: {e}")
            self.model = None
            self.decoder = None
            self.model_loaded = False
            self._set_status(f"Model load failed: {e}")
            return False

        self.model_loaded = True
        self._set_status(STATUS_MODEL_LOADED)
        self._publish_model_info()
        return True

    def close(self) -> None:
        if self.model is not None:
            self.model.close()
            self.model = None
        self.model_loaded = False

    # ------------------------------------------------------------------
    # Frame handling
    # ------------------------------------------------------------------

    def on_frame(self, frame_data: FrameData) -> Optional[List[Any]]:
        """
        Offer a frame for processing.

        Returns the new results, or None if the frame was not processed
        (model missing, throttled, busy, or failed).
        """
        with self._stats_lock:
            self.stats.frames_seen += 1
            self.stats.last_frame_ts = frame_data.timestamp

        if not self.model_loaded or self.model is None:
            return None
        if not self.throttle.admit():
            self._count("frames_throttled")
            return None
        if not self.guard.try_acquire():
            self._count("frames_dropped_busy")
            return None

        try:
            started = time.perf_counter()
            results = self.process_frame(frame_data)
            self.stats.last_latency_ms = (time.perf_counter() - started) * 1000.0
        except Exception as e:
            self._count("errors")
            logging.error(f"Detection error on frame {frame_data.frame_index}: {e}")
            self._set_status(f"Detection error: {e}")
            return None
        finally:
            self.guard.release()

        self._count("frames_processed")
        self.results = results
        self._set_status(STATUS_NO_RESULTS if not results else STATUS_RUNNING)
        self._publish_results()
        return results

    def process_frame(self, frame_data: FrameData) -> List[Any]:
        """Preprocess, infer and decode a single frame."""
        rgb = to_rgb(frame_data)
        tensor = prepare_input(rgb, self.model.input_shape, self.model.input_dtype)
        output = self.model.run(tensor)

        if self.decoder is None:
            return top_k(output, self.labels, k=self.decoder_cfg.max_results)

        records = self.decoder.decode(output)
        if self.decoder.last_stats is not None:
            self.stats.last_decode = self.decoder.last_stats.to_dict()
        return records

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    def run(self, source: ObservationSource) -> None:
        """
        Open the source and feed frames until stopped or exhausted.

        Camera failures are reported through the status string rather than
        raised, so the status API keeps serving.
        """
        self._running = True
        try:
            source.open()
        except CameraNotFound as e:
            logging.error(f"No camera: {e}")
            self._set_status(STATUS_NO_CAMERA)
            return
        except (ImportError, RuntimeError) as e:
            logging.error(f"Camera error: {e}")
            self._set_status(f"Camera error: {e}")
            return

        self._set_status(STATUS_RUNNING if self.model_loaded else STATUS_CAMERA_NO_MODEL)
        logging.info(f"Engine started: source={source.source_id} task={self.model_cfg.task}")

        consecutive_failures = 0
        try:
            while self._running:
                frame_data = source.read()
                if frame_data is None:
                    consecutive_failures += 1
                    if consecutive_failures >= self.max_consecutive_failures:
                        logging.error(f"Too many consecutive failures ({consecutive_failures}), stopping")
                        break
                    logging.warning(
                        f"Frame read failed ({consecutive_failures}/{self.max_consecutive_failures})"
                    )
                    time.sleep(0.5)
                    continue

                consecutive_failures = 0
                self.on_frame(frame_data)
                self._publish_stats()
        except KeyboardInterrupt:
            logging.info("Engine interrupted by user")
        finally:
            source.close()
            self._running = False
            logging.info(
                f"Engine stopped: seen={self.stats.frames_seen} processed={self.stats.frames_processed} "
                f"throttled={self.stats.frames_throttled} dropped={self.stats.frames_dropped_busy}"
            )

    def stop(self) -> None:
        """Signal the loop to stop after the current frame."""
        self._running = False

    # ------------------------------------------------------------------
    # Shared state
    # ------------------------------------------------------------------

    def _count(self, counter: str) -> None:
        with self._stats_lock:
            setattr(self.stats, counter, getattr(self.stats, counter) + 1)

    def _set_status(self, status: str) -> None:
        self.status = status
        if self.state is not None:
            self.state.set_status(status)

    def _publish_results(self) -> None:
        if self.state is not None:
            self.state.set_results(self.results)
            self._publish_stats()

    def _publish_stats(self) -> None:
        if self.state is not None:
            with self._stats_lock:
                snapshot = self.stats.to_dict()
            self.state.update_engine_stats(snapshot)

    def _publish_model_info(self) -> None:
        if self.state is None or self.model is None:
            return
        info: Dict[str, Any] = {
            "model_path": self.model_cfg.path,
            "task": self.model_cfg.task,
            "input_shape": list(self.model.input_shape),
            "output_shape": list(self.model.output_shape),
            "labels": len(self.labels),
            "layout": None,
        }
        if self.decoder is not None:
            info["layout"] = self.decoder.layout.name
        self.state.set_model_info(info)
