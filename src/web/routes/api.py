from __future__ import annotations

import time
from typing import Any, Dict, List, Optional

from fastapi import APIRouter

from models.detection import ClassificationResult, DetectionRecord
from ..state import state
from ..api_models import DetectionsResponse, HealthResponse, StatusResponse

router = APIRouter()

# Statuses reported while frames are flowing through the model.
ACTIVE_STATUSES = ("Running detection...", "No confident results")
STALE_FRAME_S = 10.0


def _derive_running(status: str, last_frame_age_s: Optional[float]) -> bool:
    """Running means an active status and a frame seen within the last 10s."""
    if status not in ACTIVE_STATUSES:
        return False
    return last_frame_age_s is not None and last_frame_age_s <= STALE_FRAME_S


def _split_results(results: List[Any]) -> Dict[str, List[Dict[str, Any]]]:
    detections = [r.to_dict() for r in results if isinstance(r, DetectionRecord)]
    classifications = [r.to_dict() for r in results if isinstance(r, ClassificationResult)]
    return {"detections": detections, "classifications": classifications}


@router.get("/status", response_model=StatusResponse)
def status():
    """
    Engine status for polling clients: status string, frame counters,
    inference latency and the diagnostics of the last decode.
    """
    now = time.time()
    snap = state.snapshot()
    stats = snap["engine_stats"]

    last_frame_ts = stats.get("last_frame_ts")
    last_frame_age = now - last_frame_ts if last_frame_ts else None

    return {
        "status": snap["status"],
        "running": _derive_running(snap["status"], last_frame_age),
        "uptime_seconds": int(now - snap["start_time"]),
        "last_frame_age_s": last_frame_age,
        "frames_seen": stats.get("frames_seen", 0),
        "frames_processed": stats.get("frames_processed", 0),
        "frames_throttled": stats.get("frames_throttled", 0),
        "frames_dropped_busy": stats.get("frames_dropped_busy", 0),
        "errors": stats.get("errors", 0),
        "infer_latency_ms": stats.get("last_latency_ms"),
        "last_decode": stats.get("last_decode"),
    }


@router.get("/detections", response_model=DetectionsResponse)
def detections():
    """Latest results, highest confidence first."""
    snap = state.snapshot()
    body: Dict[str, Any] = {
        "task": snap["model_info"].get("task"),
        "timestamp": snap["results_ts"],
    }
    body.update(_split_results(snap["results"]))
    return body


@router.get("/health", response_model=HealthResponse)
def health():
    snap = state.snapshot()
    info = snap["model_info"]
    return {
        "model_loaded": bool(info),
        "task": info.get("task"),
        "model_path": info.get("model_path"),
        "input_shape": info.get("input_shape"),
        "output_shape": info.get("output_shape"),
        "layout": info.get("layout"),
        "labels": info.get("labels", 0),
    }
