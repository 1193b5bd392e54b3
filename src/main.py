"""
Main application: live on-device object detection.

Loads the bundled TFLite model and labels, opens the camera, runs every
admitted frame through the model and decodes the output into ranked
detections, served read-only over the status API.

Usage:
    python src/main.py --config config/config.yaml

Arguments:
    --config: Path to configuration file
    --no-web: Disable the status API
"""

import os
import sys
import argparse
import logging
import threading
import yaml
import uvicorn
from typing import Any, Dict, List, Optional, Tuple

from models.config import Config
from observation import create_source_from_config
from ops.logging import setup_logging
from pipeline.engine import DetectionEngine, TASKS
from pipeline.gate import FrameThrottle
from web.app import create_app
from web.state import state as web_state

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def _config_layers(config_path: str) -> List[str]:
    """Files merged in order: checked-in defaults, local overrides, explicit --config."""
    config_dir = os.path.dirname(config_path)
    layers = [os.path.join(config_dir, "default.yaml"), os.path.join(config_dir, "config.yaml")]
    if os.path.abspath(config_path) not in [os.path.abspath(p) for p in layers]:
        layers.append(config_path)
    return [p for p in layers if os.path.exists(p)]


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load layered configuration next to config_path.

    `default.yaml` holds the shipped defaults, `config.yaml` local overrides,
    and a different explicit path is merged last. Exits on unreadable YAML.
    """
    merged: Dict[str, Any] = {}
    for path in _config_layers(config_path):
        try:
            with open(path, "r") as f:
                layer = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logging.error(f"Failed to load configuration from {path}: {e}")
            sys.exit(1)
        merged = _deep_merge(merged, layer)
    return merged


def _is_number(x: Any) -> bool:
    return isinstance(x, (int, float)) and not isinstance(x, bool)


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    required_sections = ['camera', 'model', 'decoder', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    # Camera
    camera = config.get('camera') or {}
    backend = camera.get('backend', 'opencv')
    if backend not in ('opencv', 'picamera2'):
        return False, "camera.backend must be one of: opencv, picamera2"
    device_id = camera.get('device_id', 0)
    if isinstance(device_id, bool) or not isinstance(device_id, (int, str)):
        return False, "camera.device_id must be an integer (index) or string (file path)"
    if isinstance(device_id, int) and device_id < 0:
        return False, "camera.device_id integer must be non-negative"
    if 'resolution' in camera:
        res = camera['resolution']
        if not isinstance(res, list) or len(res) != 2:
            return False, "camera.resolution must be a list of [width, height]"
        if not all(isinstance(x, int) and x > 0 for x in res):
            return False, "camera.resolution values must be positive integers"
    if 'fps' in camera and (not isinstance(camera['fps'], int) or camera['fps'] <= 0):
        return False, "camera.fps must be a positive integer"
    if camera.get('rotate', 0) not in (0, 90, 180, 270, None):
        return False, "camera.rotate must be one of: 0, 90, 180, 270"

    # Model
    model = config.get('model') or {}
    if not isinstance(model.get('path'), str) or not model.get('path'):
        return False, "model.path is required"
    if 'labels_path' in model and not isinstance(model['labels_path'], str):
        return False, "model.labels_path must be a string"
    if model.get('task', 'detection') not in TASKS:
        return False, f"model.task must be one of: {', '.join(TASKS)}"
    if 'threads' in model and (not isinstance(model['threads'], int) or model['threads'] <= 0):
        return False, "model.threads must be a positive integer"

    # Decoder
    decoder = config.get('decoder') or {}
    max_results = decoder.get('max_results', 3)
    if not isinstance(max_results, int) or max_results <= 0:
        return False, "decoder.max_results must be a positive integer"
    if 'confidence_threshold' in decoder and not _is_number(decoder['confidence_threshold']):
        return False, "decoder.confidence_threshold must be a number"
    box_min = decoder.get('box_min', 0.01)
    box_max = decoder.get('box_max', 1.0)
    if not _is_number(box_min) or not _is_number(box_max) or not box_min < box_max:
        return False, "decoder.box_min and decoder.box_max must be numbers with box_min < box_max"
    cap = decoder.get('candidate_cap')
    if cap is not None and (not isinstance(cap, int) or cap <= 0):
        return False, "decoder.candidate_cap must be a positive integer"
    class_scores = decoder.get('class_scores', 3)
    if not isinstance(class_scores, int) or class_scores <= 0:
        return False, "decoder.class_scores must be a positive integer"

    # Throttle (optional)
    throttle = config.get('throttle') or {}
    every_n = throttle.get('every_n_frames', 1)
    if not isinstance(every_n, int) or every_n < 1:
        return False, "throttle.every_n_frames must be an integer >= 1"
    interval = throttle.get('min_interval_ms', 0)
    if not _is_number(interval) or interval < 0:
        return False, "throttle.min_interval_ms must be a non-negative number"

    # Web (optional)
    web = config.get('web') or {}
    if 'port' in web and (not isinstance(web['port'], int) or not 0 < web['port'] < 65536):
        return False, "web.port must be a valid TCP port"

    if config['log_level'] not in VALID_LOG_LEVELS:
        return False, f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}"

    return True, None


def start_web(host: str, port: int) -> threading.Thread:
    """Serve the status API on a daemon thread."""
    def run_web_app():
        uvicorn.run(create_app(), host=host, port=port, log_level="info")

    web_thread = threading.Thread(target=run_web_app, daemon=True)
    web_thread.start()
    logging.info(f"Status API started on {host}:{port}")
    return web_thread


def main():
    """Main application function."""
    parser = argparse.ArgumentParser(description='Live on-device object detection')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--no-web', action='store_true',
                        help='Disable the status API')
    args = parser.parse_args()

    config = load_config(args.config)

    is_valid, error_msg = validate_config(config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    cfg = Config.from_dict(config)
    setup_logging(cfg.log_path, cfg.log_level)
    logging.info("Starting live detection")

    if cfg.web.enabled and not args.no_web:
        start_web(cfg.web.host, cfg.web.port)

    engine = DetectionEngine(
        model_cfg=cfg.model,
        decoder_cfg=cfg.decoder,
        throttle=FrameThrottle.from_config(cfg.throttle),
        state=web_state,
    )
    engine.load()

    try:
        source = create_source_from_config(cfg.camera.to_dict())
        engine.run(source)
    finally:
        engine.close()
        logging.info("Live detection stopped")


if __name__ == "__main__":
    main()
