"""
TFLite inference backend.

Uses tflite_runtime if installed. The interpreter is created once per model
load; input and output tensor shapes are read from it rather than assumed.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Tuple

import numpy as np

from .backend import InferenceEngine


@dataclass(frozen=True)
class TFLiteConfig:
    model_path: str
    num_threads: int = 2


def _load_interpreter_class():
    try:
        from tflite_runtime.interpreter import Interpreter  # type: ignore
    except ImportError as e:  # pragma: no cover
        raise ImportError(
            "tflite_runtime is not installed. Install with `pip install tflite-runtime` "
            "(or `pip install -e .[tflite]`)."
        ) from e
    return Interpreter


class TFLiteEngine(InferenceEngine):
    def __init__(self, cfg: TFLiteConfig, interpreter: Any = None):
        self.cfg = cfg
        if interpreter is None:
            if not os.path.exists(cfg.model_path):
                raise FileNotFoundError(f"Model file not found: {cfg.model_path}")
            interpreter_cls = _load_interpreter_class()
            interpreter = interpreter_cls(model_path=cfg.model_path, num_threads=cfg.num_threads)

        self._interpreter = interpreter
        self._interpreter.allocate_tensors()

        input_details = self._interpreter.get_input_details()[0]
        output_details = self._interpreter.get_output_details()[0]
        self._input_index = input_details["index"]
        self._output_index = output_details["index"]

        self.input_shape: Tuple[int, ...] = tuple(int(d) for d in input_details["shape"])
        self.input_dtype = np.dtype(input_details["dtype"])
        self.output_shape: Tuple[int, ...] = tuple(int(d) for d in output_details["shape"])
        self.output_scale, self.output_zero_point = output_details.get("quantization", (0.0, 0))

        logging.info(
            f"TFLite model loaded: {cfg.model_path} input={self.input_shape} "
            f"({self.input_dtype}) output={self.output_shape} threads={cfg.num_threads}"
        )

    @property
    def input_size(self) -> Tuple[int, int]:
        """(height, width) of an NHWC input."""
        return (self.input_shape[1], self.input_shape[2])

    def run(self, tensor: np.ndarray) -> np.ndarray:
        if tuple(tensor.shape) != self.input_shape:
            raise ValueError(f"Input tensor shape {tuple(tensor.shape)} != model input {self.input_shape}")
        self._interpreter.set_tensor(self._input_index, tensor.astype(self.input_dtype, copy=False))
        self._interpreter.invoke()
        output = self._interpreter.get_tensor(self._output_index)
        if np.issubdtype(output.dtype, np.integer) and self.output_scale > 0:
            # Quantized head: back to real-valued scores before decoding.
            return (output.astype(np.float32) - self.output_zero_point) * np.float32(self.output_scale)
        return np.asarray(output, dtype=np.float32)

    def close(self) -> None:
        self._interpreter = None
