"""
Inference engine interface.

Engines take a preprocessed input tensor and return the raw output tensor.
Tensor shapes are model-dependent and are read from the loaded model.
"""

from __future__ import annotations

from typing import Protocol, Tuple

import numpy as np


class InferenceEngine(Protocol):
    input_shape: Tuple[int, ...]
    input_dtype: np.dtype
    output_shape: Tuple[int, ...]

    def run(self, tensor: np.ndarray) -> np.ndarray:
        ...

    def close(self) -> None:
        ...
