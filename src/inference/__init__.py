"""
Inference layer: input preprocessing and model execution.
"""

from .backend import InferenceEngine
from .preprocess import prepare_input, to_rgb, yuv420_to_rgb
from .tflite_backend import TFLiteConfig, TFLiteEngine

__all__ = [
    "InferenceEngine",
    "prepare_input",
    "to_rgb",
    "yuv420_to_rgb",
    "TFLiteConfig",
    "TFLiteEngine",
]
