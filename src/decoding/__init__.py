"""
Model output decoding.

Detection heads are decoded by DetectionDecoder (layout chosen once per
model); classifier heads are ranked by top_k.
"""

from .layout import (
    ChannelMajor,
    DetectionMajor,
    DEFAULT_LAYOUT,
    DecodeError,
    IndexOutOfRange,
    InvalidShape,
    infer_layout,
)
from .labels import GENERIC_LABEL, LabelTable, load_labels, parse_labels
from .decoder import DecodeStats, DetectionDecoder, decode, decode_with_stats, resolve_layout
from .classification import top_k

__all__ = [
    "ChannelMajor",
    "DetectionMajor",
    "DEFAULT_LAYOUT",
    "DecodeError",
    "IndexOutOfRange",
    "InvalidShape",
    "infer_layout",
    "GENERIC_LABEL",
    "LabelTable",
    "load_labels",
    "parse_labels",
    "DecodeStats",
    "DetectionDecoder",
    "decode",
    "decode_with_stats",
    "resolve_layout",
    "top_k",
]
