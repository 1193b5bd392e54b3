"""
Output tensor layouts.

Detection heads emit a [1, A, B] tensor where one axis enumerates candidate
detections (large, e.g. 8400) and the other enumerates values per candidate
(small: x, y, w, h plus scores). Exporters disagree on which axis comes
first, so the layout is inferred from the shape once per model load and
then reused for every frame.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Union

import numpy as np

# Box plus at least one score.
MIN_VALUE_COUNT = 5


class DecodeError(ValueError):
    """Base class for output decoding errors."""


class InvalidShape(DecodeError):
    """Tensor metadata cannot describe a detection output."""


class IndexOutOfRange(DecodeError):
    """Buffer is shorter than the shape implies for a candidate."""


@dataclass(frozen=True)
class ChannelMajor:
    """
    All x values contiguous, then all y values, and so on.

    Value k of candidate i lives at k * detection_count + i.
    """
    value_count: int
    detection_count: int

    name = "channel_major"

    def index(self, candidate, value):
        return value * self.detection_count + candidate


@dataclass(frozen=True)
class DetectionMajor:
    """
    All values of candidate 0 contiguous, then candidate 1, and so on.

    Value k of candidate i lives at i * value_count + k.
    """
    detection_count: int
    value_count: int

    name = "detection_major"

    def index(self, candidate, value):
        return candidate * self.value_count + value


Layout = Union[ChannelMajor, DetectionMajor]

DEFAULT_LAYOUT: Layout = ChannelMajor(value_count=5, detection_count=8400)


def infer_layout(shape: Sequence[int]) -> Layout:
    """
    Pick the output layout from a tensor shape.

    The larger of the two trailing dimensions is the detection count and
    the smaller the value count. When the value axis comes first the
    buffer is channel-major, otherwise detection-major (equal dimensions
    are read as detection-major).

    Args:
        shape: Output tensor shape, 3 or 4 dimensions with leading 1s.

    Raises:
        InvalidShape: Fewer than 3 dimensions, a non-positive dimension,
            a leading dimension other than 1, or fewer than 5 values per
            candidate.
    """
    dims = [int(d) for d in np.asarray(shape).reshape(-1)]
    if len(dims) < 3 or len(dims) > 4:
        raise InvalidShape(f"expected 3 or 4 dimensions, got shape {dims}")
    if any(d <= 0 for d in dims):
        raise InvalidShape(f"non-positive dimension in shape {dims}")
    if any(d != 1 for d in dims[:-2]):
        raise InvalidShape(f"batch dimensions must be 1, got shape {dims}")

    a, b = dims[-2], dims[-1]
    value_count = min(a, b)
    if value_count < MIN_VALUE_COUNT:
        raise InvalidShape(
            f"need at least {MIN_VALUE_COUNT} values per candidate, got shape {dims}"
        )

    if a < b:
        return ChannelMajor(value_count=a, detection_count=b)
    return DetectionMajor(detection_count=a, value_count=b)
