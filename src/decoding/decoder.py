"""
Detection output decoding.

Turns the raw output buffer of a detection model into a short list of
DetectionRecord ranked by confidence. All candidates are evaluated with
vectorized numpy operations; the acceptance pool is then cut to the first
matches in candidate order before ranking, which reproduces a sequential
scan that stops once the cap is reached.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from models.detection import DetectionRecord
from .labels import GENERIC_LABEL, LabelTable
from .layout import DEFAULT_LAYOUT, DetectionMajor, InvalidShape, Layout, infer_layout

DEFAULT_BOX_SIZE_BOUNDS = (0.01, 1.0)

# Score branches, chosen from the layout.
SINGLE_SCORE = "single_score"
CLASS_SCORES = "class_scores"
OBJECTNESS = "objectness"

Labels = Union[LabelTable, Sequence[str], None]


@dataclass
class DecodeStats:
    """Diagnostics for one decode call. Not used for any decision."""
    layout: str = ""
    branch: str = ""
    candidates: int = 0
    skipped_out_of_range: int = 0
    skipped_invalid: int = 0
    accepted: int = 0
    returned: int = 0
    stopped_early: bool = False
    min_confidence: Optional[float] = None
    max_confidence: Optional[float] = None

    def to_dict(self):
        return dict(self.__dict__)


def sigmoid(v: np.ndarray) -> np.ndarray:
    with np.errstate(over="ignore"):
        return 1.0 / (1.0 + np.exp(-v))


def resolve_layout(shape: Optional[Sequence[int]]) -> Layout:
    """Infer the layout for a shape, falling back to the default on bad metadata."""
    try:
        if shape is None:
            raise InvalidShape("no output shape")
        return infer_layout(shape)
    except InvalidShape as e:
        logging.warning(
            f"Invalid output shape ({e}); assuming {DEFAULT_LAYOUT.name} "
            f"{DEFAULT_LAYOUT.detection_count}x{DEFAULT_LAYOUT.value_count}"
        )
        return DEFAULT_LAYOUT


def select_branch(layout: Layout, class_scores: int = 3) -> Tuple[str, int]:
    """
    Return (branch, values_needed) for a layout.

    Detection-major heads with 8+ values carry objectness followed by one
    score per class. Otherwise 7+ values carry class scores right after the
    box, of which the first `class_scores` are read. Anything smaller has a
    single score after the box.
    """
    v = layout.value_count
    if isinstance(layout, DetectionMajor) and v >= 8:
        return OBJECTNESS, v
    if v >= 7:
        return CLASS_SCORES, 4 + max(1, min(class_scores, v - 4))
    return SINGLE_SCORE, 5


def candidates_in_range(layout: Layout, needed: int, size: int) -> int:
    """
    Number of leading candidates whose first `needed` values fit in `size`.

    Positions grow with the candidate index in both layouts, so the
    candidates that fit are always a prefix. Computed without allocating
    per declared candidate.
    """
    n = layout.detection_count
    if isinstance(layout, DetectionMajor):
        if size < needed:
            return 0
        return min(n, (size - needed) // layout.value_count + 1)
    offset = (needed - 1) * n
    if offset >= size:
        return 0
    return min(n, size - offset)


def _as_table(labels: Labels) -> LabelTable:
    if isinstance(labels, LabelTable):
        return labels
    return LabelTable(list(labels or []))


def decode_with_stats(
    buffer,
    layout: Layout,
    labels: Labels,
    max_results: int,
    confidence_threshold: float,
    box_size_bounds: Tuple[float, float] = DEFAULT_BOX_SIZE_BOUNDS,
    candidate_cap: Optional[int] = None,
    class_scores: int = 3,
) -> Tuple[List[DetectionRecord], DecodeStats]:
    """
    Decode a flat output buffer laid out as `layout`.

    Args:
        buffer: Flat (or any-shaped) float sequence from the interpreter.
        layout: Output layout, usually from infer_layout.
        labels: Label table or plain list of names.
        max_results: Maximum number of records returned.
        confidence_threshold: Candidates must score strictly above this.
        box_size_bounds: Exclusive (min, max) for normalized width and height.
        candidate_cap: Size of the acceptance pool; defaults to max_results.
        class_scores: Number of class scores read in the class-score branch.

    Returns:
        (records sorted by descending confidence, diagnostics)
    """
    branch, needed = select_branch(layout, class_scores)
    stats = DecodeStats(layout=layout.name, branch=branch)
    if max_results <= 0:
        return [], stats

    buf = np.asarray(buffer, dtype=np.float32).reshape(-1)
    n = layout.detection_count
    stats.candidates = n

    fit = candidates_in_range(layout, needed, buf.size)
    stats.skipped_out_of_range = n - fit
    if fit == 0:
        return [], stats
    ids = np.arange(fit)

    idx = layout.index(ids[:, None], np.arange(needed)[None, :])
    values = buf[idx].astype(np.float64)
    boxes = values[:, :4]
    rows = np.arange(ids.size)

    with np.errstate(invalid="ignore", over="ignore"):
        if branch == SINGLE_SCORE:
            conf = values[:, 4]
            class_ids = np.zeros(ids.size, dtype=np.int64)
        elif branch == CLASS_SCORES:
            scores = values[:, 4:needed]
            # Any score outside [0, 1] means the row holds raw logits.
            logits = ((scores < 0.0) | (scores > 1.0)).any(axis=1)
            scores = np.where(logits[:, None], sigmoid(scores), scores)
            class_ids = np.argmax(scores, axis=1)
            conf = scores[rows, class_ids]
        else:
            objectness = values[:, 4]
            scores = values[:, 5:needed]
            class_ids = np.argmax(scores, axis=1)
            conf = objectness * scores[rows, class_ids]

        finite = np.isfinite(boxes).all(axis=1)
        stats.skipped_invalid = int(ids.size - np.count_nonzero(finite))

        observed = conf[finite & ~np.isnan(conf)]
        if observed.size:
            stats.min_confidence = float(observed.min())
            stats.max_confidence = float(observed.max())

        lo, hi = box_size_bounds
        w, h = boxes[:, 2], boxes[:, 3]
        accept = (
            finite
            & (conf > confidence_threshold)
            & (w > lo) & (w < hi)
            & (h > lo) & (h < hi)
        )

    pool = np.flatnonzero(accept)
    cap = candidate_cap if candidate_cap is not None else max_results
    if pool.size > cap:
        pool = pool[:cap]
        stats.stopped_early = True
    stats.accepted = int(pool.size)

    table = _as_table(labels)
    records = []
    for r in pool:
        class_id = int(class_ids[r])
        label = GENERIC_LABEL if branch == SINGLE_SCORE else table.resolve(class_id)
        records.append(
            DetectionRecord(
                center_x=float(boxes[r, 0]),
                center_y=float(boxes[r, 1]),
                width=float(boxes[r, 2]),
                height=float(boxes[r, 3]),
                confidence=float(conf[r]),
                class_id=class_id,
                label=label,
            )
        )

    # list.sort is stable, so equal confidences keep candidate order.
    records.sort(key=lambda rec: rec.confidence, reverse=True)
    records = records[:max_results]
    stats.returned = len(records)
    return records, stats


def decode(
    buffer,
    shape: Optional[Sequence[int]],
    labels: Labels,
    max_results: int,
    confidence_threshold: float,
    box_size_bounds: Tuple[float, float] = DEFAULT_BOX_SIZE_BOUNDS,
) -> List[DetectionRecord]:
    """
    Decode a raw detection output buffer with its declared shape.

    Malformed shapes fall back to the default layout rather than failing,
    so the caller always gets a (possibly empty) list.
    """
    records, _ = decode_with_stats(
        buffer,
        resolve_layout(shape),
        labels,
        max_results,
        confidence_threshold,
        box_size_bounds,
    )
    return records


class DetectionDecoder:
    """
    Decoder bound to one loaded model.

    The layout is inferred from the model's output shape once, at
    construction, and reused for every frame.
    """

    def __init__(
        self,
        output_shape: Optional[Sequence[int]],
        labels: Labels = None,
        max_results: int = 3,
        confidence_threshold: float = 0.5,
        box_size_bounds: Tuple[float, float] = DEFAULT_BOX_SIZE_BOUNDS,
        candidate_cap: Optional[int] = None,
        class_scores: int = 3,
    ):
        if max_results <= 0:
            raise ValueError("max_results must be a positive integer")
        if candidate_cap is not None and candidate_cap <= 0:
            raise ValueError("candidate_cap must be a positive integer")
        lo, hi = box_size_bounds
        if not lo < hi:
            raise ValueError("box_size_bounds must be (min, max) with min < max")

        self.layout = resolve_layout(output_shape)
        self.labels = _as_table(labels)
        self.max_results = max_results
        self.confidence_threshold = confidence_threshold
        self.box_size_bounds = (float(lo), float(hi))
        self.candidate_cap = candidate_cap
        self.class_scores = class_scores
        self.last_stats: Optional[DecodeStats] = None

        branch, _ = select_branch(self.layout, class_scores)
        logging.info(
            f"Detection decoder ready: layout={self.layout.name} "
            f"detections={self.layout.detection_count} values={self.layout.value_count} "
            f"branch={branch} labels={len(self.labels)}"
        )

    @classmethod
    def from_config(cls, output_shape, labels: Labels, cfg) -> "DetectionDecoder":
        """Adapter: Build from a models.config.DecoderConfig."""
        return cls(
            output_shape,
            labels=labels,
            max_results=cfg.max_results,
            confidence_threshold=cfg.confidence_threshold,
            box_size_bounds=cfg.box_size_bounds,
            candidate_cap=cfg.candidate_cap,
            class_scores=cfg.class_scores,
        )

    def decode(self, buffer) -> List[DetectionRecord]:
        records, stats = decode_with_stats(
            buffer,
            self.layout,
            self.labels,
            self.max_results,
            self.confidence_threshold,
            self.box_size_bounds,
            self.candidate_cap,
            self.class_scores,
        )
        self.last_stats = stats
        logging.debug(
            f"[DECODE] accepted={stats.accepted} returned={stats.returned} "
            f"invalid={stats.skipped_invalid} out_of_range={stats.skipped_out_of_range} "
            f"conf_range=({stats.min_confidence}, {stats.max_confidence})"
        )
        return records
