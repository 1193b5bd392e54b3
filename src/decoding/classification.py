"""
Classifier output ranking.

Classification models emit one score per label. The service reports the
top few entries; labels past the end of the table are named "Label N".
"""

from __future__ import annotations

from typing import List, Sequence

import numpy as np

from models.detection import ClassificationResult


def top_k(scores, labels: Sequence[str] = (), k: int = 3) -> List[ClassificationResult]:
    """
    Rank a flat score vector.

    Args:
        scores: Output buffer of any shape; flattened before ranking.
        labels: Names indexed by output position.
        k: Number of results, bounded by the number of scores.

    Returns:
        Up to k results sorted by descending confidence (ties keep index order).
    """
    flat = np.asarray(scores, dtype=np.float32).reshape(-1)
    if flat.size == 0 or k <= 0:
        return []

    names = list(labels)
    results = [
        ClassificationResult(
            index=i,
            label=names[i] if i < len(names) else f"Label {i}",
            confidence=float(c),
        )
        for i, c in enumerate(flat)
    ]
    results.sort(key=lambda r: r.confidence, reverse=True)
    return results[:min(k, flat.size)]
