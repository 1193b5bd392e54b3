"""
Label table loading.

Labels ship next to the model as plain text, one name per line. Blank lines
and lines starting with '#' are ignored.
"""

from __future__ import annotations

import logging
import os
from typing import Iterator, List, Sequence

GENERIC_LABEL = "Object"


def parse_labels(text: str) -> List[str]:
    lines = (line.strip() for line in text.split("\n"))
    return [line for line in lines if line and not line.startswith("#")]


class LabelTable:
    """Read-only ordered class names indexed by class id."""

    def __init__(self, names: Sequence[str] = ()):
        self._names = tuple(names)

    def resolve(self, class_id: int) -> str:
        """Return the name for class_id, or a synthetic "Class N" when out of range."""
        if 0 <= class_id < len(self._names):
            return self._names[class_id]
        return f"Class {class_id}"

    def __len__(self) -> int:
        return len(self._names)

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __getitem__(self, i: int) -> str:
        return self._names[i]

    def __repr__(self) -> str:
        return f"LabelTable({len(self._names)} labels)"


def load_labels(path: str) -> LabelTable:
    """
    Load a label file.

    A missing or unreadable file yields an empty table: results then carry
    synthetic labels instead of the service failing to start.
    """
    if not path or not os.path.exists(path):
        logging.warning(f"Label file not found: {path}")
        return LabelTable()

    try:
        with open(path, "r", encoding="utf-8") as f:
            names = parse_labels(f.read())
    except (OSError, UnicodeDecodeError) as e:
        logging.error(f"Failed to read labels from {path}: {e}")
        return LabelTable()

    logging.info(f"Loaded {len(names)} labels from {path}")
    return LabelTable(names)
