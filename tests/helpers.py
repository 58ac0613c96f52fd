from __future__ import annotations

from typing import Optional, Sequence

import numpy as np


def make_tensor(
    boxes: Sequence[Sequence[float]],
    class_scores: Sequence[Sequence[float]],
    objectness: Optional[Sequence[float]] = None,
    dtype=np.float32,
) -> np.ndarray:
    """
    Build a (1, C, N) tensor from per-anchor rows.

    boxes: N rows of (cx, cy, w, h); class_scores: N rows of K scores.
    """

    b = np.asarray(boxes, dtype=dtype).T
    c = np.asarray(class_scores, dtype=dtype).T
    rows = [b]
    if objectness is not None:
        rows.append(np.asarray(objectness, dtype=dtype)[None, :])
    rows.append(c)
    return np.vstack(rows)[None, ...]
