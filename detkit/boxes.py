from __future__ import annotations

from typing import Union

import numpy as np

ArrayLike = Union[np.ndarray, float]


def as_float(x: ArrayLike) -> np.ndarray:
    """Float arrays keep their precision; anything else becomes float64."""

    a = np.asarray(x)
    if np.issubdtype(a.dtype, np.floating):
        return a
    return a.astype(np.float64)


def cxcywh_to_xyxy(cx: ArrayLike, cy: ArrayLike, w: ArrayLike, h: ArrayLike) -> np.ndarray:
    """
    Center form -> corner form. Returns shape (..., 4).

    Negative extents are clamped to 0 so x1 <= x2 and y1 <= y2 always hold.
    """

    w = np.maximum(as_float(w), 0.0)
    h = np.maximum(as_float(h), 0.0)
    cx = as_float(cx)
    cy = as_float(cy)
    return np.stack([cx - w / 2, cy - h / 2, cx + w / 2, cy + h / 2], axis=-1)


def box_area(boxes: np.ndarray) -> np.ndarray:
    b = as_float(boxes)
    return np.maximum(0.0, b[..., 2] - b[..., 0]) * np.maximum(0.0, b[..., 3] - b[..., 1])


def iou(box: np.ndarray, boxes: np.ndarray) -> np.ndarray:
    """
    IoU of one xyxy `box` against every row of `boxes` (M, 4).

    Pairs with zero union (both boxes zero-area) get IoU 0.
    """

    box = as_float(box)
    boxes = as_float(boxes).reshape(-1, 4)

    xx1 = np.maximum(box[0], boxes[:, 0])
    yy1 = np.maximum(box[1], boxes[:, 1])
    xx2 = np.minimum(box[2], boxes[:, 2])
    yy2 = np.minimum(box[3], boxes[:, 3])

    inter = np.maximum(0.0, xx2 - xx1) * np.maximum(0.0, yy2 - yy1)
    union = box_area(box) + box_area(boxes) - inter

    out = np.zeros_like(inter)
    np.divide(inter, union, out=out, where=union > 0)
    return out


def pairwise_iou(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """(N, 4) x (M, 4) -> (N, M) IoU matrix."""

    a = as_float(a).reshape(-1, 4)
    b = as_float(b).reshape(-1, 4)
    if a.shape[0] == 0 or b.shape[0] == 0:
        return np.zeros((a.shape[0], b.shape[0]), dtype=np.result_type(a, b))
    return np.stack([iou(row, b) for row in a], axis=0)
