from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence, Tuple, Union

import numpy as np

from .boxes import as_float, iou
from .errors import ConfigError
from .types import Detection

logger = logging.getLogger(__name__)


class SuppressionMode(str, Enum):
    # Overlapping boxes suppress each other regardless of class.
    CLASS_AGNOSTIC = "class_agnostic"
    # NMS runs independently inside each class, results merged by score.
    PER_CLASS = "per_class"


def parse_mode(mode: Union[str, SuppressionMode]) -> SuppressionMode:
    if isinstance(mode, SuppressionMode):
        return mode
    try:
        return SuppressionMode(str(mode).lower())
    except ValueError as exc:
        raise ConfigError(f"Unsupported suppression mode: {mode!r}") from exc


@dataclass(frozen=True)
class NMSConfig:
    iou_threshold: float = 0.45
    score_threshold: float = 0.25
    max_outputs: int = 300
    mode: SuppressionMode = SuppressionMode.CLASS_AGNOSTIC

    def __post_init__(self) -> None:
        if not (0.0 <= self.iou_threshold <= 1.0):
            raise ConfigError(f"iou_threshold must be within [0, 1], got {self.iou_threshold}")
        if self.max_outputs < 0:
            raise ConfigError(f"max_outputs must be >= 0, got {self.max_outputs}")
        object.__setattr__(self, "mode", parse_mode(self.mode))


def score_order(scores: np.ndarray) -> np.ndarray:
    """Indices by score descending, ties by index ascending."""

    scores = np.asarray(scores)
    return np.lexsort((np.arange(scores.shape[0]), -scores))


def nms(boxes: np.ndarray, scores: np.ndarray, cfg: NMSConfig) -> np.ndarray:
    """
    Greedy class-agnostic NMS. Expects boxes shape (N,4) in xyxy and scores shape (N,).
    Returns indices of boxes to keep, in selection order.

    No score filtering happens here; see `suppress`.
    """

    boxes = as_float(boxes).reshape(-1, 4)
    if boxes.shape[0] == 0 or cfg.max_outputs == 0:
        return np.empty((0,), dtype=np.int64)

    order = score_order(scores)
    keep: List[int] = []

    while order.size > 0 and len(keep) < cfg.max_outputs:
        i = int(order[0])
        keep.append(i)

        rest = order[1:]
        overlap = iou(boxes[i], boxes[rest])
        order = rest[overlap <= cfg.iou_threshold]

    return np.array(keep, dtype=np.int64)


def nms_per_class(boxes: np.ndarray, scores: np.ndarray, class_ids: np.ndarray, cfg: NMSConfig) -> np.ndarray:
    scores = np.asarray(scores)
    class_ids = np.asarray(class_ids)

    kept: List[int] = []
    for cls in np.unique(class_ids):
        idx = np.flatnonzero(class_ids == cls)
        keep_local = nms(boxes[idx], scores[idx], cfg)
        kept.extend(idx[keep_local].tolist())

    if not kept:
        return np.empty((0,), dtype=np.int64)

    kept_arr = np.array(sorted(kept), dtype=np.int64)
    kept_arr = kept_arr[score_order(scores[kept_arr])]
    return kept_arr[: cfg.max_outputs]


def select_topk(scores: np.ndarray, k: int) -> np.ndarray:
    """NMS-free alternative: top `k` indices by score."""

    return score_order(scores)[:k]


def _to_arrays(candidates: Sequence[Detection]) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    boxes = np.array([d.as_xyxy() for d in candidates], dtype=np.float64).reshape(-1, 4)
    scores = np.array([d.score for d in candidates], dtype=np.float64)
    class_ids = np.array([d.class_id for d in candidates], dtype=np.int64)
    return boxes, scores, class_ids


class Suppressor:
    def __init__(self, cfg: NMSConfig = NMSConfig()):
        self.cfg = cfg

    @property
    def mode(self) -> SuppressionMode:
        return self.cfg.mode

    def suppress(self, candidates: Sequence[Detection]) -> List[Detection]:
        """
        Score filter (strict >) then greedy NMS. Returns a new list in selection
        order; `candidates` is left untouched.
        """

        cfg = self.cfg
        eligible = [d for d in candidates if d.score > cfg.score_threshold]
        if not eligible or cfg.max_outputs == 0:
            return []

        boxes, scores, class_ids = _to_arrays(eligible)
        if cfg.mode is SuppressionMode.PER_CLASS:
            keep = nms_per_class(boxes, scores, class_ids, cfg)
        else:
            keep = nms(boxes, scores, cfg)

        logger.debug(
            "nms(%s) kept %d/%d (iou=%.2f, max=%d)",
            cfg.mode.value,
            keep.size,
            len(eligible),
            cfg.iou_threshold,
            cfg.max_outputs,
        )
        return [eligible[i] for i in keep]


def suppress(
    candidates: Sequence[Detection],
    iou_threshold: float,
    score_threshold: float,
    max_outputs: int,
    mode: Union[str, SuppressionMode] = SuppressionMode.CLASS_AGNOSTIC,
) -> List[Detection]:
    cfg = NMSConfig(
        iou_threshold=iou_threshold,
        score_threshold=score_threshold,
        max_outputs=max_outputs,
        mode=mode,
    )
    return Suppressor(cfg).suppress(candidates)
