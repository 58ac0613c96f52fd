from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .activations import ActivationKind, parse_activation
from .decode import Decoder, DecoderConfig, TensorLike
from .errors import ConfigError, IndexAnomaly
from .nms import NMSConfig, SuppressionMode, Suppressor, parse_mode, select_topk
from .tensor import RawPrediction
from .types import Detection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PostprocessConfig:
    """
    Konfigurasi untuk post processing: decode -> filter -> NMS -> label check.
    """

    score_threshold: float = 0.25
    iou_threshold: float = 0.45
    max_outputs: int = 100
    objectness_activation: ActivationKind = ActivationKind.IDENTITY
    class_activation: ActivationKind = ActivationKind.IDENTITY
    has_objectness: bool = False
    suppression_mode: SuppressionMode = SuppressionMode.CLASS_AGNOSTIC
    # Index = class id. None skips the range check and labels fall back to str(id).
    label_table: Optional[Sequence[str]] = None
    # Second, independent threshold applied by the suppressor; None reuses score_threshold.
    nms_score_threshold: Optional[float] = None
    # If False, skip NMS and only keep top `max_outputs` by score.
    apply_nms: bool = True
    # Optional list of class IDs to keep; None keeps all.
    class_ids: Optional[Sequence[int]] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "objectness_activation", parse_activation(self.objectness_activation))
        object.__setattr__(self, "class_activation", parse_activation(self.class_activation))
        object.__setattr__(self, "suppression_mode", parse_mode(self.suppression_mode))
        if self.label_table is not None:
            object.__setattr__(self, "label_table", tuple(str(x) for x in self.label_table))
        if self.class_ids is not None:
            object.__setattr__(self, "class_ids", tuple(int(x) for x in self.class_ids))
        if not (0.0 <= self.score_threshold <= 1.0):
            raise ConfigError(f"score_threshold must be within [0, 1], got {self.score_threshold}")
        if self.nms_score_threshold is not None and not (0.0 <= self.nms_score_threshold <= 1.0):
            raise ConfigError(f"nms_score_threshold must be within [0, 1], got {self.nms_score_threshold}")
        # Builds (and validates) the stage configs eagerly.
        self.decoder_config()
        self.nms_config()

    def decoder_config(self) -> DecoderConfig:
        return DecoderConfig(
            objectness=self.objectness_activation,
            classes=self.class_activation,
            has_objectness=self.has_objectness,
        )

    def nms_config(self) -> NMSConfig:
        nms_score = self.score_threshold if self.nms_score_threshold is None else self.nms_score_threshold
        return NMSConfig(
            iou_threshold=self.iou_threshold,
            score_threshold=nms_score,
            max_outputs=self.max_outputs,
            mode=self.suppression_mode,
        )


@dataclass
class PostprocessResult:
    detections: List[Detection]
    anomalies: List[IndexAnomaly] = field(default_factory=list)
    num_candidates: int = 0


class Postprocessor:
    """
    Raw detector output -> final, deduplicated detections in model input space.

    Layout yang didukung: (1, 4 + K, N) atau (1, 5 + K, N) dengan objectness,
    contoh 1 x 84 x 8400 untuk yolov8 (COCO, 640x640).

    Coordinates are NOT mapped to the display; see `detkit.display`.
    """

    def __init__(self, cfg: PostprocessConfig = PostprocessConfig()):
        self.cfg = cfg
        self.decoder = Decoder(cfg.decoder_config())
        self.suppressor = Suppressor(cfg.nms_config())

    @property
    def suppression_mode(self) -> SuppressionMode:
        return self.suppressor.mode

    def process(self, preds: TensorLike) -> List[Detection]:
        return self.process_report(preds).detections

    def process_report(self, preds: TensorLike) -> PostprocessResult:
        tensor = preds if isinstance(preds, RawPrediction) else RawPrediction.from_array(preds)
        candidates = self.decoder.decode(tensor, self.cfg.score_threshold)
        self._warn_label_mismatch(tensor)
        num_candidates = len(candidates)

        # Optional class filter
        if self.cfg.class_ids is not None:
            allowed = set(self.cfg.class_ids)
            candidates = [d for d in candidates if d.class_id in allowed]

        # NMS (optional) / Top-K
        if self.cfg.apply_nms:
            final = self.suppressor.suppress(candidates)
        else:
            final = self._select_topk(candidates)

        detections, anomalies = self._check_labels(final)
        return PostprocessResult(detections=detections, anomalies=anomalies, num_candidates=num_candidates)

    def label_for(self, det: Detection) -> str:
        table = self.cfg.label_table
        if table is None:
            return str(det.class_id)
        if not (0 <= det.class_id < len(table)):
            raise IndexError(IndexAnomaly(class_id=det.class_id, num_labels=len(table), detection=det).message)
        return table[det.class_id]

    # ------------------------------------------------------------------ #
    # Helper internal
    # ------------------------------------------------------------------ #
    def _select_topk(self, candidates: Sequence[Detection]) -> List[Detection]:
        nms_score = self.suppressor.cfg.score_threshold
        eligible = [d for d in candidates if d.score > nms_score]
        if not eligible:
            return []
        scores = np.array([d.score for d in eligible], dtype=np.float64)
        return [eligible[i] for i in select_topk(scores, self.cfg.max_outputs)]

    def _check_labels(self, detections: List[Detection]) -> Tuple[List[Detection], List[IndexAnomaly]]:
        table = self.cfg.label_table
        if table is None:
            return detections, []

        kept: List[Detection] = []
        anomalies: List[IndexAnomaly] = []
        for det in detections:
            if 0 <= det.class_id < len(table):
                kept.append(det)
                continue
            anomaly = IndexAnomaly(class_id=det.class_id, num_labels=len(table), detection=det)
            logger.warning("dropping detection: %s", anomaly.message)
            anomalies.append(anomaly)
        return kept, anomalies

    def _warn_label_mismatch(self, tensor: RawPrediction) -> None:
        table = self.cfg.label_table
        if table is None:
            return
        k = self.decoder.num_classes(tensor)
        if k != len(table):
            logger.warning("label table has %d entries but tensor carries %d classes", len(table), k)
