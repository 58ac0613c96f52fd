"""
Anchor decoder: raw (1, C, N) tensor -> candidate detections.

Score convention
----------------
Fused confidence is `act_obj(obj) * act_cls(class_c)`. Which activations apply
depends on how the model was exported:

- Anchor-free YOLOv8/v9 exports (the default here, `has_objectness=False`)
  already emit sigmoid class probabilities and no objectness row, so both
  activations are identity and the score is the class probability itself.
- YOLOv5-style exports carry an objectness row. Exports that keep the final
  sigmoid need identity/identity; raw-logit exports need sigmoid/sigmoid.

Picking the wrong pair does not raise; it silently rescales every score, so
confirm against the specific model before trusting thresholds.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Tuple, Union

import numpy as np

from .activations import ActivationKind, apply_activation, parse_activation
from .boxes import cxcywh_to_xyxy
from .errors import ConfigError, ShapeError
from .tensor import RawPrediction
from .types import Detection

logger = logging.getLogger(__name__)

BOX_CHANNELS = 4

TensorLike = Union[RawPrediction, np.ndarray]


@dataclass(frozen=True)
class DecoderConfig:
    objectness: ActivationKind = ActivationKind.IDENTITY
    classes: ActivationKind = ActivationKind.IDENTITY
    # (C+5, A) layouts carry an objectness row after the box rows.
    has_objectness: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "objectness", parse_activation(self.objectness))
        object.__setattr__(self, "classes", parse_activation(self.classes))
        if self.objectness is ActivationKind.SOFTMAX:
            raise ConfigError("softmax is not defined over a single objectness channel")

    @property
    def first_class_channel(self) -> int:
        return BOX_CHANNELS + (1 if self.has_objectness else 0)


class Decoder:
    def __init__(self, cfg: DecoderConfig = DecoderConfig()):
        self.cfg = cfg

    def num_classes(self, tensor: RawPrediction) -> int:
        return tensor.num_channels - self.cfg.first_class_channel

    def _check_shape(self, tensor: RawPrediction) -> None:
        channels, anchors = tensor.num_channels, tensor.num_anchors
        if channels < BOX_CHANNELS + 1:
            raise ShapeError(f"Need at least {BOX_CHANNELS + 1} channels (box + 1 class), got {channels}")
        if self.cfg.has_objectness and channels < self.cfg.first_class_channel + 1:
            raise ShapeError(f"Expected objectness + class scores, got {channels} channels")
        if anchors == 0:
            raise ShapeError("Tensor has no anchors")

    def decode_arrays(self, tensor: TensorLike) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Decode every anchor into (boxes_xyxy (N, 4), scores (N,), class_ids (N,)).

        No thresholding; anchor order is preserved.
        """

        t = tensor if isinstance(tensor, RawPrediction) else RawPrediction.from_array(tensor)
        self._check_shape(t)

        first = self.cfg.first_class_channel
        class_rows = apply_activation(self.cfg.classes, t.rows(first, t.num_channels), axis=0)
        if self.cfg.has_objectness:
            objectness = apply_activation(self.cfg.objectness, t.row(BOX_CHANNELS))
            confidence = class_rows * objectness[None, :]
        else:
            confidence = class_rows

        # argmax returns the first maximum, so ties go to the lowest class index.
        class_ids = np.argmax(confidence, axis=0)
        scores = confidence[class_ids, np.arange(t.num_anchors)]

        boxes = cxcywh_to_xyxy(t.row(0), t.row(1), t.row(2), t.row(3))
        return boxes, scores, class_ids.astype(np.int64)

    def decode(self, tensor: TensorLike, score_threshold: float) -> List[Detection]:
        """
        Candidates whose best fused confidence is strictly above `score_threshold`.
        """

        boxes, scores, class_ids = self.decode_arrays(tensor)
        keep = np.flatnonzero(scores > score_threshold)
        logger.debug("decoded %d/%d anchors above %.3f", keep.size, scores.size, score_threshold)
        return [
            Detection(
                x1=float(boxes[i, 0]),
                y1=float(boxes[i, 1]),
                x2=float(boxes[i, 2]),
                y2=float(boxes[i, 3]),
                score=float(scores[i]),
                class_id=int(class_ids[i]),
            )
            for i in keep
        ]


def decode(tensor: TensorLike, score_threshold: float, cfg: DecoderConfig = DecoderConfig()) -> List[Detection]:
    return Decoder(cfg).decode(tensor, score_threshold)
