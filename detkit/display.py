"""
Coordinate mapping from model input space to whatever the caller draws on.

Final detections stay in model input space (e.g. 640x640). The display layer
scales x by display_w / model_w and y by display_h / model_h before drawing;
the postprocessor never does this itself.
"""

from __future__ import annotations

from typing import Iterable, List, Tuple

from .errors import ConfigError
from .types import Detection


def _check_size(name: str, size: Tuple[float, float]) -> Tuple[float, float]:
    w, h = size
    if w <= 0 or h <= 0:
        raise ConfigError(f"{name} must be positive, got {size}")
    return float(w), float(h)


def scale_to_display(
    detections: Iterable[Detection],
    model_size: Tuple[float, float],
    display_size: Tuple[float, float],
) -> List[Detection]:
    """
    Args:
        model_size: (width, height) of the model input
        display_size: (width, height) of the drawing surface
    """

    mw, mh = _check_size("model_size", model_size)
    dw, dh = _check_size("display_size", display_size)
    sx, sy = dw / mw, dh / mh
    return [
        Detection(
            x1=d.x1 * sx,
            y1=d.y1 * sy,
            x2=d.x2 * sx,
            y2=d.y2 * sy,
            score=d.score,
            class_id=d.class_id,
        )
        for d in detections
    ]


def unletterbox(
    detections: Iterable[Detection],
    orig_size: Tuple[int, int],
    ratio: Tuple[float, float],
    pad: Tuple[float, float] = (0.0, 0.0),
) -> List[Detection]:
    """
    Map boxes dari letterbox ke original image, clipped to the image.

    Args:
        orig_size: (width, height) untuk gambar awal
        ratio: (rw, rh) scaling digunakan untuk resize
        pad: (dw, dh) digunakan ketika letterbox (left/top)
    """

    orig_w, orig_h = orig_size
    rw, rh = ratio
    if rw <= 0 or rh <= 0:
        raise ConfigError(f"ratio must be positive, got {ratio}")
    pw, ph = pad

    def _x(v: float) -> float:
        return min(max((v - pw) / rw, 0.0), orig_w - 1)

    def _y(v: float) -> float:
        return min(max((v - ph) / rh, 0.0), orig_h - 1)

    return [
        Detection(x1=_x(d.x1), y1=_y(d.y1), x2=_x(d.x2), y2=_y(d.y2), score=d.score, class_id=d.class_id)
        for d in detections
    ]
