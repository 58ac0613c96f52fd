from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .errors import ConfigError

MODES = ("stretch", "letterbox")


@dataclass(frozen=True)
class PreparedInput:
    blob: np.ndarray
    orig_size: Tuple[int, int]
    ratio: Tuple[float, float]
    pad: Tuple[float, float]


def _require_cv2():
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for preprocessing. Install with `pip install opencv-python`.") from e
    return cv2


def letterbox(
    image: np.ndarray,
    new_shape: Tuple[int, int] = (640, 640),
    color: Tuple[int, int, int] = (114, 114, 114),
):
    """
    Aspect-preserving resize, then pad evenly to `new_shape` (width, height).

    Returns:
        padded image, ratio (rw, rh), pad (dw, dh) on the left/top
    """

    cv2 = _require_cv2()
    h, w = image.shape[:2]
    new_w, new_h = new_shape

    r = min(new_w / w, new_h / h)
    resized_w, resized_h = int(round(w * r)), int(round(h * r))
    dw, dh = (new_w - resized_w) / 2, (new_h - resized_h) / 2

    if (w, h) != (resized_w, resized_h):
        image = cv2.resize(image, (resized_w, resized_h), interpolation=cv2.INTER_LINEAR)

    top, bottom = int(round(dh - 0.1)), int(round(dh + 0.1))
    left, right = int(round(dw - 0.1)), int(round(dw + 0.1))
    padded = cv2.copyMakeBorder(image, top, bottom, left, right, cv2.BORDER_CONSTANT, value=color)
    return padded, (r, r), (dw, dh)


def stretch(image: np.ndarray, new_shape: Tuple[int, int] = (640, 640)):
    """Plain bilinear resize to `new_shape`, aspect ratio not preserved."""

    cv2 = _require_cv2()
    h, w = image.shape[:2]
    new_w, new_h = new_shape
    resized = cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_LINEAR)
    return resized, (new_w / w, new_h / h), (0.0, 0.0)


def prepare_input(
    image_bgr: np.ndarray,
    input_size: Tuple[int, int] = (640, 640),
    mode: str = "stretch",
) -> PreparedInput:
    """
    BGR image -> (1, 3, H, W) float32 RGB blob in [0, 1].
    """

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")
    if mode not in MODES:
        raise ConfigError(f"Unsupported resize mode: {mode!r} (expected one of {MODES})")

    orig_h, orig_w = image_bgr.shape[:2]
    if mode == "letterbox":
        img, ratio, pad = letterbox(image_bgr, new_shape=input_size)
    else:
        img, ratio, pad = stretch(image_bgr, new_shape=input_size)

    # BGR -> RGB, normalize, HWC -> CHW, add batch
    blob = img[:, :, ::-1].astype(np.float32) / 255.0
    blob = np.ascontiguousarray(np.transpose(blob, (2, 0, 1))[None, ...])

    return PreparedInput(blob=blob, orig_size=(orig_w, orig_h), ratio=ratio, pad=pad)
