from __future__ import annotations

from typing import Optional, Sequence, Tuple

import numpy as np

from .types import Detection

BOX_COLOR = (0, 200, 0)
SELECTED_COLOR = (0, 64, 255)


def _label_text(det: Detection, labels: Optional[Sequence[str]], show_score: bool) -> str:
    if labels is not None and 0 <= det.class_id < len(labels):
        text = labels[det.class_id]
    else:
        text = str(det.class_id)
    if show_score:
        text = f"{text} {det.score:.2f}"
    return text


def draw_overlay(
    image_bgr: np.ndarray,
    detections: Sequence[Detection],
    labels: Optional[Sequence[str]] = None,
    *,
    selected: Optional[int] = None,
    show_score: bool = True,
    color: Tuple[int, int, int] = BOX_COLOR,
    selected_color: Tuple[int, int, int] = SELECTED_COLOR,
    thickness: int = 2,
    font_scale: float = 0.5,
) -> np.ndarray:
    """
    Draw labeled boxes on a copy of `image_bgr`.

    Detections must already be in the image's pixel space (see
    `detkit.display.scale_to_display`). `selected` indexes into `detections`;
    that box is drawn thicker in `selected_color`.
    """

    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for draw_overlay(). Install with `pip install opencv-python`.") from e

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

    out = image_bgr.copy()
    h, w = out.shape[:2]

    for idx, det in enumerate(detections):
        x1, y1, x2, y2 = (int(round(v)) for v in det.as_xyxy())
        x1, x2 = int(np.clip(x1, 0, w - 1)), int(np.clip(x2, 0, w - 1))
        y1, y2 = int(np.clip(y1, 0, h - 1)), int(np.clip(y2, 0, h - 1))

        is_selected = selected is not None and idx == selected
        box_color = selected_color if is_selected else color
        cv2.rectangle(out, (x1, y1), (x2, y2), box_color, thickness=thickness * 2 if is_selected else thickness)

        text = _label_text(det, labels, show_score)
        (tw, th), baseline = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, font_scale, 1)
        # Above the box when there is room, else inside it.
        y_top = y1 - th - baseline if y1 - th - baseline >= 0 else y1
        cv2.rectangle(out, (x1, y_top), (min(x1 + tw, w - 1), min(y_top + th + baseline, h - 1)), box_color, -1)
        cv2.putText(
            out,
            text,
            (x1, min(y_top + th, h - 1)),
            cv2.FONT_HERSHEY_SIMPLEX,
            font_scale,
            (255, 255, 255),
            thickness=1,
            lineType=cv2.LINE_AA,
        )

    return out
