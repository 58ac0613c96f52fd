from __future__ import annotations

from typing import Callable, List, Tuple

import numpy as np

from .display import unletterbox
from .postprocess import PostprocessConfig, Postprocessor, PostprocessResult
from .preprocess import prepare_input
from .types import Detection


class DetectionPipeline:
    """
    Preprocess -> inference -> postprocess, for one BGR image at a time.

    `infer_fn` is the external inference engine: it receives the (1, 3, H, W)
    blob and returns the raw (1, C, N) prediction tensor.
    """

    def __init__(
        self,
        infer_fn: Callable[[np.ndarray], np.ndarray],
        *,
        post_cfg: PostprocessConfig = PostprocessConfig(),
        input_size: Tuple[int, int] = (640, 640),
        mode: str = "stretch",
    ):
        self._infer_fn = infer_fn
        self.post = Postprocessor(post_cfg)
        self.input_size = input_size
        self.mode = mode

    def run(self, image_bgr: np.ndarray, *, to_image: bool = True) -> PostprocessResult:
        """
        Args:
            to_image: map boxes back to the source image; otherwise they stay in model input space
        """

        prep = prepare_input(image_bgr, input_size=self.input_size, mode=self.mode)
        preds = self._infer_fn(prep.blob)
        result = self.post.process_report(preds)
        if to_image:
            result.detections = unletterbox(result.detections, prep.orig_size, prep.ratio, prep.pad)
        return result

    def __call__(self, image_bgr: np.ndarray) -> List[Detection]:
        return self.run(image_bgr).detections
