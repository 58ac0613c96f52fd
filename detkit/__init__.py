"""
Post-processing for on-device YOLO-style detectors.

Takes the raw (1, C, N) prediction tensor from an external inference engine and
returns deduplicated, labeled boxes in model input space. Core decode/NMS only
needs NumPy; OpenCV is imported lazily for preprocessing and drawing.
"""

from .types import Detection
from .errors import ConfigError, DetkitError, IndexAnomaly, ShapeError
from .tensor import RawPrediction
from .activations import ActivationKind
from .boxes import box_area, cxcywh_to_xyxy, iou, pairwise_iou
from .decode import Decoder, DecoderConfig, decode
from .nms import NMSConfig, SuppressionMode, Suppressor, nms, suppress
from .postprocess import PostprocessConfig, Postprocessor, PostprocessResult
from .config import load_postprocess_config, postprocess_config_from_dict
from .metadata import load_label_table
from .display import scale_to_display, unletterbox
from .preprocess import PreparedInput, prepare_input
from .runtime import DetectionPipeline
from .visualize import draw_overlay

__all__ = [
    "Detection",
    "ConfigError",
    "DetkitError",
    "IndexAnomaly",
    "ShapeError",
    "RawPrediction",
    "ActivationKind",
    "box_area",
    "cxcywh_to_xyxy",
    "iou",
    "pairwise_iou",
    "Decoder",
    "DecoderConfig",
    "decode",
    "NMSConfig",
    "SuppressionMode",
    "Suppressor",
    "nms",
    "suppress",
    "PostprocessConfig",
    "Postprocessor",
    "PostprocessResult",
    "load_postprocess_config",
    "postprocess_config_from_dict",
    "load_label_table",
    "scale_to_display",
    "unletterbox",
    "PreparedInput",
    "prepare_input",
    "DetectionPipeline",
    "draw_overlay",
]
