import argparse
import json
import logging
from typing import Optional, Tuple

import numpy as np

from detkit import (
    PostprocessConfig,
    Postprocessor,
    load_label_table,
    load_postprocess_config,
    scale_to_display,
)


def _parse_size(value: Optional[str]) -> Optional[Tuple[int, int]]:
    if value is None:
        return None
    w, _, h = value.lower().partition("x")
    if not w.isdigit() or not h.isdigit():
        raise argparse.ArgumentTypeError(f"expected WIDTHxHEIGHT, got {value!r}")
    return int(w), int(h)


def main() -> int:
    parser = argparse.ArgumentParser(description="Decode + NMS a raw (1, C, N) detector tensor saved as .npy.")
    parser.add_argument("--tensor", required=True, help="Path to the raw prediction (.npy).")
    parser.add_argument("--config", default=None, help="JSON postprocess config (schema_version 1).")
    parser.add_argument("--labels", default=None, help="Label file (`names:` mapping or one label per line).")
    parser.add_argument("--conf", type=float, default=0.25, help="Score threshold (ignored with --config).")
    parser.add_argument("--iou", type=float, default=0.45, help="IoU threshold for NMS (ignored with --config).")
    parser.add_argument("--max-outputs", type=int, default=100, help="Maximum detections kept.")
    parser.add_argument("--per-class", action="store_true", help="Run NMS per class instead of class-agnostic.")
    parser.add_argument("--objectness", action="store_true", help="Tensor carries an objectness row after the box.")
    parser.add_argument("--activation", default="identity", help="identity / sigmoid / softmax for class scores.")
    parser.add_argument("--model-size", type=_parse_size, default=(640, 640), help="Model input WIDTHxHEIGHT.")
    parser.add_argument("--display-size", type=_parse_size, default=None, help="Map boxes to WIDTHxHEIGHT.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    labels = load_label_table(args.labels) if args.labels else None
    if args.config:
        cfg = load_postprocess_config(args.config, label_table=labels)
    else:
        cfg = PostprocessConfig(
            score_threshold=args.conf,
            iou_threshold=args.iou,
            max_outputs=args.max_outputs,
            class_activation=args.activation,
            objectness_activation="sigmoid" if args.activation == "sigmoid" else "identity",
            has_objectness=args.objectness,
            suppression_mode="per_class" if args.per_class else "class_agnostic",
            label_table=labels,
        )

    post = Postprocessor(cfg)
    result = post.process_report(np.load(args.tensor))

    detections = result.detections
    if args.display_size is not None:
        detections = scale_to_display(detections, args.model_size, args.display_size)

    for det in detections:
        print(
            json.dumps(
                {
                    "label": post.label_for(det),
                    "class_id": det.class_id,
                    "score": round(det.score, 4),
                    "box": [round(v, 2) for v in det.as_xyxy()],
                }
            )
        )
    logging.getLogger(__name__).info(
        "candidates=%d final=%d anomalies=%d mode=%s",
        result.num_candidates,
        len(result.detections),
        len(result.anomalies),
        post.suppression_mode.value,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
