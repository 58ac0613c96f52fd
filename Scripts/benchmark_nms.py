from __future__ import annotations

import argparse
import logging
import statistics
import time
from dataclasses import dataclass
from typing import List

import numpy as np

from detkit import PostprocessConfig, Postprocessor, RawPrediction


@dataclass(frozen=True)
class TimingSummary:
    n: int
    mean_ms: float
    p50_ms: float
    p95_ms: float


def _percentile(sorted_values: List[float], q: float) -> float:
    if not sorted_values:
        raise ValueError("No values provided.")
    # Linear interpolation between closest ranks.
    pos = (q / 100.0) * (len(sorted_values) - 1)
    lo = int(np.floor(pos))
    hi = int(np.ceil(pos))
    t = pos - lo
    return float(sorted_values[lo] * (1.0 - t) + sorted_values[hi] * t)


def _summarize_ms(values_s: List[float]) -> TimingSummary:
    ms = sorted(v * 1000.0 for v in values_s)
    return TimingSummary(
        n=len(ms),
        mean_ms=float(statistics.fmean(ms)),
        p50_ms=_percentile(ms, 50.0),
        p95_ms=_percentile(ms, 95.0),
    )


def _synthetic_tensor(anchors: int, classes: int, seed: int = 0) -> np.ndarray:
    # (1, 4 + K, N) with boxes spread over a 640x640 input and sparse confident anchors
    rng = np.random.default_rng(seed)
    boxes = np.vstack(
        [
            rng.uniform(0, 640, size=(2, anchors)),
            rng.uniform(8, 120, size=(2, anchors)),
        ]
    )
    scores = rng.uniform(0.0, 0.3, size=(classes, anchors))
    hot = rng.choice(anchors, size=max(1, anchors // 50), replace=False)
    scores[rng.integers(0, classes, size=hot.size), hot] = rng.uniform(0.5, 1.0, size=hot.size)
    return np.vstack([boxes, scores]).astype(np.float32)[None, ...]


def main() -> int:
    parser = argparse.ArgumentParser(description="Benchmark decode + NMS vs decode + top-K on a raw tensor.")
    parser.add_argument("--tensor", default=None, help="Raw (1, C, N) prediction saved as .npy.")
    parser.add_argument("--anchors", type=int, default=8400, help="Synthetic tensor: anchor count.")
    parser.add_argument("--classes", type=int, default=80, help="Synthetic tensor: class count.")
    parser.add_argument("--conf", type=float, default=0.25, help="Score threshold.")
    parser.add_argument("--iou", type=float, default=0.45, help="IoU threshold for NMS.")
    parser.add_argument("--max-det", type=int, default=100, help="Max detections kept after NMS/top-K.")
    parser.add_argument("--per-class-nms", action="store_true", help="Use per-class NMS (default is class-agnostic).")
    parser.add_argument("--warmup", type=int, default=10, help="Iterations run but not recorded.")
    parser.add_argument("--repeats", type=int, default=200, help="Recorded iterations.")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    if args.repeats < 1:
        raise ValueError("--repeats must be >= 1")

    raw = np.load(args.tensor) if args.tensor else _synthetic_tensor(args.anchors, args.classes)
    tensor = RawPrediction.from_array(raw)

    base = PostprocessConfig(
        score_threshold=args.conf,
        iou_threshold=args.iou,
        max_outputs=args.max_det,
        suppression_mode="per_class" if args.per_class_nms else "class_agnostic",
    )
    post_nms = Postprocessor(base)
    post_topk = Postprocessor(
        PostprocessConfig(
            score_threshold=base.score_threshold,
            iou_threshold=base.iou_threshold,
            max_outputs=base.max_outputs,
            suppression_mode=base.suppression_mode,
            apply_nms=False,
        )
    )

    t_decode: List[float] = []
    t_nms: List[float] = []
    t_topk: List[float] = []
    for i in range(args.warmup + args.repeats):
        t0 = time.perf_counter()
        candidates = post_nms.decoder.decode(tensor, base.score_threshold)
        t1 = time.perf_counter()
        post_nms.process(tensor)
        t2 = time.perf_counter()
        post_topk.process(tensor)
        t3 = time.perf_counter()
        if i >= args.warmup:
            t_decode.append(t1 - t0)
            t_nms.append(t2 - t1)
            t_topk.append(t3 - t2)

    for label, values in (("decode", t_decode), ("postprocess_with_nms", t_nms), ("postprocess_topk", t_topk)):
        s = _summarize_ms(values)
        print(f"{label}: n={s.n} mean={s.mean_ms:.3f}ms p50={s.p50_ms:.3f}ms p95={s.p95_ms:.3f}ms")
    print(f"shape={tensor.shape} candidates={len(candidates)} mode={post_nms.suppression_mode.value}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
