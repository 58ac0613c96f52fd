import unittest

import numpy as np

from detkit.decode import decode
from detkit.errors import ConfigError, ShapeError
from detkit.nms import SuppressionMode, suppress
from detkit.postprocess import PostprocessConfig, Postprocessor
from detkit.tensor import RawPrediction
from helpers import make_tensor


def _two_anchor_tensor() -> np.ndarray:
    # (1, 7, 2): [cx, cy, w, h, obj, c0, c1]; anchor 1 overlaps anchor 0 with a lower score
    return make_tensor(
        boxes=[[10, 10, 4, 4], [11, 10, 4, 4]],
        class_scores=[[0.8, 0.1], [0.6, 0.1]],
        objectness=[0.9, 0.8],
    )


class TestPostprocessor(unittest.TestCase):
    def test_end_to_end_two_anchors(self) -> None:
        p = _two_anchor_tensor()
        self.assertEqual(p.shape, (1, 7, 2))
        cfg = PostprocessConfig(score_threshold=0.2, iou_threshold=0.5, has_objectness=True)
        post = Postprocessor(cfg)

        candidates = post.decoder.decode(p, 0.2)
        self.assertEqual(len(candidates), 2)

        result = post.process_report(p)
        self.assertEqual(result.num_candidates, 2)
        self.assertEqual(len(result.detections), 1)
        det = result.detections[0]
        self.assertEqual(det.as_xyxy(), (8.0, 8.0, 12.0, 12.0))
        self.assertAlmostEqual(det.score, 0.72, places=5)
        self.assertEqual(det.class_id, 0)
        self.assertEqual(result.anomalies, [])

    def test_accepts_raw_prediction(self) -> None:
        t = RawPrediction.from_array(_two_anchor_tensor())
        post = Postprocessor(PostprocessConfig(score_threshold=0.2, has_objectness=True))
        self.assertEqual(len(post.process(t)), 1)

    def test_label_lookup(self) -> None:
        cfg = PostprocessConfig(score_threshold=0.2, has_objectness=True, label_table=["cat", "dog"])
        post = Postprocessor(cfg)
        dets = post.process(_two_anchor_tensor())
        self.assertEqual(post.label_for(dets[0]), "cat")

    def test_unlabeled_class_is_dropped_and_reported(self) -> None:
        # 3 classes in the tensor, only 2 labels
        p = make_tensor(
            boxes=[[10, 10, 4, 4], [100, 100, 4, 4]],
            class_scores=[[0.1, 0.2, 0.9], [0.8, 0.1, 0.1]],
        )
        post = Postprocessor(PostprocessConfig(label_table=("a", "b")))
        with self.assertLogs("detkit.postprocess", level="WARNING") as logs:
            result = post.process_report(p)
        self.assertEqual([d.class_id for d in result.detections], [0])
        self.assertEqual(len(result.anomalies), 1)
        self.assertEqual(result.anomalies[0].class_id, 2)
        self.assertEqual(result.anomalies[0].num_labels, 2)
        self.assertTrue(any("class_id 2" in line for line in logs.output))
        with self.assertRaises(IndexError):
            post.label_for(result.anomalies[0].detection)

    def test_class_ids_never_exceed_label_table(self) -> None:
        rng = np.random.default_rng(3)
        n = 300
        boxes = np.column_stack([rng.uniform(0, 640, n), rng.uniform(0, 640, n), np.full(n, 8.0), np.full(n, 8.0)])
        scores = rng.uniform(0, 1, size=(n, 3))
        post = Postprocessor(PostprocessConfig(label_table=("a", "b", "c"), max_outputs=300))
        result = post.process_report(make_tensor(boxes, scores))
        self.assertTrue(all(d.class_id in (0, 1, 2) for d in result.detections))
        self.assertEqual(result.anomalies, [])

    def test_decoded_score_equal_to_nms_threshold_is_dropped(self) -> None:
        # 0.3 has no exact float32 form; the suppressor must see the model's own value
        p = make_tensor(boxes=[[10, 10, 4, 4]], class_scores=[[0.3]], dtype=np.float64)
        post = Postprocessor(PostprocessConfig(score_threshold=0.2, nms_score_threshold=0.3))
        self.assertEqual(post.process(p), [])
        self.assertEqual(suppress(decode(p, 0.2), 0.5, 0.3, 10), [])

        above = make_tensor(boxes=[[10, 10, 4, 4]], class_scores=[[0.30000001]], dtype=np.float64)
        (det,) = post.process(above)
        self.assertEqual(det.score, 0.30000001)
        self.assertEqual(det.as_xyxy(), (8.0, 8.0, 12.0, 12.0))

    def test_second_threshold_is_stricter(self) -> None:
        p = make_tensor(
            boxes=[[10, 10, 4, 4], [100, 100, 4, 4]],
            class_scores=[[0.3], [0.6]],
        )
        post = Postprocessor(PostprocessConfig(score_threshold=0.2, nms_score_threshold=0.5))
        result = post.process_report(p)
        self.assertEqual(result.num_candidates, 2)
        self.assertEqual([round(d.score, 2) for d in result.detections], [0.6])

    def test_class_filter(self) -> None:
        p = make_tensor(
            boxes=[[10, 10, 4, 4], [100, 100, 4, 4]],
            class_scores=[[0.9, 0.1], [0.1, 0.8]],
        )
        dets = Postprocessor(PostprocessConfig(class_ids=[1])).process(p)
        self.assertEqual([d.class_id for d in dets], [1])

    def test_topk_without_nms(self) -> None:
        p = make_tensor(
            boxes=[[10, 10, 4, 4], [10, 10, 4, 4], [10, 10, 4, 4]],
            class_scores=[[0.5], [0.9], [0.7]],
        )
        dets = Postprocessor(PostprocessConfig(apply_nms=False, max_outputs=2)).process(p)
        self.assertEqual([round(d.score, 2) for d in dets], [0.9, 0.7])

    def test_mode_exposed(self) -> None:
        post = Postprocessor(PostprocessConfig(suppression_mode="per_class"))
        self.assertIs(post.suppression_mode, SuppressionMode.PER_CLASS)
        self.assertIs(Postprocessor().suppression_mode, SuppressionMode.CLASS_AGNOSTIC)

    def test_empty_result(self) -> None:
        p = make_tensor(boxes=[[10, 10, 4, 4]], class_scores=[[0.1, 0.1]])
        result = Postprocessor().process_report(p)
        self.assertEqual(result.detections, [])
        self.assertEqual(result.num_candidates, 0)

    def test_config_errors(self) -> None:
        with self.assertRaises(ConfigError):
            PostprocessConfig(iou_threshold=2.0)
        with self.assertRaises(ConfigError):
            PostprocessConfig(max_outputs=-5)
        with self.assertRaises(ConfigError):
            PostprocessConfig(class_activation="relu")
        with self.assertRaises(ConfigError):
            PostprocessConfig(score_threshold=-0.1)

    def test_shape_error_propagates(self) -> None:
        with self.assertRaises(ShapeError):
            Postprocessor().process(np.zeros((1, 4, 8400), dtype=np.float32))


if __name__ == "__main__":
    unittest.main()
