import random
import unittest

import numpy as np

from detkit.errors import ConfigError
from detkit.nms import NMSConfig, SuppressionMode, Suppressor, nms, select_topk, suppress
from detkit.types import Detection


def _det(x1, y1, x2, y2, score, class_id=0) -> Detection:
    return Detection(x1=float(x1), y1=float(y1), x2=float(x2), y2=float(y2), score=float(score), class_id=class_id)


class TestNms(unittest.TestCase):
    def test_iou_threshold_boundary(self) -> None:
        # IoU(A, B) = 25 / 175 ~= 0.1429
        a = _det(0, 0, 10, 10, 0.9)
        b = _det(5, 5, 15, 15, 0.8)
        self.assertEqual(suppress([a, b], 0.5, 0.0, 10), [a, b])
        self.assertEqual(suppress([a, b], 0.1, 0.0, 10), [a])

    def test_output_in_selection_order(self) -> None:
        dets = [_det(0, 0, 1, 1, 0.2), _det(10, 10, 11, 11, 0.9), _det(20, 20, 21, 21, 0.5)]
        out = suppress(dets, 0.5, 0.0, 10)
        self.assertEqual([d.score for d in out], [0.9, 0.5, 0.2])

    def test_score_filter_is_strict(self) -> None:
        dets = [_det(0, 0, 1, 1, 0.3), _det(10, 10, 11, 11, 0.31)]
        out = suppress(dets, 0.5, 0.3, 10)
        self.assertEqual(out, [dets[1]])

    def test_empty_and_zero_outputs(self) -> None:
        self.assertEqual(suppress([], 0.5, 0.25, 10), [])
        self.assertEqual(suppress([_det(0, 0, 1, 1, 0.9)], 0.5, 0.25, 0), [])

    def test_max_output_cap(self) -> None:
        dets = [_det(i * 20, 0, i * 20 + 10, 10, 0.3 + i * 0.005) for i in range(100)]
        out = suppress(dets, 0.5, 0.25, 5)
        self.assertEqual(len(out), 5)
        expected = sorted(dets, key=lambda d: d.score, reverse=True)[:5]
        self.assertEqual(out, expected)

    def test_deterministic_under_shuffle(self) -> None:
        rng = np.random.default_rng(7)
        dets = []
        for i in range(60):
            x, y = rng.uniform(0, 100, size=2)
            w, h = rng.uniform(5, 30, size=2)
            dets.append(_det(x, y, x + w, y + h, 0.3 + i * 0.01, class_id=i % 3))
        baseline = suppress(dets, 0.45, 0.25, 20)
        shuffled = list(dets)
        for seed in range(5):
            random.Random(seed).shuffle(shuffled)
            self.assertEqual(suppress(shuffled, 0.45, 0.25, 20), baseline)
        self.assertEqual(repr(suppress(dets, 0.45, 0.25, 20)), repr(baseline))

    def test_equal_scores_tie_by_input_index(self) -> None:
        a = _det(0, 0, 10, 10, 0.5)
        b = _det(1, 1, 11, 11, 0.5)
        self.assertEqual(suppress([a, b], 0.3, 0.0, 10), [a])
        self.assertEqual(suppress([b, a], 0.3, 0.0, 10), [b])

    def test_iou_zero_suppresses_any_overlap(self) -> None:
        a = _det(0, 0, 10, 10, 0.9)
        touching = _det(9.5, 9.5, 20, 20, 0.8)
        disjoint = _det(10, 0, 20, 10, 0.7)
        self.assertEqual(suppress([a, touching, disjoint], 0.0, 0.0, 10), [a, disjoint])

    def test_iou_one_disables_suppression(self) -> None:
        a = _det(0, 0, 10, 10, 0.9)
        same = _det(0, 0, 10, 10, 0.8)
        self.assertEqual(suppress([a, same], 1.0, 0.0, 10), [a, same])

    def test_zero_area_candidates(self) -> None:
        a = _det(5, 5, 5, 5, 0.9)
        b = _det(5, 5, 5, 5, 0.8)
        self.assertEqual(len(suppress([a, b], 0.0, 0.0, 10)), 2)

    def test_input_not_mutated(self) -> None:
        dets = [_det(0, 0, 10, 10, 0.5), _det(1, 1, 10, 10, 0.9)]
        before = list(dets)
        out = suppress(dets, 0.5, 0.0, 10)
        self.assertEqual(dets, before)
        self.assertIsNot(out, dets)

    def test_class_agnostic_vs_per_class(self) -> None:
        person = _det(0, 0, 10, 10, 0.9, class_id=0)
        bike = _det(1, 1, 10, 10, 0.8, class_id=1)
        agnostic = Suppressor(NMSConfig(iou_threshold=0.5, score_threshold=0.0))
        per_class = Suppressor(NMSConfig(iou_threshold=0.5, score_threshold=0.0, mode="per_class"))
        self.assertIs(agnostic.mode, SuppressionMode.CLASS_AGNOSTIC)
        self.assertIs(per_class.mode, SuppressionMode.PER_CLASS)
        self.assertEqual(agnostic.suppress([person, bike]), [person])
        self.assertEqual(per_class.suppress([bike, person]), [person, bike])

    def test_per_class_still_suppresses_within_class(self) -> None:
        a = _det(0, 0, 10, 10, 0.9, class_id=2)
        b = _det(1, 1, 10, 10, 0.8, class_id=2)
        c = _det(50, 50, 60, 60, 0.85, class_id=1)
        out = suppress([a, b, c], 0.5, 0.0, 10, mode=SuppressionMode.PER_CLASS)
        self.assertEqual(out, [a, c])

    def test_per_class_respects_cap(self) -> None:
        dets = [_det(i * 20, 0, i * 20 + 10, 10, 0.9 - i * 0.01, class_id=i % 4) for i in range(12)]
        out = suppress(dets, 0.5, 0.0, 3, mode="per_class")
        self.assertEqual(out, dets[:3])

    def test_invalid_config(self) -> None:
        with self.assertRaises(ConfigError):
            NMSConfig(iou_threshold=1.5)
        with self.assertRaises(ConfigError):
            NMSConfig(iou_threshold=-0.1)
        with self.assertRaises(ConfigError):
            NMSConfig(max_outputs=-1)
        with self.assertRaises(ConfigError):
            NMSConfig(mode="soft")

    def test_array_nms_indices(self) -> None:
        boxes = np.array([[0, 0, 10, 10], [1, 1, 10, 10], [20, 20, 30, 30]], dtype=np.float32)
        scores = np.array([0.6, 0.9, 0.7], dtype=np.float32)
        keep = nms(boxes, scores, NMSConfig(iou_threshold=0.5))
        self.assertTrue(np.array_equal(keep, [1, 2]))

    def test_select_topk(self) -> None:
        scores = np.array([0.1, 0.9, 0.5, 0.9])
        self.assertTrue(np.array_equal(select_topk(scores, 3), [1, 3, 2]))


if __name__ == "__main__":
    unittest.main()
