import numpy as np
import pytest
from sklearn.exceptions import UndefinedMetricWarning
from sklearn.metrics import accuracy_score
from sklearn.metrics import precision_recall_curve as sk_precision_recall_curve

from paa_classifier.evaluate import (
    accuracy,
    auc_pr,
    binarize,
    evaluate_model,
    precision_recall_curve,
    recall_at_threshold,
)


class _FixedScores:
    """Stands in for a fitted model; returns preset probabilities."""

    def __init__(self, proba):
        self.proba = np.asarray(proba, dtype=float)

    def predict_proba(self, X):
        return np.column_stack([1 - self.proba, self.proba])


Y = np.array([1, 0, 1, 0])
P = np.array([0.9, 0.8, 0.7, 0.1])


class TestPrecisionRecallCurve:
    def test_hand_computed_curve(self):
        curve = precision_recall_curve(Y, P)
        np.testing.assert_allclose(curve.recall, [0, 0.5, 0.5, 1, 1])
        np.testing.assert_allclose(curve.precision, [1, 1, 0.5, 2 / 3, 0.5])
        np.testing.assert_allclose(curve.thresholds, [np.inf, 0.9, 0.8, 0.7, 0.1])
        assert curve.pairs()[1] == (0.5, 1.0)

    def test_hand_computed_area(self):
        curve = precision_recall_curve(Y, P)
        expected = 0.5 * (1 + 1) / 2 + 0.5 * (0.5 + 2 / 3) / 2
        assert auc_pr(curve) == pytest.approx(expected)

    def test_ties_collapse_to_one_cut(self):
        curve = precision_recall_curve([1, 0], [0.5, 0.5])
        np.testing.assert_allclose(curve.recall, [0, 1])
        np.testing.assert_allclose(curve.precision, [1, 0.5])
        assert auc_pr(curve) == pytest.approx(0.75)

    def test_contains_sklearn_points(self):
        rng = np.random.RandomState(0)
        y = rng.randint(0, 2, 60)
        p = np.round(rng.rand(60), 2)
        ours = {(round(r, 9), round(q, 9)) for r, q in precision_recall_curve(y, p).pairs()}
        precision, recall, _ = sk_precision_recall_curve(y, p)
        theirs = {(round(r, 9), round(q, 9)) for r, q in zip(recall, precision)}
        assert theirs <= ours

    def test_recall_non_decreasing(self):
        rng = np.random.RandomState(1)
        curve = precision_recall_curve(rng.randint(0, 2, 100), rng.rand(100))
        assert np.all(np.diff(curve.recall) >= 0)
        assert np.all(np.diff(curve.thresholds) < 0)

    def test_all_negative(self):
        with pytest.warns(UndefinedMetricWarning):
            curve = precision_recall_curve([0, 0, 0], [0.2, 0.6, 0.9])
        assert np.all(curve.recall == 0)
        assert auc_pr(curve) == 0.0

    def test_all_positive(self):
        curve = precision_recall_curve([1, 1, 1], [0.2, 0.6, 0.9])
        assert np.all(curve.precision == 1)
        assert auc_pr(curve) == pytest.approx(1.0)

    def test_rejects_non_binary_labels(self):
        with pytest.raises(ValueError, match="0/1"):
            precision_recall_curve([0, 2], [0.1, 0.2])

    def test_rejects_fractional_labels(self):
        with pytest.raises(ValueError, match="0/1"):
            precision_recall_curve([0.7, 1, 0], [0.9, 0.8, 0.1])
        with pytest.raises(ValueError, match="0/1"):
            recall_at_threshold([0.7, 1, 0], [0.9, 0.8, 0.1])

    def test_accepts_float_encoded_labels(self):
        curve = precision_recall_curve(np.array([1.0, 0.0, 1.0, 0.0]), P)
        np.testing.assert_allclose(curve.recall, [0, 0.5, 0.5, 1, 1])

    def test_rejects_empty(self):
        with pytest.raises(ValueError, match="empty"):
            precision_recall_curve([], [])


class TestThresholds:
    def test_binarize_is_strict(self):
        assert binarize([0.5, 0.51, 0.2], 0.5).tolist() == [0, 1, 0]

    def test_threshold_one_gives_zero_recall(self):
        assert recall_at_threshold(Y, P, 1.0) == 0.0
        assert recall_at_threshold(Y, [1.0, 0.0, 1.0, 0.0], 1.0) == 0.0

    def test_raising_threshold_never_increases_recall(self):
        rng = np.random.RandomState(2)
        y = rng.randint(0, 2, 200)
        p = rng.rand(200)
        recalls = [recall_at_threshold(y, p, t) for t in np.linspace(0, 1, 41)]
        assert all(a >= b for a, b in zip(recalls, recalls[1:]))


class TestAccuracy:
    def test_matches_sklearn(self):
        rng = np.random.RandomState(3)
        y = rng.randint(0, 2, 50)
        pred = rng.randint(0, 2, 50)
        assert accuracy(y, pred) == pytest.approx(accuracy_score(y, pred))

    def test_empty(self):
        with pytest.raises(ValueError):
            accuracy([], [])

    def test_length_mismatch(self):
        with pytest.raises(ValueError, match="mismatch"):
            accuracy([0, 1], [0])


class TestEvaluateModel:
    def test_metrics_and_bounds(self):
        result = evaluate_model(_FixedScores(P), X_test=np.zeros((4, 1)), y_test=Y)
        assert result.accuracy == 0.75
        assert 0.0 <= result.auc_pr <= 1.0
        assert result.confusion == {"tn": 1, "fp": 1, "fn": 0, "tp": 2}
        assert result.roc_auc == pytest.approx(0.75)
        summary = result.as_dict()
        assert summary["threshold"] == 0.5
        assert summary["tp"] == 2

    def test_single_class_test_set(self):
        with pytest.warns(UndefinedMetricWarning):
            result = evaluate_model(_FixedScores([0.1, 0.7]), X_test=np.zeros((2, 1)), y_test=[0, 0])
        assert np.isnan(result.roc_auc)
        assert result.auc_pr == 0.0
        assert result.accuracy == 0.5
