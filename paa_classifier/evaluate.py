"""
Evaluation module.
Scores held-out data and reports accuracy, the precision/recall curve and AUC-PR.
Exposes: evaluate_model(...)
"""
import warnings
from dataclasses import dataclass
from typing import List, Tuple

import numpy as np
import pandas as pd
from sklearn.exceptions import UndefinedMetricWarning
from sklearn.metrics import confusion_matrix, f1_score, roc_auc_score

from paa_classifier.config import DECISION_THRESHOLD


@dataclass
class PRCurve:
    """Precision/recall pairs ordered by descending threshold.

    Index 0 is the anchor point (recall 0, precision 1) with threshold +inf.
    """

    recall: np.ndarray
    precision: np.ndarray
    thresholds: np.ndarray

    def pairs(self) -> List[Tuple[float, float]]:
        return list(zip(self.recall.tolist(), self.precision.tolist()))


@dataclass
class EvalResult:
    accuracy: float
    auc_pr: float
    curve: PRCurve
    f1: float
    roc_auc: float
    confusion: dict
    threshold: float

    def as_dict(self) -> dict:
        return {
            "accuracy": self.accuracy,
            "auc_pr": self.auc_pr,
            "f1": self.f1,
            "roc_auc": self.roc_auc,
            "threshold": self.threshold,
            **self.confusion,
        }


def _as_labels(y) -> np.ndarray:
    y = np.asarray(y)
    if y.size and not np.isin(y, [0, 1]).all():
        raise ValueError(f"Labels must be 0/1, got {sorted(set(y.tolist()), key=str)}")
    return y.astype(int)


def predict_proba(model, X: pd.DataFrame) -> np.ndarray:
    """Predicted probability of the positive class for each record."""
    return np.asarray(model.predict_proba(X))[:, 1]


def binarize(proba, threshold: float = DECISION_THRESHOLD) -> np.ndarray:
    """Label 1 where the probability is strictly above the threshold."""
    return (np.asarray(proba) > threshold).astype(int)


def accuracy(y_true, y_pred) -> float:
    y_true = np.asarray(y_true)
    y_pred = np.asarray(y_pred)
    if len(y_true) == 0:
        raise ValueError("Cannot compute accuracy of an empty prediction set")
    if len(y_true) != len(y_pred):
        raise ValueError(f"Length mismatch: {len(y_true)} labels vs {len(y_pred)} predictions")
    return float(np.mean(y_true == y_pred))


def precision_recall_curve(y_true, proba) -> PRCurve:
    """
    Sweep the decision cut over every distinct probability, highest first.

    At a cut t, records with proba >= t count as positive. When there are no
    positive labels recall is undefined; it is reported as 0 at every cut.
    """
    y_true = _as_labels(y_true)
    proba = np.asarray(proba, dtype=float)
    if len(y_true) != len(proba):
        raise ValueError(f"Length mismatch: {len(y_true)} labels vs {len(proba)} scores")
    if len(y_true) == 0:
        raise ValueError("Cannot build a precision/recall curve from an empty prediction set")

    order = np.argsort(-proba, kind="mergesort")
    scores = proba[order]
    labels = y_true[order]

    # last position of each run of equal scores
    cut_idx = np.r_[np.flatnonzero(np.diff(scores)), len(scores) - 1]
    tps = np.cumsum(labels)[cut_idx]
    fps = (cut_idx + 1) - tps

    precision = tps / (tps + fps)
    n_pos = labels.sum()
    if n_pos == 0:
        warnings.warn(
            "No positive labels in y_true; recall is undefined and set to 0",
            UndefinedMetricWarning,
        )
        recall = np.zeros(len(tps), dtype=float)
    else:
        recall = tps / n_pos

    return PRCurve(
        recall=np.r_[0.0, recall],
        precision=np.r_[1.0, precision],
        thresholds=np.r_[np.inf, scores[cut_idx]],
    )


def auc_pr(curve: PRCurve) -> float:
    """Trapezoidal area under precision as a function of recall."""
    widths = np.diff(curve.recall)
    heights = (curve.precision[1:] + curve.precision[:-1]) / 2.0
    return float(np.sum(widths * heights))


def recall_at_threshold(y_true, proba, threshold: float = DECISION_THRESHOLD) -> float:
    y_true = _as_labels(y_true)
    n_pos = y_true.sum()
    if n_pos == 0:
        return 0.0
    y_pred = binarize(proba, threshold)
    return float(np.sum((y_pred == 1) & (y_true == 1)) / n_pos)


def evaluate_model(
    model,
    X_test: pd.DataFrame,
    y_test: pd.Series,
    threshold: float = DECISION_THRESHOLD,
) -> EvalResult:
    """
    Score the test set and compute accuracy, PR curve and AUC-PR.
    F1, ROC AUC and confusion counts are added via scikit-learn.
    """
    y_true = _as_labels(y_test)
    proba = predict_proba(model, X_test)
    y_pred = binarize(proba, threshold)

    curve = precision_recall_curve(y_true, proba)
    tn, fp, fn, tp = confusion_matrix(y_true, y_pred, labels=[0, 1]).ravel()
    if len(np.unique(y_true)) == 2:
        roc_auc = float(roc_auc_score(y_true, proba))
    else:
        roc_auc = float("nan")

    return EvalResult(
        accuracy=accuracy(y_true, y_pred),
        auc_pr=auc_pr(curve),
        curve=curve,
        f1=float(f1_score(y_true, y_pred, zero_division=0)),
        roc_auc=roc_auc,
        confusion={"tn": int(tn), "fp": int(fp), "fn": int(fn), "tp": int(tp)},
        threshold=threshold,
    )
