"""
Training pipeline.
Wires loading, encoding, splitting, training and evaluation together.
1) Load and encode the raw PAA file
2) Stratified train/val/test split
3) Train with early stopping on the validation set
4) Evaluate on the test set
5) Save model and artifacts for predict.py
"""
import math
import pickle
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd
from sklearn.exceptions import ConvergenceWarning

from paa_classifier.config import (
    DATA_CSV,
    MODEL_ARTIFACT_DIR,
    TARGET_COL,
    ID_COLS,
    TRAIN_SIZE,
    VAL_SIZE,
    TEST_SIZE,
    RANDOM_STATE,
    EARLY_STOPPING_ROUNDS,
    DECISION_THRESHOLD,
)
from paa_classifier.data import load_dataset, split_X_y, get_train_val_test_split
from paa_classifier.preprocess import encode_dataset
from paa_classifier.model import build_model
from paa_classifier.evaluate import evaluate_model


MODEL_FILE = "model.pkl"
ARTIFACTS_FILE = "artifacts.pkl"
TRAINING_LOG_FILE = "training_log.csv"

LOSS_METRIC = "Logloss"


class EarlyStoppingMonitor:
    """
    CatBoost callback that records (train loss, validation loss) after every
    round and stops once validation loss has not improved for `patience`
    consecutive rounds.
    """

    def __init__(self, patience: int = EARLY_STOPPING_ROUNDS, metric: str = LOSS_METRIC):
        if patience < 1:
            raise ValueError(f"patience must be at least 1, got {patience}")
        self.patience = patience
        self.metric = metric
        self.history: List[Tuple[float, float]] = []
        self.best_loss = math.inf
        self.best_iteration = -1
        self.rounds_without_improvement = 0
        self.stopped_early = False
        self._warned_non_finite = False

    def after_iteration(self, info) -> bool:
        train_loss = float(info.metrics["learn"][self.metric][-1])
        val_loss = float(info.metrics["validation"][self.metric][-1])
        return self.update(train_loss, val_loss)

    def update(self, train_loss: float, val_loss: float) -> bool:
        """Record one round. Returns False when training should stop."""
        self.history.append((train_loss, val_loss))
        iteration = len(self.history) - 1

        if not (math.isfinite(train_loss) and math.isfinite(val_loss)) and not self._warned_non_finite:
            warnings.warn(
                f"Non-finite loss at iteration {iteration} "
                f"(train={train_loss}, validation={val_loss})",
                RuntimeWarning,
            )
            self._warned_non_finite = True

        if val_loss < self.best_loss:
            self.best_loss = val_loss
            self.best_iteration = iteration
            self.rounds_without_improvement = 0
        else:
            self.rounds_without_improvement += 1

        if self.rounds_without_improvement >= self.patience:
            self.stopped_early = True
            return False
        return True


@dataclass
class TrainResult:
    model: object
    history: List[Tuple[float, float]] = field(default_factory=list)
    best_iteration: int = -1
    stopped_early: bool = False

    def history_frame(self) -> pd.DataFrame:
        """Per-iteration losses as a DataFrame (iteration, train_loss, val_loss)."""
        frame = pd.DataFrame(self.history, columns=["train_loss", "val_loss"])
        frame.insert(0, "iteration", range(len(frame)))
        return frame


def _check_training_inputs(X: pd.DataFrame, y: pd.Series, name: str) -> None:
    if len(X) == 0:
        raise ValueError(f"{name} set is empty")
    if len(X) != len(y):
        raise ValueError(f"{name} features and labels differ in length ({len(X)} vs {len(y)})")
    values = X.to_numpy(dtype=float)
    bad = ~np.isfinite(values)
    if bad.any():
        cols = sorted({X.columns[j] for j in np.nonzero(bad)[1]})
        raise ValueError(f"{name} set has non-finite values in columns {cols}")
    labels = set(pd.unique(y).tolist())
    if not labels <= {0, 1}:
        raise ValueError(f"{name} labels must be 0/1, got {sorted(labels, key=str)}")


def fit_with_early_stopping(
    model,
    X_train: pd.DataFrame,
    y_train: pd.Series,
    X_val: pd.DataFrame,
    y_val: pd.Series,
    patience: int = EARLY_STOPPING_ROUNDS,
) -> TrainResult:
    """
    Fit a CatBoost model, monitoring Logloss on train and validation.

    Training stops once validation loss fails to improve for `patience`
    rounds; the model is then shrunk back to the best validation iteration.
    Returns a TrainResult holding the model and the full per-round log.
    """
    _check_training_inputs(X_train, y_train, "train")
    _check_training_inputs(X_val, y_val, "validation")

    monitor = EarlyStoppingMonitor(patience=patience)
    model.fit(
        X_train,
        y_train,
        eval_set=(X_val, y_val),
        use_best_model=False,
        callbacks=[monitor],
    )

    if monitor.best_iteration < 0:
        warnings.warn(
            "Validation loss never reached a finite value; keeping all trees",
            RuntimeWarning,
        )
        best_iteration = len(monitor.history) - 1
    else:
        best_iteration = monitor.best_iteration
        if best_iteration + 1 < model.tree_count_:
            model.shrink(ntree_end=best_iteration + 1)

    if not monitor.stopped_early and best_iteration == len(monitor.history) - 1:
        warnings.warn(
            f"Validation loss was still improving after {len(monitor.history)} iterations; "
            f"consider raising the iteration limit",
            ConvergenceWarning,
        )

    return TrainResult(
        model=model,
        history=list(monitor.history),
        best_iteration=best_iteration,
        stopped_early=monitor.stopped_early,
    )


def save_artifacts(model, artifacts: dict, artifact_dir: Path = MODEL_ARTIFACT_DIR) -> Path:
    """Pickle the trained model and its artifacts dict. Returns the model path."""
    artifact_dir = Path(artifact_dir)
    artifact_dir.mkdir(parents=True, exist_ok=True)
    with open(artifact_dir / MODEL_FILE, "wb") as f:
        pickle.dump(model, f)
    with open(artifact_dir / ARTIFACTS_FILE, "wb") as f:
        pickle.dump(artifacts, f)
    return artifact_dir / MODEL_FILE


def run_train_pipeline(
    data_path=DATA_CSV,
    artifact_dir: Path = MODEL_ARTIFACT_DIR,
    train_size: float = TRAIN_SIZE,
    val_size: float = VAL_SIZE,
    test_size: float = TEST_SIZE,
    random_state: int = RANDOM_STATE,
    patience: int = EARLY_STOPPING_ROUNDS,
    threshold: float = DECISION_THRESHOLD,
    model_params: Optional[dict] = None,
    verbose: bool = True,
) -> dict:
    """
    Full training pipeline:
    1. Load and encode data
    2. Stratified train/val/test split
    3. Train with early stopping
    4. Evaluate on the test set
    5. Save model, artifacts and training log
    Returns metrics dict.
    """
    artifact_dir = Path(artifact_dir)

    # 1. Load and encode
    df = load_dataset(data_path)
    encoded = encode_dataset(df)
    if verbose:
        print(f"Loaded {len(df)} records, {encoded.shape[1] - 1} features")

    # 2. Split
    train_df, val_df, test_df = get_train_val_test_split(
        encoded,
        train_size=train_size,
        val_size=val_size,
        test_size=test_size,
        label_col=TARGET_COL,
        random_state=random_state,
    )
    X_train, y_train = split_X_y(train_df, target_col=TARGET_COL)
    X_val, y_val = split_X_y(val_df, target_col=TARGET_COL)
    X_test, y_test = split_X_y(test_df, target_col=TARGET_COL)
    if verbose:
        print(f"Split sizes: train={len(train_df)} val={len(val_df)} test={len(test_df)}")

    # 3. Train
    model = build_model(random_state=random_state, **(model_params or {}))
    result = fit_with_early_stopping(model, X_train, y_train, X_val, y_val, patience=patience)
    if verbose:
        best_train, best_val = result.history[result.best_iteration]
        print(
            f"Best iteration: {result.best_iteration} of {len(result.history)} "
            f"(train logloss {best_train:.4f}, val logloss {best_val:.4f})"
        )

    # 4. Evaluate
    evaluation = evaluate_model(result.model, X_test, y_test, threshold=threshold)
    metrics = evaluation.as_dict()
    metrics["best_iteration"] = result.best_iteration
    metrics["n_iterations"] = len(result.history)
    metrics["stopped_early"] = result.stopped_early
    if verbose:
        print(f"Test accuracy: {evaluation.accuracy:.4f}")
        print(f"Test AUC-PR: {evaluation.auc_pr:.4f}")

    # 5. Save
    artifacts = {
        "feature_cols": X_train.columns.tolist(),
        "target_col": TARGET_COL,
        "id_cols": ID_COLS,
        "threshold": threshold,
        "best_iteration": result.best_iteration,
    }
    model_path = save_artifacts(result.model, artifacts, artifact_dir)
    result.history_frame().to_csv(artifact_dir / TRAINING_LOG_FILE, index=False)
    if verbose:
        print(f"Model saved to {model_path}")

    return metrics


if __name__ == "__main__":
    run_train_pipeline()
