"""
Prediction pipeline.
Loads the trained model, scores a new PAA file, writes a predictions CSV.
"""
import pickle
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

from paa_classifier.config import MODEL_ARTIFACT_DIR, PREDICTIONS_DIR, SCORING_CSV
from paa_classifier.data import load_dataset
from paa_classifier.preprocess import encode_dataset
from paa_classifier.evaluate import predict_proba, binarize
from paa_classifier.train import MODEL_FILE, ARTIFACTS_FILE


def load_artifacts(artifact_dir: Path = MODEL_ARTIFACT_DIR):
    """Load the (model, artifacts) pair pickled by run_train_pipeline."""
    artifact_dir = Path(artifact_dir)
    artifacts_path = artifact_dir / ARTIFACTS_FILE
    model_path = artifact_dir / MODEL_FILE
    if not artifacts_path.exists() or not model_path.exists():
        raise FileNotFoundError(
            f"No trained model in {artifact_dir}: expected {MODEL_FILE} and {ARTIFACTS_FILE}. "
            f"Train one with run_train_pipeline(artifact_dir=...) before scoring."
        )

    with open(model_path, "rb") as f:
        model = pickle.load(f)
    with open(artifacts_path, "rb") as f:
        artifacts = pickle.load(f)
    return model, artifacts


def run_predict_pipeline(
    input_path=SCORING_CSV,
    artifact_dir: Path = MODEL_ARTIFACT_DIR,
    output_path: Optional[Path] = None,
    threshold: Optional[float] = None,
    verbose: bool = True,
) -> str:
    """
    Load a file of records, encode, predict, write predictions.
    The outcome column may be absent. Returns path to the written file.
    """
    model, artifacts = load_artifacts(artifact_dir)
    feature_cols = artifacts["feature_cols"]
    id_cols = artifacts["id_cols"]
    target_col = artifacts["target_col"]
    if threshold is None:
        threshold = artifacts["threshold"]

    df = load_dataset(input_path)
    encoded = encode_dataset(df, id_cols=id_cols, target_col=target_col, require_label=False)

    missing = [c for c in feature_cols if c not in encoded.columns]
    if missing:
        raise ValueError(f"Input is missing feature columns used in training: {missing}")
    X = encoded[feature_cols]
    bad = ~np.isfinite(X.to_numpy(dtype=float))
    if bad.any():
        rows = sorted(set(np.nonzero(bad)[0].tolist()))
        raise ValueError(f"Non-finite feature values in records at positions {rows[:10]}")

    proba = predict_proba(model, X)
    predictions = pd.DataFrame({
        "probability": proba,
        "predicted_label": binarize(proba, threshold),
    })
    # Keep ids for the output
    for col in reversed([c for c in id_cols if c in df.columns]):
        predictions.insert(0, col, df[col].to_numpy())

    if output_path is None:
        output_path = PREDICTIONS_DIR / "predictions.csv"
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    predictions.to_csv(output_path, index=False)
    if verbose:
        print(f"Predictions written to {output_path} ({len(predictions)} rows)")
    return str(output_path)


if __name__ == "__main__":
    run_predict_pipeline()
