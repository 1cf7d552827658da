import numpy as np
import pandas as pd

# ---------------------------------------------------
# Config
# ---------------------------------------------------
DATA_PATH = "data/paa_profiles.csv"
SEED = 42

# ---------------------------------------------------
# Imports from the pipeline
# ---------------------------------------------------
from paa_classifier.config import TARGET_COL
from paa_classifier.data import load_dataset, split_X_y, get_train_val_test_split
from paa_classifier.preprocess import encode_dataset
from paa_classifier.model import build_model
from paa_classifier.train import fit_with_early_stopping
from paa_classifier.evaluate import (
    evaluate_model,
    predict_proba,
    recall_at_threshold,
)

# ---------------------------------------------------
# Load + encode
# ---------------------------------------------------
raw = load_dataset(DATA_PATH)
print("Raw:", raw.shape)
print(raw.head().to_string(index=False))

df = encode_dataset(raw)
print("Encoded:", df.shape)
print("Class balance:")
print(df[TARGET_COL].value_counts(normalize=True).round(3).to_string())

# ---------------------------------------------------
# Stratified train / validation / test split
# ---------------------------------------------------
train_df, val_df, test_df = get_train_val_test_split(df, 0.6, 0.2, 0.2, random_state=SEED)
X_tr, y_tr = split_X_y(train_df)
X_va, y_va = split_X_y(val_df)
X_te, y_te = split_X_y(test_df)

for name, part in (("train", train_df), ("val", val_df), ("test", test_df)):
    print(f"{name:>5}: {len(part):4d} rows, positive rate {part[TARGET_COL].mean():.3f}")

# ---------------------------------------------------
# Train with early stopping on validation logloss
# ---------------------------------------------------
model = build_model(random_state=SEED, iterations=1000, learning_rate=0.03)
result = fit_with_early_stopping(model, X_tr, y_tr, X_va, y_va, patience=50)

log = result.history_frame()
print("\nBest iteration:", result.best_iteration, "of", len(log))
print("Stopped early:", result.stopped_early)
print(log.iloc[:: max(1, len(log) // 10)].to_string(index=False))

# Overfitting check: gap between train and validation loss at the best round
gap = log.loc[result.best_iteration, "val_loss"] - log.loc[result.best_iteration, "train_loss"]
print(f"Val - train logloss at best round: {gap:.4f}")

# ---------------------------------------------------
# Test-set metrics
# ---------------------------------------------------
evaluation = evaluate_model(result.model, X_te, y_te)
print("\nAccuracy:", round(evaluation.accuracy, 4))
print("AUC-PR:", round(evaluation.auc_pr, 4))
print("ROC AUC:", round(evaluation.roc_auc, 4))
print("Confusion:", evaluation.confusion)

curve = pd.DataFrame({
    "threshold": evaluation.curve.thresholds,
    "recall": evaluation.curve.recall,
    "precision": evaluation.curve.precision,
})
print("\nPrecision/recall curve (every 5th cut):")
print(curve.iloc[::5].to_string(index=False))

# ---------------------------------------------------
# Recall as the decision threshold moves
# ---------------------------------------------------
proba = predict_proba(result.model, X_te)
for t in np.linspace(0.1, 1.0, 10):
    print(f"threshold {t:.1f}: recall {recall_at_threshold(y_te, proba, t):.3f}")

# ---------------------------------------------------
# Feature importance
# ---------------------------------------------------
fi = pd.DataFrame({
    "feature": X_tr.columns,
    "importance": result.model.get_feature_importance(),
}).sort_values("importance", ascending=False)
print("\nTop 10 features:")
print(fi.head(10).to_string(index=False))
