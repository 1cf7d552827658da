"""
Configuration for the PAA classification pipeline.
Paths, column mappings, split fractions, and model settings.
"""
from pathlib import Path

# Project root (parent of paa_classifier/)
PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Data paths (raw CSVs are read-only)
DATA_DIR = PROJECT_ROOT / "data"
DATA_CSV = DATA_DIR / "paa_profiles.csv"
SCORING_CSV = DATA_DIR / "paa_profiles_unlabeled.csv"

# Output paths
MODEL_ARTIFACT_DIR = PROJECT_ROOT / "data" / "processed"
PREDICTIONS_DIR = PROJECT_ROOT / "predictions"

# Identifier and target columns
ID_COLS = ["subject_id"]
TARGET_COL = "outcome"

# Outcome text -> label
LABEL_MAPPING = {
    "negative": 0,
    "positive": 1,
}

# Presence/absence flags
YES_NO = {"no": 0, "yes": 1}

# Fixed categorical encodings; values outside a mapping are rejected
CATEGORICAL_MAPPINGS = {
    "sex": {"F": 0, "M": 1, "U": 2},
    "smoker": YES_NO,
    "diabetes": YES_NO,
    "hypertension": YES_NO,
}

# Split settings (fractions of the whole dataset)
TRAIN_SIZE = 0.6
VAL_SIZE = 0.2
TEST_SIZE = 0.2
RANDOM_STATE = 42

# Gradient-boosted trees (CatBoost)
MODEL_PARAMS = {
    "iterations": 500,
    "depth": 4,
    "learning_rate": 0.05,
    "loss_function": "Logloss",
    "eval_metric": "Logloss",
}
EARLY_STOPPING_ROUNDS = 20

# Evaluation
DECISION_THRESHOLD = 0.5
