# tests/conftest.py
from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from paa_classifier.preprocess import encode_dataset


def make_raw_frame(n: int = 200, n_positive: int = 60, seed: int = 0) -> pd.DataFrame:
    """
    Synthetic PAA profiles: demographic/marker fields plus amino acid
    concentrations, with the positives shifted on a few analytes.
    """
    rng = np.random.RandomState(seed)
    labels = np.array([1] * n_positive + [0] * (n - n_positive))
    rng.shuffle(labels)
    return pd.DataFrame({
        "subject_id": [f"S{i:04d}" for i in range(n)],
        "sex": rng.choice(["F", "M", "U"], n),
        "smoker": rng.choice(["no", "yes"], n),
        "diabetes": rng.choice(["no", "yes"], n),
        "hypertension": rng.choice(["no", "yes"], n),
        "age": rng.randint(20, 80, n),
        "glycine": rng.normal(250, 40, n) + 80 * labels,
        "alanine": rng.normal(350, 60, n) - 70 * labels,
        "serine": rng.normal(120, 20, n),
        "valine": rng.normal(220, 35, n) + 30 * labels,
        "histidine": rng.normal(80, 12, n),
        "outcome": np.where(labels == 1, "positive", "negative"),
    })


@pytest.fixture
def raw_frame() -> pd.DataFrame:
    return make_raw_frame()


@pytest.fixture
def encoded_frame(raw_frame) -> pd.DataFrame:
    return encode_dataset(raw_frame)


@pytest.fixture
def paa_csv(tmp_path, raw_frame):
    path = tmp_path / "paa_profiles.csv"
    raw_frame.to_csv(path, index=False)
    return path


@pytest.fixture
def make_frame():
    return make_raw_frame
