"""
Data loading and partitioning.
Loads the raw delimited file and provides stratified train/val/test splits.
"""
import csv
import math
from pathlib import Path
from typing import Dict, Optional, Tuple

import numpy as np
import pandas as pd

from paa_classifier.config import (
    DATA_CSV,
    ID_COLS,
    TARGET_COL,
    TRAIN_SIZE,
    VAL_SIZE,
    TEST_SIZE,
    RANDOM_STATE,
)

# Guards floor() against products like 0.3 * 70 landing just under 21
_FLOOR_EPS = 1e-9


def sniff_sep(path: Path) -> str:
    """Detect the delimiter from the header line (comma, semicolon or tab)."""
    with open(path, "r", encoding="utf-8", errors="ignore") as f:
        head = f.readline()
    if "\t" in head and "," not in head:
        return "\t"
    if ";" in head and "," not in head:
        return ";"
    return ","


def _check_field_counts(path: Path, sep: str) -> None:
    """Raise on the first record whose field count differs from the header's."""
    with open(path, "r", encoding="utf-8", newline="") as f:
        reader = csv.reader(f, delimiter=sep)
        header = next(reader, None)
        if header is None:
            return
        for row in reader:
            # pandas skips blank lines too
            if not row:
                continue
            if len(row) != len(header):
                raise ValueError(
                    f"Malformed row in {path}: line {reader.line_num} has {len(row)} "
                    f"field(s), expected {len(header)}"
                )


def load_dataset(path=DATA_CSV, sep: Optional[str] = None) -> pd.DataFrame:
    """
    Load a delimited file with one header row as a DataFrame.
    Fails fast on a missing, empty or non-UTF-8 file, or a row whose field
    count differs from the header.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Input file not found: {path}")
    if sep is None:
        sep = sniff_sep(path)

    try:
        _check_field_counts(path, sep)
        df = pd.read_csv(path, sep=sep, encoding="utf-8", on_bad_lines="error")
    except UnicodeDecodeError as e:
        raise ValueError(f"Input file is not valid UTF-8 text: {path}") from e
    except csv.Error as e:
        raise ValueError(f"Unreadable delimited text in {path}: {e}") from e
    except pd.errors.EmptyDataError as e:
        raise ValueError(f"Input file is empty: {path}") from e
    except pd.errors.ParserError as e:
        raise ValueError(f"Malformed row in {path}: {e}") from e

    if df.empty:
        raise ValueError(f"Input file has a header but no records: {path}")
    return df


def split_X_y(df: pd.DataFrame, target_col: str = TARGET_COL) -> Tuple[pd.DataFrame, Optional[pd.Series]]:
    """
    Split DataFrame into features X and target y.
    Excludes identifier and target columns from X.
    """
    cols_to_drop = [c for c in ID_COLS + [target_col] if c in df.columns]
    X = df.drop(columns=cols_to_drop)
    y = df[target_col] if target_col in df.columns else None
    return X, y


def _check_fraction(value: float, name: str) -> None:
    if not 0.0 < value < 1.0:
        raise ValueError(f"{name} must be strictly between 0 and 1, got {value}")


def _label_array(df: pd.DataFrame, label_col: str) -> np.ndarray:
    if label_col not in df.columns:
        raise KeyError(f"Label column '{label_col}' not in dataset columns {list(df.columns)}")
    return df[label_col].to_numpy()


def _floor_count(n: int, fraction: float) -> int:
    return int(math.floor(n * fraction + _FLOOR_EPS))


def stratified_split(
    df: pd.DataFrame,
    test_size: float,
    label_col: str = TARGET_COL,
    random_state: int = RANDOM_STATE,
    counts: Optional[Dict] = None,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Stratified two-way split. Returns (rest_df, held_out_df).

    Each class is shuffled independently and floor(n_class * test_size) of
    its rows go to the held-out side, so both sides keep the source class
    ratio to within one record. `counts` (label -> rows to hold out)
    overrides the per-class count. Rows keep their source order.
    """
    _check_fraction(test_size, "test_size")
    labels = _label_array(df, label_col)
    rng = np.random.RandomState(random_state)

    held_out = []
    for label in sorted(pd.unique(labels)):
        positions = np.flatnonzero(labels == label)
        positions = rng.permutation(positions)
        if counts is not None:
            n_held_out = min(int(counts.get(label, 0)), len(positions))
        else:
            n_held_out = _floor_count(len(positions), test_size)
        held_out.append(positions[:n_held_out])

    held_out_pos = np.sort(np.concatenate(held_out)) if held_out else np.array([], dtype=int)
    mask = np.zeros(len(df), dtype=bool)
    mask[held_out_pos] = True
    return df.iloc[~mask], df.iloc[mask]


def get_train_val_test_split(
    df: pd.DataFrame,
    train_size: float = TRAIN_SIZE,
    val_size: float = VAL_SIZE,
    test_size: float = TEST_SIZE,
    label_col: str = TARGET_COL,
    random_state: int = RANDOM_STATE,
) -> Tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame]:
    """
    Split an encoded DataFrame into stratified train/val/test partitions.

    The test set is carved from the whole dataset first, then the validation
    set is carved from the remaining pool using the same seed. Per-class
    counts are cumulative against the class total:
    n_test = floor(n * test), n_val = floor(n * (test + val)) - n_test,
    so every partition stays within one record of proportional.
    Returns (train_df, val_df, test_df).
    """
    for name, value in (("train_size", train_size), ("val_size", val_size), ("test_size", test_size)):
        _check_fraction(value, name)
    total = train_size + val_size + test_size
    if not math.isclose(total, 1.0, abs_tol=1e-9):
        raise ValueError(f"Split fractions must sum to 1, got {total}")

    class_sizes = pd.Series(_label_array(df, label_col)).value_counts()
    val_counts = {
        label: _floor_count(n, test_size + val_size) - _floor_count(n, test_size)
        for label, n in class_sizes.items()
    }

    pool_df, test_df = stratified_split(df, test_size, label_col=label_col, random_state=random_state)
    relative_val = val_size / (train_size + val_size)
    train_df, val_df = stratified_split(
        pool_df,
        relative_val,
        label_col=label_col,
        random_state=random_state,
        counts=val_counts,
    )

    for name, part in (("train", train_df), ("validation", val_df), ("test", test_df)):
        if part.empty:
            raise ValueError(
                f"Stratified split produced an empty {name} partition "
                f"({len(df)} records, fractions {train_size}/{val_size}/{test_size})"
            )
    return train_df, val_df, test_df
