# Import required libraries
import pandas as pd
from typing import Dict, List, Mapping, Optional

from paa_classifier.config import (
    CATEGORICAL_MAPPINGS,
    ID_COLS,
    LABEL_MAPPING,
    TARGET_COL,
)

# =============================================================================
# STRICT CATEGORICAL ENCODING
# =============================================================================
# Every categorical column has a fixed, enumerated mapping (config.py).
# A value outside the mapping, including a missing value, is an error:
# defaulting it to some code would silently put the record in the wrong group.


def encode_column(values: pd.Series, mapping: Mapping[str, int], name: Optional[str] = None) -> pd.Series:
    """
    Map a categorical column to integer codes.

    Args:
        values: Raw column values
        mapping: Known value -> integer code
        name: Column name used in error messages (defaults to values.name)

    Returns:
        Integer-coded Series with the same index

    Raises:
        ValueError: If any value (including NaN) is outside the mapping
    """
    name = name if name is not None else values.name
    unknown = values[~values.isin(list(mapping))]
    if not unknown.empty:
        shown = sorted({repr(v) for v in unknown.tolist()})
        raise ValueError(
            f"Column '{name}' has {len(unknown)} value(s) outside the known mapping "
            f"{sorted(mapping)}: {', '.join(shown)}"
        )
    return values.map(mapping).astype("int64")


def encode_dataset(
    df: pd.DataFrame,
    mappings: Dict[str, Mapping[str, int]] = CATEGORICAL_MAPPINGS,
    label_mapping: Mapping[str, int] = LABEL_MAPPING,
    id_cols: List[str] = ID_COLS,
    target_col: str = TARGET_COL,
    require_label: bool = True,
) -> pd.DataFrame:
    """
    Encode a raw dataset into purely numeric columns.

    1. Drop identifier columns
    2. Apply the fixed mapping to each configured categorical column present
    3. Map the outcome text to {0, 1}
    4. Reject any remaining non-numeric column

    Args:
        df: Raw dataset
        mappings: Column -> (value -> code) for categorical columns
        label_mapping: Outcome value -> 0/1
        id_cols: Non-predictive identifier columns to drop
        target_col: Outcome column
        require_label: If False, a missing outcome column is allowed (scoring data)

    Returns:
        Encoded copy of df with the same row count
    """
    out = df.drop(columns=[c for c in id_cols if c in df.columns])

    for col, mapping in mappings.items():
        if col in out.columns:
            out[col] = encode_column(out[col], mapping, name=col)

    if target_col in out.columns:
        if sorted(label_mapping.values()) != [0, 1]:
            raise ValueError(f"Label mapping must produce exactly 0 and 1, got {dict(label_mapping)}")
        out[target_col] = encode_column(out[target_col], label_mapping, name=target_col)
    elif require_label:
        raise KeyError(f"Outcome column '{target_col}' not found in dataset")

    non_numeric = [c for c in out.columns if not pd.api.types.is_numeric_dtype(out[c])]
    if non_numeric:
        raise ValueError(
            f"Columns without a categorical mapping are not numeric: {non_numeric}. "
            f"Add them to CATEGORICAL_MAPPINGS or drop them."
        )
    # bool columns would pass the numeric check but CatBoost wants numbers
    bool_cols = [c for c in out.columns if pd.api.types.is_bool_dtype(out[c])]
    if bool_cols:
        out[bool_cols] = out[bool_cols].astype("int64")

    return out
