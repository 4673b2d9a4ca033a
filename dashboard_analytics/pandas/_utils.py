"""Shared utilities for pandas conversion operations."""

from decimal import Decimal
from typing import Sequence

import pandas as pd  # type: ignore


def decimal_to_float(value: Decimal) -> float:
    """Convert Decimal to float for pandas compatibility."""
    return float(value)


def require_columns(df: pd.DataFrame, columns: Sequence[str], what: str) -> None:
    """Raise ValueError if ``df`` lacks a column or holds nulls in one.

    Args:
        df: DataFrame to check
        columns: Columns that must exist and be fully populated
        what: Description of the records for error messages
    """
    missing_cols = set(columns) - set(df.columns)
    if missing_cols:
        raise ValueError(f"DataFrame missing required columns: {missing_cols}")

    if df.empty:
        return

    null_cols = df[list(columns)].isnull().any()
    if null_cols.any():
        null_col_names = null_cols[null_cols].index.tolist()
        raise ValueError(
            f"Null/NaN values found in columns: {null_col_names}. "
            f"{what} require complete data."
        )
