"""Pandas DataFrame adapters for the analytics engine."""

from .rfm import (
    dataframe_to_records,
    summaries_to_dataframe,
    rfm_scores_to_dataframe,
    calculate_rfm_df,
)
from .series import (
    series_to_dataframe,
    build_monthly_series_df,
    forecast_to_dataframe,
)

__all__ = [
    # RFM adapters
    "dataframe_to_records",
    "summaries_to_dataframe",
    "rfm_scores_to_dataframe",
    "calculate_rfm_df",
    # Series adapters
    "series_to_dataframe",
    "build_monthly_series_df",
    "forecast_to_dataframe",
]
