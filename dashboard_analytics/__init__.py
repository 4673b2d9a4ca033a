"""Analytics engine for the business dashboard.

Customer RFM segmentation and revenue/expense forecasting over raw records
handed in by the caller. Every entry point is a pure function of its
inputs; results are plain dataclasses for the API layer to serialise.
"""

from .errors import AnalyticsError, ComputationError, InvalidPeriodError
from .finance import (
    FinancialForecastReport,
    ForecastResult,
    MonthlyPoint,
    assemble_forecast_report,
    build_monthly_series,
    forecast,
    forecast_finances,
)
from .foundation import (
    RFMScore,
    Segment,
    TransactionSummary,
    aggregate_transactions,
    calculate_rfm_scores,
    classify_segment,
    compute_rfm,
    segment_customers,
)

__all__ = [
    "AnalyticsError",
    "ComputationError",
    "FinancialForecastReport",
    "ForecastResult",
    "InvalidPeriodError",
    "MonthlyPoint",
    "RFMScore",
    "Segment",
    "TransactionSummary",
    "aggregate_transactions",
    "assemble_forecast_report",
    "build_monthly_series",
    "calculate_rfm_scores",
    "classify_segment",
    "compute_rfm",
    "forecast",
    "forecast_finances",
    "segment_customers",
]
