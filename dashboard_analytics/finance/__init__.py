"""Revenue and expense time series, trend forecasting and profit outlook."""

from .forecast import (
    ForecastConfig,
    ForecastPoint,
    ForecastResult,
    calculate_confidence,
    calculate_seasonality,
    fit_linear_trend,
    forecast,
)
from .report import (
    FinancialForecastReport,
    assemble_forecast_report,
    forecast_finances,
)
from .series import MonthlyPoint, build_monthly_series

__all__ = [
    "FinancialForecastReport",
    "ForecastConfig",
    "ForecastPoint",
    "ForecastResult",
    "MonthlyPoint",
    "assemble_forecast_report",
    "build_monthly_series",
    "calculate_confidence",
    "calculate_seasonality",
    "fit_linear_trend",
    "forecast",
    "forecast_finances",
]
