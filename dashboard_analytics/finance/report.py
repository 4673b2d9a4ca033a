"""Combine revenue and expense forecasts into profit projections."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Mapping, Optional, Sequence

from dashboard_analytics.config import AnalyticsSettings, validate_months
from dashboard_analytics.finance.forecast import (
    ForecastConfig,
    ForecastResult,
    forecast,
)
from dashboard_analytics.finance.series import MonthlyPoint, build_monthly_series

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FinancialForecastReport:
    """Revenue, expense and profit outlook.

    Attributes
    ----------
    revenue:
        Forecast of the revenue series
    expense:
        Forecast of the expense series
    predicted_next_month_profit:
        Revenue minus expense projection for next month
    predicted_next_quarter_profit:
        Element-wise revenue minus expense projections for the next 3 months
    avg_recent_revenue:
        Mean revenue over the most recent months of history (0.0 without history)
    revenue_history:
        Monthly revenue series the forecast was fitted on
    expense_history:
        Monthly expense series the forecast was fitted on
    """

    revenue: ForecastResult
    expense: ForecastResult
    predicted_next_month_profit: float
    predicted_next_quarter_profit: tuple[float, float, float]
    avg_recent_revenue: float = 0.0
    revenue_history: tuple[MonthlyPoint, ...] = field(default_factory=tuple)
    expense_history: tuple[MonthlyPoint, ...] = field(default_factory=tuple)

    def as_dict(self) -> dict[str, object]:
        def history(points: Sequence[MonthlyPoint]) -> list[dict[str, object]]:
            return [{"month": p.month, "actual": p.actual} for p in points]

        return {
            "revenue": {
                "historical": history(self.revenue_history),
                "forecast": self.revenue.as_dict(),
            },
            "expenses": {
                "historical": history(self.expense_history),
                "forecast": self.expense.as_dict(),
            },
            "profit": {
                "predicted_next_month": self.predicted_next_month_profit,
                "predicted_next_quarter": list(self.predicted_next_quarter_profit),
            },
            "summary": {
                "avg_recent_revenue": self.avg_recent_revenue,
                "trend": self.revenue.trend_slope,
                "confidence": self.revenue.confidence,
            },
        }


def average_recent(series: Sequence[MonthlyPoint], months: int) -> float:
    """Mean of the last ``months`` points (0.0 for an empty series).

    Raises
    ------
    InvalidPeriodError
        If ``months`` is outside 1..60
    """
    validate_months(months)
    recent = list(series)[-months:]
    if not recent:
        return 0.0
    return sum(p.actual for p in recent) / len(recent)


def assemble_forecast_report(
    revenue: ForecastResult,
    expense: ForecastResult,
    revenue_history: Sequence[MonthlyPoint] = (),
    expense_history: Sequence[MonthlyPoint] = (),
    recent_months: int = 3,
) -> FinancialForecastReport:
    """Derive profit projections from revenue and expense forecasts.

    Pure composition: profit is revenue minus expense, month by month.
    """
    rev_q = revenue.predicted_next_quarter
    exp_q = expense.predicted_next_quarter
    quarter = (rev_q[0] - exp_q[0], rev_q[1] - exp_q[1], rev_q[2] - exp_q[2])
    return FinancialForecastReport(
        revenue=revenue,
        expense=expense,
        predicted_next_month_profit=revenue.predicted_next_month
        - expense.predicted_next_month,
        predicted_next_quarter_profit=quarter,
        avg_recent_revenue=average_recent(revenue_history, recent_months),
        revenue_history=tuple(revenue_history),
        expense_history=tuple(expense_history),
    )


def forecast_finances(
    revenue_rows: Iterable[Mapping[str, Any]],
    expense_rows: Iterable[Mapping[str, Any]],
    months: Optional[int] = None,
    reference_date: Optional[date] = None,
    settings: Optional[AnalyticsSettings] = None,
    config: Optional[ForecastConfig] = None,
) -> FinancialForecastReport:
    """Build monthly series from raw rows, forecast both and assemble profit.

    Parameters
    ----------
    revenue_rows:
        Revenue records with ``amount`` and ``date`` (or ``transaction_date``).
    expense_rows:
        Expense records with ``amount`` and ``date`` (or ``expense_date``).
        Undated rows in either input are skipped with a warning.
    months:
        History length in months (defaults to ``settings.default_forecast_months``).
    reference_date:
        Any day in the last month of history (defaults to today).
    settings:
        Analytics settings (defaults to ``AnalyticsSettings()``).
    config:
        Forecast configuration shared by both series.
    """
    if settings is None:
        settings = AnalyticsSettings()
    if months is None:
        months = settings.default_forecast_months
    validate_months(months)
    if reference_date is None:
        reference_date = date.today()

    revenue_series = build_monthly_series(revenue_rows, months, reference_date)
    expense_series = build_monthly_series(expense_rows, months, reference_date)

    report = assemble_forecast_report(
        forecast(revenue_series, config),
        forecast(expense_series, config),
        revenue_history=revenue_series,
        expense_history=expense_series,
        recent_months=settings.recent_revenue_months,
    )
    logger.info(
        "Forecast %d months ending %s: next month profit %.2f (confidence %.2f)",
        months,
        reference_date.strftime("%Y-%m"),
        report.predicted_next_month_profit,
        report.revenue.confidence,
    )
    return report
