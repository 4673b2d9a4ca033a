"""Pandas DataFrame adapters for monthly series and forecasts."""

from datetime import date
from typing import Optional, Sequence
import pandas as pd  # type: ignore

from dashboard_analytics.finance.forecast import ForecastResult
from dashboard_analytics.finance.series import (
    MonthlyPoint,
    build_monthly_series,
    month_key,
    parse_month,
    shift_month,
)
from .rfm import dataframe_to_records


def series_to_dataframe(points: Sequence[MonthlyPoint]) -> pd.DataFrame:
    """Convert a monthly series to a DataFrame with ``month`` and ``actual``."""
    return pd.DataFrame(
        [{"month": p.month, "actual": p.actual} for p in points],
        columns=["month", "actual"],
    )


def build_monthly_series_df(
    rows_df: pd.DataFrame,
    months: int,
    reference_date: Optional[date] = None,
    amount_col: str = "amount",
    date_col: str = "date",
) -> pd.DataFrame:
    """Bucket a DataFrame of revenue or expense rows into monthly totals.

    Example:
        >>> revenue_df = build_monthly_series_df(sales_df, 12, date_col='transaction_date')
        >>> revenue_df.plot(x='month', y='actual')
    """
    records = dataframe_to_records(
        rows_df, customer_id_col=None, amount_col=amount_col, date_col=date_col
    )
    return series_to_dataframe(build_monthly_series(records, months, reference_date))


def forecast_to_dataframe(result: ForecastResult) -> pd.DataFrame:
    """Lay history and projections out on one monthly timeline.

    Returns:
        DataFrame with columns ``month``, ``actual``, ``predicted`` and
        ``is_projection``. Projected months have ``actual`` NaN. A result
        without fitted history yields an empty DataFrame.
    """
    columns = ["month", "actual", "predicted", "is_projection"]
    if not result.fitted:
        return pd.DataFrame(columns=columns)

    rows = [
        {
            "month": p.month,
            "actual": p.actual,
            "predicted": p.predicted,
            "is_projection": False,
        }
        for p in result.fitted
    ]
    year, month = parse_month(result.fitted[-1].month)
    for step, value in enumerate(result.predicted_next_quarter, start=1):
        rows.append(
            {
                "month": month_key(*shift_month(year, month, step)),
                "actual": float("nan"),
                "predicted": value,
                "is_projection": True,
            }
        )
    return pd.DataFrame(rows, columns=columns)
