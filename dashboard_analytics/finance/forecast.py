"""Linear-trend forecasting with a per-calendar-month seasonal index.

The model is deliberately small: an ordinary least-squares line through the
monthly history, scaled by how each calendar month has historically sat
relative to that line. It is meant for dashboard projections over sparse
small-business data, not for statistical inference.

Degenerate histories never raise:

- fewer than 2 points: flat trend through the mean
- fewer than 3 points: confidence 0
- constant or all-zero history: flat trend, neutral seasonality,
  confidence 1 (the line explains all of the zero variance)
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from dashboard_analytics.errors import ComputationError
from dashboard_analytics.finance.series import MonthlyPoint, parse_month, shift_month

logger = logging.getLogger(__name__)

# Trend values at or below this are too small to divide by
_EPSILON = 1e-10

QUARTER_MONTHS = 3

NEUTRAL_SEASONALITY = 1.0


@dataclass
class ForecastConfig:
    """Configuration for trend forecasting.

    Attributes
    ----------
    min_points_for_trend:
        Points required before a regression line is fitted
    min_points_for_confidence:
        Points required before R² is reported as confidence
    clamp_negative:
        Clamp projected and fitted amounts at zero
    """

    min_points_for_trend: int = 2
    min_points_for_confidence: int = 3
    clamp_negative: bool = True

    def __post_init__(self) -> None:
        if self.min_points_for_trend < 2:
            raise ValueError(
                f"min_points_for_trend must be >= 2, got {self.min_points_for_trend}"
            )
        if self.min_points_for_confidence < self.min_points_for_trend:
            raise ValueError(
                "min_points_for_confidence must be >= min_points_for_trend"
            )


@dataclass(frozen=True)
class ForecastPoint:
    """Historical month alongside its trend-line value."""

    month: str
    actual: float
    predicted: float


@dataclass(frozen=True)
class ForecastResult:
    """Trend, seasonality and projections for one monthly series.

    Attributes
    ----------
    trend_slope:
        Change per month of the fitted trend line
    trend_intercept:
        Trend-line value at the first month of history
    seasonality:
        Calendar month (1-12) → mean ratio of actuals to trend; 1.0 where
        history gives no information
    predicted_next_month:
        Projection for the month after the last historical month
    predicted_next_quarter:
        Projections for the next three months (first equals
        predicted_next_month)
    confidence:
        R² of the trend line against history, in [0, 1]
    fitted:
        Historical months with their trend-line values
    """

    trend_slope: float
    trend_intercept: float
    seasonality: dict[int, float]
    predicted_next_month: float
    predicted_next_quarter: tuple[float, float, float]
    confidence: float
    fitted: tuple[ForecastPoint, ...] = ()

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be in [0, 1], got {self.confidence}")
        if set(self.seasonality) != set(range(1, 13)):
            raise ValueError("seasonality must cover calendar months 1-12")
        if len(self.predicted_next_quarter) != QUARTER_MONTHS:
            raise ValueError(
                f"predicted_next_quarter must have {QUARTER_MONTHS} values, "
                f"got {len(self.predicted_next_quarter)}"
            )

    def as_dict(self) -> dict[str, object]:
        return {
            "trend_slope": self.trend_slope,
            "trend_intercept": self.trend_intercept,
            "seasonality": {str(m): r for m, r in self.seasonality.items()},
            "predicted_next_month": self.predicted_next_month,
            "predicted_next_quarter": list(self.predicted_next_quarter),
            "confidence": self.confidence,
            "fitted": [
                {"month": p.month, "actual": p.actual, "predicted": p.predicted}
                for p in self.fitted
            ],
        }


def _require_finite(name: str, values: np.ndarray | float) -> None:
    if not np.all(np.isfinite(values)):
        raise ComputationError(f"{name} is not finite: {values}")


def fit_linear_trend(
    values: Sequence[float], min_points: int = 2
) -> tuple[float, float]:
    """Least-squares ``(slope, intercept)`` of ``values`` against 0, 1, 2, ...

    Below ``min_points`` (and for constant input) the line is flat through
    the mean.
    """
    y = np.asarray(values, dtype=float)
    n = len(y)
    if n == 0:
        return 0.0, 0.0
    _require_finite("series values", y)
    if np.all(y == y[0]):
        return 0.0, float(y[0])
    if n < min_points:
        with np.errstate(over="ignore", invalid="ignore"):
            intercept = float(np.mean(y))
        _require_finite("trend intercept", intercept)
        return 0.0, intercept

    x = np.arange(n, dtype=float)
    design = np.column_stack([x, np.ones(n)])
    try:
        with np.errstate(over="ignore", invalid="ignore"):
            coefficients, _, _, _ = np.linalg.lstsq(design, y, rcond=None)
    except np.linalg.LinAlgError as exc:
        raise ComputationError(f"Trend regression failed: {exc}") from exc
    slope, intercept = float(coefficients[0]), float(coefficients[1])
    _require_finite("trend coefficients", np.array([slope, intercept]))
    return slope, intercept


def calculate_seasonality(
    points: Sequence[MonthlyPoint], slope: float, intercept: float
) -> dict[int, float]:
    """Mean ratio of actual to trend value per calendar month.

    Points whose trend value is not positive carry no usable ratio and are
    skipped. Months without any ratio get ``1.0``.
    """
    ratios: dict[int, list[float]] = defaultdict(list)
    for index, point in enumerate(points):
        trend_value = intercept + slope * index
        if trend_value <= _EPSILON:
            continue
        ratios[point.calendar_month].append(point.actual / trend_value)

    seasonality: dict[int, float] = {}
    for month in range(1, 13):
        month_ratios = ratios.get(month)
        seasonality[month] = (
            float(np.mean(month_ratios)) if month_ratios else NEUTRAL_SEASONALITY
        )
    _require_finite("seasonality", np.array(list(seasonality.values())))
    return seasonality


def calculate_confidence(
    values: Sequence[float], slope: float, intercept: float, min_points: int = 3
) -> float:
    """R² of the trend line against ``values``, clamped to [0, 1]."""
    y = np.asarray(values, dtype=float)
    if len(y) < min_points:
        return 0.0
    if np.all(y == y[0]):
        return 1.0

    fitted = intercept + slope * np.arange(len(y), dtype=float)
    with np.errstate(over="ignore", invalid="ignore"):
        ss_res = float(np.sum((y - fitted) ** 2))
        ss_tot = float(np.sum((y - np.mean(y)) ** 2))
    _require_finite("regression sums of squares", np.array([ss_res, ss_tot]))
    if ss_tot <= _EPSILON:
        return 1.0
    return float(min(1.0, max(0.0, 1.0 - ss_res / ss_tot)))


def _empty_result() -> ForecastResult:
    return ForecastResult(
        trend_slope=0.0,
        trend_intercept=0.0,
        seasonality={month: NEUTRAL_SEASONALITY for month in range(1, 13)},
        predicted_next_month=0.0,
        predicted_next_quarter=(0.0, 0.0, 0.0),
        confidence=0.0,
    )


def forecast(
    series: Sequence[MonthlyPoint], config: Optional[ForecastConfig] = None
) -> ForecastResult:
    """Fit a trend to a monthly series and project the next three months.

    ``predicted_next_month`` is the trend value at the next index scaled by
    the seasonal ratio of the next calendar month. The quarter projection
    repeats this for three consecutive months, wrapping December to January.

    Parameters
    ----------
    series:
        Monthly points; they are put in chronological order before fitting.
    config:
        Forecast configuration (defaults to ``ForecastConfig()``).

    Returns
    -------
    ForecastResult

    Raises
    ------
    ValueError
        If a month appears more than once
    ComputationError
        If the history or any derived value is not finite

    Examples
    --------
    >>> history = [MonthlyPoint(f"2024-0{m}", v) for m, v in [(1, 1000), (2, 1100), (3, 1200), (4, 1300)]]
    >>> result = forecast(history)
    >>> round(result.predicted_next_month), round(result.confidence, 6)
    (1400, 1.0)
    """
    if config is None:
        config = ForecastConfig()

    if not series:
        logger.warning("Empty series; returning zero forecast")
        return _empty_result()

    points = sorted(series, key=lambda p: parse_month(p.month))
    months = [p.month for p in points]
    if len(set(months)) != len(months):
        raise ValueError(f"Series contains duplicate months: {months}")

    values = [p.actual for p in points]
    n = len(values)
    if n < config.min_points_for_trend:
        logger.warning(
            "Only %d point(s) of history; using a flat trend without regression", n
        )
    elif n < config.min_points_for_confidence:
        logger.warning("Only %d points of history; confidence set to 0", n)

    slope, intercept = fit_linear_trend(values, config.min_points_for_trend)
    seasonality = calculate_seasonality(points, slope, intercept)
    confidence = calculate_confidence(
        values, slope, intercept, config.min_points_for_confidence
    )

    def _clamp(value: float) -> float:
        return max(0.0, value) if config.clamp_negative else value

    last_year, last_month = parse_month(points[-1].month)
    projections: list[float] = []
    for step in range(QUARTER_MONTHS):
        _, calendar_month = shift_month(last_year, last_month, step + 1)
        trend_value = intercept + slope * (n + step)
        projections.append(_clamp(trend_value * seasonality[calendar_month]))
    _require_finite("projections", np.array(projections))

    fitted = tuple(
        ForecastPoint(
            month=point.month,
            actual=point.actual,
            predicted=_clamp(intercept + slope * index),
        )
        for index, point in enumerate(points)
    )

    return ForecastResult(
        trend_slope=slope,
        trend_intercept=intercept,
        seasonality=seasonality,
        predicted_next_month=projections[0],
        predicted_next_quarter=(projections[0], projections[1], projections[2]),
        confidence=confidence,
        fitted=fitted,
    )
