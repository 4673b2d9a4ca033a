"""Tests for trend forecasting."""

import logging

import pytest

from dashboard_analytics.errors import ComputationError
from dashboard_analytics.finance.forecast import (
    ForecastConfig,
    ForecastResult,
    calculate_confidence,
    calculate_seasonality,
    fit_linear_trend,
    forecast,
)
from dashboard_analytics.finance.series import MonthlyPoint


def monthly(values, start_year=2024, start_month=1):
    """Build consecutive MonthlyPoints starting at the given month."""
    points = []
    for offset, value in enumerate(values):
        index = start_year * 12 + (start_month - 1) + offset
        points.append(MonthlyPoint(f"{index // 12:04d}-{index % 12 + 1:02d}", value))
    return points


class TestForecastConfig:
    """Test ForecastConfig validation."""

    def test_defaults(self):
        config = ForecastConfig()
        assert config.min_points_for_trend == 2
        assert config.min_points_for_confidence == 3
        assert config.clamp_negative is True

    def test_min_points_for_trend_too_small(self):
        """A line needs at least two points."""
        with pytest.raises(ValueError, match="min_points_for_trend must be >= 2"):
            ForecastConfig(min_points_for_trend=1)

    def test_confidence_threshold_below_trend_threshold(self):
        with pytest.raises(ValueError, match="min_points_for_confidence"):
            ForecastConfig(min_points_for_trend=4, min_points_for_confidence=3)


class TestFitLinearTrend:
    """Test fit_linear_trend function."""

    def test_exact_line(self):
        """A perfect line is recovered."""
        slope, intercept = fit_linear_trend([10.0, 12.0, 14.0, 16.0])
        assert slope == pytest.approx(2.0)
        assert intercept == pytest.approx(10.0)

    def test_constant_series_is_flat(self):
        assert fit_linear_trend([7.0, 7.0, 7.0]) == (0.0, 7.0)

    def test_single_point_is_flat_through_value(self):
        assert fit_linear_trend([42.0]) == (0.0, 42.0)

    def test_empty_series(self):
        assert fit_linear_trend([]) == (0.0, 0.0)

    def test_non_finite_values_raise_computation_error(self):
        """NaN in the history is an arithmetic fault."""
        with pytest.raises(ComputationError, match="not finite"):
            fit_linear_trend([1.0, float("nan"), 3.0])


class TestCalculateConfidence:
    """Test calculate_confidence function."""

    def test_too_few_points(self):
        assert calculate_confidence([1.0, 2.0], 1.0, 1.0) == 0.0

    def test_constant_series(self):
        assert calculate_confidence([5.0, 5.0, 5.0], 0.0, 5.0) == 1.0

    def test_bad_line_is_clamped_to_zero(self):
        """A line worse than the mean gives 0, never a negative R²."""
        assert calculate_confidence([1.0, 2.0, 3.0], -100.0, 0.0) == 0.0

    def test_perfect_fit(self):
        assert calculate_confidence([1.0, 2.0, 3.0], 1.0, 1.0) == pytest.approx(1.0)


class TestCalculateSeasonality:
    """Test calculate_seasonality function."""

    def test_all_months_present(self):
        """Every calendar month has a ratio, 1.0 where unobserved."""
        seasonality = calculate_seasonality(monthly([100.0, 100.0]), 0.0, 100.0)
        assert set(seasonality) == set(range(1, 13))
        assert seasonality[1] == pytest.approx(1.0)
        assert seasonality[7] == 1.0

    def test_ratio_to_trend(self):
        """A month sitting above the line gets a ratio above 1."""
        seasonality = calculate_seasonality(monthly([100.0, 150.0]), 0.0, 100.0)
        assert seasonality[2] == pytest.approx(1.5)

    def test_non_positive_trend_values_are_skipped(self):
        """Months where the line is at or below zero get the neutral ratio."""
        seasonality = calculate_seasonality(monthly([0.0, 10.0]), 10.0, 0.0)
        assert seasonality[1] == 1.0
        assert seasonality[2] == pytest.approx(1.0)

    def test_ratios_averaged_across_years(self):
        """The same calendar month in two years is averaged."""
        points = monthly([50.0] + [100.0] * 11 + [150.0])
        seasonality = calculate_seasonality(points, 0.0, 100.0)
        assert seasonality[1] == pytest.approx(1.0)


class TestForecast:
    """Test forecast function."""

    def test_linear_growth(self):
        """Steady growth projects the next step with high confidence."""
        result = forecast(monthly([1000.0, 1100.0, 1200.0, 1300.0]))

        assert isinstance(result, ForecastResult)
        assert result.trend_slope == pytest.approx(100.0)
        assert result.trend_intercept == pytest.approx(1000.0)
        assert result.predicted_next_month == pytest.approx(1400.0)
        assert result.predicted_next_quarter == pytest.approx((1400.0, 1500.0, 1600.0))
        assert result.confidence == pytest.approx(1.0)

    def test_quarter_starts_with_next_month(self):
        result = forecast(monthly([3.0, 9.0, 4.0, 12.0, 8.0]))
        assert result.predicted_next_quarter[0] == result.predicted_next_month

    def test_single_point(self, caplog):
        """One month of history: flat, zero confidence, warning logged."""
        with caplog.at_level(logging.WARNING):
            result = forecast(monthly([500.0]))
        assert result.trend_slope == 0.0
        assert result.trend_intercept == 500.0
        assert result.confidence == 0.0
        assert result.predicted_next_month == pytest.approx(500.0)
        assert any("flat trend" in r.message for r in caplog.records)

    def test_two_points_have_zero_confidence(self):
        result = forecast(monthly([100.0, 200.0]))
        assert result.trend_slope == pytest.approx(100.0)
        assert result.confidence == 0.0

    def test_empty_series_gives_zero_result(self, caplog):
        """No history is not an error."""
        with caplog.at_level(logging.WARNING):
            result = forecast([])
        assert result.predicted_next_month == 0.0
        assert result.predicted_next_quarter == (0.0, 0.0, 0.0)
        assert result.confidence == 0.0
        assert set(result.seasonality.values()) == {1.0}
        assert result.fitted == ()
        assert any("Empty series" in r.message for r in caplog.records)

    def test_all_zero_series(self):
        """An idle business projects zero without dividing by zero."""
        result = forecast(monthly([0.0] * 6))
        assert result.trend_slope == 0.0
        assert result.predicted_next_quarter == (0.0, 0.0, 0.0)
        assert result.confidence == 1.0
        assert set(result.seasonality.values()) == {1.0}

    def test_constant_series(self):
        result = forecast(monthly([250.0] * 5))
        assert result.trend_slope == 0.0
        assert result.predicted_next_month == pytest.approx(250.0)
        assert result.confidence == 1.0

    def test_input_order_does_not_matter(self):
        """Points are sorted chronologically before fitting."""
        points = monthly([10.0, 30.0, 20.0, 50.0])
        assert forecast(points) == forecast(list(reversed(points)))

    def test_december_wraps_to_january(self):
        """The month after December uses January's seasonal ratio."""
        # Two years of flat history with January twice as strong
        values = []
        for month in range(1, 25):
            values.append(200.0 if month in (1, 13) else 100.0)
        result = forecast(monthly(values))
        assert result.seasonality[1] > result.seasonality[2]
        jan, feb, _ = result.predicted_next_quarter
        assert jan > feb

    def test_decline_is_clamped_at_zero(self):
        """Projections never go negative when clamping is enabled."""
        result = forecast(monthly([300.0, 150.0, 0.0]))
        assert result.predicted_next_quarter == (0.0, 0.0, 0.0)
        assert all(p.predicted >= 0.0 for p in result.fitted)

    def test_decline_without_clamping(self):
        config = ForecastConfig(clamp_negative=False)
        result = forecast(monthly([300.0, 150.0, 0.0]), config)
        assert result.predicted_next_month == pytest.approx(-150.0)
        assert result.predicted_next_quarter[2] == pytest.approx(-450.0)

    def test_fitted_values_cover_history(self):
        """fitted pairs each historical month with its trend value."""
        result = forecast(monthly([10.0, 20.0, 30.0]))
        assert [p.month for p in result.fitted] == ["2024-01", "2024-02", "2024-03"]
        assert [p.predicted for p in result.fitted] == pytest.approx([10.0, 20.0, 30.0])

    def test_confidence_in_unit_interval(self):
        result = forecast(monthly([5.0, 90.0, 1.0, 70.0, 3.0, 60.0, 2.0]))
        assert 0.0 <= result.confidence <= 1.0

    def test_duplicate_months_raise_error(self):
        points = [MonthlyPoint("2024-01", 1.0), MonthlyPoint("2024-01", 2.0)]
        with pytest.raises(ValueError, match="duplicate months"):
            forecast(points)

    def test_nan_history_raises_computation_error(self):
        with pytest.raises(ComputationError):
            forecast(monthly([1.0, float("nan"), 3.0]))

    def test_as_dict(self):
        payload = forecast(monthly([1.0, 2.0, 3.0])).as_dict()
        assert set(payload["seasonality"]) == {str(m) for m in range(1, 13)}
        assert len(payload["predicted_next_quarter"]) == 3
        assert len(payload["fitted"]) == 3
