"""Tests for monthly series construction."""

import logging
import random
from datetime import date, datetime

import pytest

from dashboard_analytics.errors import InvalidPeriodError
from dashboard_analytics.finance.series import (
    MonthlyPoint,
    build_monthly_series,
    parse_month,
    shift_month,
)


class TestMonthHelpers:
    """Test month key helpers."""

    def test_parse_month(self):
        assert parse_month("2024-03") == (2024, 3)

    @pytest.mark.parametrize("bad", ["2024/03", "March", "2024-13", "2024-00"])
    def test_parse_month_rejects_bad_keys(self, bad):
        """Malformed or out-of-range keys raise ValueError."""
        with pytest.raises(ValueError):
            parse_month(bad)

    def test_shift_month_wraps_years(self):
        """Shifting crosses year boundaries in both directions."""
        assert shift_month(2024, 12, 1) == (2025, 1)
        assert shift_month(2024, 1, -1) == (2023, 12)
        assert shift_month(2024, 11, 3) == (2025, 2)

    def test_monthly_point_validates_month(self):
        """MonthlyPoint rejects malformed month keys."""
        with pytest.raises(ValueError, match="YYYY-MM"):
            MonthlyPoint("24-3-1", 10.0)
        assert MonthlyPoint("2024-07", 1.0).calendar_month == 7


class TestBuildMonthlySeries:
    """Test build_monthly_series function."""

    def test_returns_exactly_months_points(self):
        """Output length equals the requested month count."""
        series = build_monthly_series([], 12, reference_date=date(2024, 6, 15))
        assert len(series) == 12
        assert series[0].month == "2023-07"
        assert series[-1].month == "2024-06"

    def test_contiguous_across_year_boundary(self):
        """Months are consecutive with no gaps."""
        series = build_monthly_series([], 4, reference_date=date(2024, 2, 1))
        assert [p.month for p in series] == ["2023-11", "2023-12", "2024-01", "2024-02"]

    def test_sums_and_zero_fills(self):
        """Amounts are summed per month and empty months are 0.0."""
        rows = [
            {"amount": 100, "date": date(2024, 1, 5)},
            {"amount": "50.25", "date": datetime(2024, 1, 31, 23, 0)},
            {"amount": 10, "date": date(2024, 3, 1)},
        ]
        series = build_monthly_series(rows, 3, reference_date=date(2024, 3, 20))
        assert [(p.month, p.actual) for p in series] == [
            ("2024-01", 150.25),
            ("2024-02", 0.0),
            ("2024-03", 10.0),
        ]

    def test_rows_outside_range_are_ignored(self):
        """Rows before the first or after the last month are dropped."""
        rows = [
            {"amount": 1, "date": date(2023, 12, 31)},
            {"amount": 2, "date": date(2024, 4, 1)},
            {"amount": 3, "date": date(2024, 2, 2)},
        ]
        series = build_monthly_series(rows, 3, reference_date=date(2024, 3, 1))
        assert sum(p.actual for p in series) == 3.0

    def test_row_order_does_not_change_result(self):
        """Shuffling rows gives the same series."""
        rows = [
            {"amount": f"{i}.10", "date": date(2024, 1 + i % 6, 1 + i % 27)}
            for i in range(40)
        ]
        shuffled = list(rows)
        random.Random(7).shuffle(shuffled)
        reference = date(2024, 6, 30)
        assert build_monthly_series(rows, 6, reference) == build_monthly_series(
            shuffled, 6, reference
        )

    def test_created_at_fallback(self):
        """created_at is used when date is missing."""
        rows = [{"amount": 5, "created_at": date(2024, 5, 3)}]
        series = build_monthly_series(rows, 1, reference_date=date(2024, 5, 31))
        assert series[0].actual == 5.0

    def test_expense_and_transaction_date_fields(self):
        """Expense rows dated by expense_date and sales by transaction_date."""
        rows = [
            {"amount": 40, "expense_date": date(2024, 3, 2)},
            {"amount": 60, "transaction_date": datetime(2024, 2, 14, 12, 0)},
        ]
        series = build_monthly_series(rows, 2, reference_date=date(2024, 3, 31))
        assert [(p.month, p.actual) for p in series] == [
            ("2024-02", 60.0),
            ("2024-03", 40.0),
        ]

    def test_undated_rows_are_skipped(self, caplog):
        """Rows without a date are dropped with a warning, not an error."""
        rows = [
            {"amount": 100, "date": None},
            {"amount": 25},
            {"amount": 10, "date": date(2024, 3, 1)},
        ]
        with caplog.at_level(logging.WARNING):
            series = build_monthly_series(rows, 1, reference_date=date(2024, 3, 31))
        assert series[0].actual == 10.0
        assert any("Skipped 2 undated" in r.message for r in caplog.records)

    @pytest.mark.parametrize("months", [0, -1, 61])
    def test_months_out_of_range_raises_error(self, months):
        """months must be within 1..60."""
        with pytest.raises(InvalidPeriodError, match="months must be between 1 and 60"):
            build_monthly_series([], months, reference_date=date(2024, 1, 1))

    def test_sixty_months_allowed(self):
        """The upper bound itself is accepted."""
        series = build_monthly_series([], 60, reference_date=date(2024, 1, 1))
        assert series[0].month == "2019-02"

    def test_negative_amount_raises_error(self):
        """Negative amounts are rejected."""
        rows = [{"amount": -1, "date": date(2024, 1, 1)}]
        with pytest.raises(ValueError, match="Amount cannot be negative"):
            build_monthly_series(rows, 1, reference_date=date(2024, 1, 1))
