"""Monthly bucketing of revenue and expense records."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Mapping, Optional

from dashboard_analytics._records import record_amount, record_date
from dashboard_analytics.config import validate_months

logger = logging.getLogger(__name__)

MONEY_PRECISION = Decimal("0.01")

DATE_FIELDS = ("date", "transaction_date", "expense_date", "created_at")


def month_key(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def parse_month(key: str) -> tuple[int, int]:
    """Split a ``YYYY-MM`` key into ``(year, month)``."""
    try:
        year_str, month_str = key.split("-")
        year, month = int(year_str), int(month_str)
    except (AttributeError, ValueError):
        raise ValueError(f"Month must be formatted YYYY-MM: {key!r}") from None
    if not 1 <= month <= 12:
        raise ValueError(f"Month out of range in {key!r}")
    return year, month


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Move ``delta`` calendar months from ``(year, month)``."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


@dataclass(frozen=True)
class MonthlyPoint:
    """Total amount recorded in one calendar month.

    Attributes
    ----------
    month:
        Calendar month as ``YYYY-MM``
    actual:
        Sum of record amounts in that month (0.0 when there were none)
    """

    month: str
    actual: float

    def __post_init__(self) -> None:
        parse_month(self.month)

    @property
    def calendar_month(self) -> int:
        return parse_month(self.month)[1]


def build_monthly_series(
    rows: Iterable[Mapping[str, Any]],
    months: int,
    reference_date: Optional[date] = None,
) -> list[MonthlyPoint]:
    """Bucket records into a contiguous monthly series.

    The series covers ``months`` calendar months ending with the month of
    ``reference_date`` (today by default). Months without records are
    present with ``actual = 0.0``; records outside the range are ignored.
    Amounts are summed as Decimals, so row order never changes the result.

    Parameters
    ----------
    rows:
        Mappings with ``amount`` and a ``date``, falling back to
        ``transaction_date``, ``expense_date`` and then ``created_at``. Rows
        with none of these are skipped with a warning.
    months:
        Number of months to return, between 1 and 60.
    reference_date:
        Any day in the last month of the series.

    Returns
    -------
    list[MonthlyPoint]
        Exactly ``months`` points in chronological order

    Raises
    ------
    InvalidPeriodError
        If ``months`` is outside ``[1, 60]``

    Examples
    --------
    >>> rows = [{"amount": 100, "date": date(2024, 2, 10)}]
    >>> [(p.month, p.actual) for p in build_monthly_series(rows, 3, date(2024, 3, 5))]
    [('2024-01', 0.0), ('2024-02', 100.0), ('2024-03', 0.0)]
    """
    validate_months(months)
    if reference_date is None:
        reference_date = date.today()

    keys = [
        month_key(*shift_month(reference_date.year, reference_date.month, -offset))
        for offset in range(months - 1, -1, -1)
    ]
    totals: dict[str, Decimal] = defaultdict(Decimal)
    in_range = set(keys)

    matched = 0
    undated = 0
    for idx, row in enumerate(rows):
        amount = record_amount(row, idx)
        seen = record_date(row, idx, DATE_FIELDS)
        if seen is None:
            undated += 1
            continue
        key = month_key(seen.year, seen.month)
        if key not in in_range:
            continue
        totals[key] += amount
        matched += 1

    if undated:
        logger.warning("Skipped %d undated record(s)", undated)
    logger.debug("Bucketed %d records into %d months", matched, months)
    return [
        MonthlyPoint(
            month=key,
            actual=float(
                totals[key].quantize(MONEY_PRECISION, rounding=ROUND_HALF_UP)
            ),
        )
        for key in keys
    ]
