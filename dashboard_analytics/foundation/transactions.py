"""Reduce raw customer activity into one summary per customer.

Each summary describes a customer's behaviour inside a lookback window
ending at a reference date. Summaries are the input population for RFM
scoring and are rebuilt on every request; nothing here is cached or
persisted.
"""

from __future__ import annotations

import logging
import multiprocessing
import os
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Mapping, Optional

from dashboard_analytics._records import (
    record_amount,
    record_customer_id,
    record_date,
)
from dashboard_analytics.config import validate_period_days

logger = logging.getLogger(__name__)

MONEY_PRECISION = Decimal("0.01")

TRANSACTION_DATE_FIELDS = ("date", "transaction_date", "created_at")
VISIT_DATE_FIELDS = ("date", "appointment_date")


@dataclass(frozen=True)
class TransactionSummary:
    """Activity of a single customer within the analysis window.

    Attributes
    ----------
    customer_id:
        Unique customer identifier
    recency_days:
        Whole days from the latest transaction or visit to the reference date
    frequency:
        Activity count in the window (the larger of transaction and visit counts)
    monetary:
        Total transaction amount in the window
    first_seen:
        Date of the earliest activity in the window
    last_seen:
        Date of the latest activity in the window
    transaction_count:
        Number of transactions in the window
    visit_count:
        Number of visits (appointments) in the window
    """

    customer_id: str
    recency_days: int
    frequency: int
    monetary: Decimal
    first_seen: date
    last_seen: date
    transaction_count: int = 0
    visit_count: int = 0

    def __post_init__(self) -> None:
        if self.recency_days < 0:
            raise ValueError(
                f"Recency cannot be negative: {self.recency_days} (customer_id={self.customer_id})"
            )
        if self.frequency < 0:
            raise ValueError(
                f"Frequency cannot be negative: {self.frequency} (customer_id={self.customer_id})"
            )
        if self.monetary < 0:
            raise ValueError(
                f"Monetary value cannot be negative: {self.monetary} (customer_id={self.customer_id})"
            )
        if self.transaction_count < 0 or self.visit_count < 0:
            raise ValueError(
                f"Activity counts cannot be negative (customer_id={self.customer_id})"
            )
        if self.first_seen > self.last_seen:
            raise ValueError(
                f"first_seen ({self.first_seen}) is after last_seen ({self.last_seen}) "
                f"(customer_id={self.customer_id})"
            )


def _summarize_customers(
    customer_data: dict[str, dict[str, Any]], reference_date: date
) -> list[TransactionSummary]:
    """Build summaries for a chunk of customers.

    Module level so it can be shipped to ``multiprocessing`` workers.
    """
    summaries: list[TransactionSummary] = []
    for customer_id, data in customer_data.items():
        summaries.append(
            TransactionSummary(
                customer_id=customer_id,
                recency_days=(reference_date - data["last_seen"]).days,
                frequency=max(data["transaction_count"], data["visit_count"]),
                monetary=data["total_spend"].quantize(
                    MONEY_PRECISION, rounding=ROUND_HALF_UP
                ),
                first_seen=data["first_seen"],
                last_seen=data["last_seen"],
                transaction_count=data["transaction_count"],
                visit_count=data["visit_count"],
            )
        )
    return summaries


def _track(
    customer_data: dict[str, dict[str, Any]], customer_id: str, seen: date
) -> dict[str, Any]:
    data = customer_data.get(customer_id)
    if data is None:
        data = customer_data[customer_id] = {
            "transaction_count": 0,
            "visit_count": 0,
            "total_spend": Decimal("0"),
            "first_seen": seen,
            "last_seen": seen,
        }
    else:
        if seen < data["first_seen"]:
            data["first_seen"] = seen
        if seen > data["last_seen"]:
            data["last_seen"] = seen
    return data


def aggregate_transactions(
    transactions: Iterable[Mapping[str, Any]],
    period_days: int,
    reference_date: Optional[date] = None,
    visits: Optional[Iterable[Mapping[str, Any]]] = None,
    parallel: bool = True,
    parallel_threshold: int = 1_000_000,
    n_workers: Optional[int] = None,
) -> list[TransactionSummary]:
    """Summarise per-customer activity inside a lookback window.

    The window covers ``[reference_date - period_days, reference_date]``
    inclusive. Records dated after ``reference_date`` fall outside it.
    Customers with no activity in the window are left out entirely so they
    do not dilute the scoring population.

    Parameters
    ----------
    transactions:
        Raw transaction mappings with ``customer_id``, ``amount`` and a
        ``date`` (falling back to ``transaction_date``, then ``created_at``).
        Values may be ``date`` or ``datetime``. Rows with no date at all are
        skipped with a warning.
    period_days:
        Lookback window length in days. Must be a positive integer.
    reference_date:
        End of the window and anchor for recency. Defaults to today.
    visits:
        Optional visit/appointment mappings with ``customer_id`` and a
        ``date`` (or ``appointment_date``). Visits count toward frequency and
        recency but carry no monetary value.
    parallel:
        Enable process-pool summarisation above ``parallel_threshold``.
    parallel_threshold:
        Customer count at which the process pool kicks in.
    n_workers:
        Worker processes for the pool (defaults to CPU count).

    Returns
    -------
    list[TransactionSummary]
        One summary per active customer, sorted by customer_id

    Raises
    ------
    InvalidPeriodError
        If ``period_days`` is not a positive integer
    ComputationError
        If an amount is not a finite number
    TypeError
        If a populated date field holds something other than a date

    Examples
    --------
    >>> from datetime import date
    >>> rows = [
    ...     {"customer_id": "C1", "amount": 120, "date": date(2024, 3, 1)},
    ...     {"customer_id": "C1", "amount": 80, "date": date(2024, 3, 20)},
    ... ]
    >>> summary = aggregate_transactions(rows, 90, reference_date=date(2024, 3, 31))[0]
    >>> summary.frequency, summary.monetary, summary.recency_days
    (2, Decimal('200.00'), 11)
    """
    validate_period_days(period_days)
    if reference_date is None:
        reference_date = date.today()
    window_start = reference_date - timedelta(days=period_days)

    customer_data: dict[str, dict[str, Any]] = {}
    undated = 0

    for idx, txn in enumerate(transactions):
        customer_id = record_customer_id(txn, idx)
        amount = record_amount(txn, idx)
        seen = record_date(txn, idx, TRANSACTION_DATE_FIELDS)
        if seen is None:
            undated += 1
            continue
        if not window_start <= seen <= reference_date:
            continue
        data = _track(customer_data, customer_id, seen)
        data["transaction_count"] += 1
        data["total_spend"] += amount

    for idx, visit in enumerate(visits or ()):
        customer_id = record_customer_id(visit, idx)
        seen = record_date(visit, idx, VISIT_DATE_FIELDS)
        if seen is None:
            undated += 1
            continue
        if not window_start <= seen <= reference_date:
            continue
        data = _track(customer_data, customer_id, seen)
        data["visit_count"] += 1

    if undated:
        logger.warning("Skipped %d undated transaction/visit record(s)", undated)

    num_customers = len(customer_data)
    use_parallel = parallel and num_customers >= parallel_threshold

    if use_parallel:
        if n_workers is None:
            workers = os.cpu_count() or 1
        else:
            workers = max(1, n_workers)
        logger.debug(
            "Summarising %d customers across %d workers", num_customers, workers
        )
        customer_items = list(customer_data.items())
        chunk_size = max(1, num_customers // workers)
        chunks = [
            (dict(customer_items[i : i + chunk_size]), reference_date)
            for i in range(0, num_customers, chunk_size)
        ]
        with multiprocessing.Pool(processes=workers) as pool:
            chunk_results = pool.starmap(_summarize_customers, chunks)
        summaries = [summary for chunk in chunk_results for summary in chunk]
    else:
        summaries = _summarize_customers(customer_data, reference_date)

    summaries.sort(key=lambda s: s.customer_id)
    logger.info(
        "Aggregated %d active customers over %d days ending %s",
        len(summaries),
        period_days,
        reference_date.isoformat(),
    )
    return summaries
