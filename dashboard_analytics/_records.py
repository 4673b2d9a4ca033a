"""Shared field extraction for raw transaction, expense and visit records."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional, Sequence

from dashboard_analytics.errors import ComputationError


def record_date(
    record: Mapping[str, Any], index: int, fields: Sequence[str]
) -> Optional[date]:
    """Return the first populated date field of ``record`` as a calendar date.

    Datetimes are truncated to their date; time zones are not converted.
    Returns None when none of ``fields`` is populated, so callers can skip
    undated rows. A populated field that is not a date raises TypeError.
    """
    value = next((record.get(name) for name in fields if record.get(name)), None)
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raise TypeError(
        f"Record {'/'.join(fields)} must be a date or datetime",
        {"index": index, "value": value},
    )


def record_amount(record: Mapping[str, Any], index: int) -> Decimal:
    """Return ``record["amount"]`` as a non-negative finite Decimal."""
    try:
        raw = record["amount"]
    except KeyError as exc:
        raise KeyError(f"Record at index {index} missing key {exc.args[0]}") from exc

    if raw is None:
        return Decimal("0")
    try:
        amount = Decimal(str(raw))
    except InvalidOperation:
        raise ValueError(
            "Amount is not numeric", {"index": index, "amount": raw}
        ) from None
    if not amount.is_finite():
        raise ComputationError(f"Amount at index {index} is not finite: {raw}")
    if amount < 0:
        raise ValueError(
            "Amount cannot be negative", {"index": index, "amount": amount}
        )
    return amount


def record_customer_id(record: Mapping[str, Any], index: int) -> str:
    try:
        return str(record["customer_id"])
    except KeyError as exc:
        raise KeyError(f"Record at index {index} missing key {exc.args[0]}") from exc
