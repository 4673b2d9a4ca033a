"""Command line entry points for the dashboard analytics engine."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional

from dashboard_analytics.config import AnalyticsSettings
from dashboard_analytics.errors import InvalidPeriodError
from dashboard_analytics.finance.report import forecast_finances
from dashboard_analytics.foundation.segmentation import segment_customers

logger = logging.getLogger(__name__)

DATE_FIELDS = (
    "date",
    "transaction_date",
    "expense_date",
    "created_at",
    "appointment_date",
)

EXIT_INVALID_PERIOD = 2


def _load_records(path: Path, max_bytes: int) -> list[dict[str, Any]]:
    resolved = path.resolve()
    size = resolved.stat().st_size
    if size > max_bytes:
        raise ValueError(
            f"Input file {resolved} is {size} bytes; exceeds limit of {max_bytes} bytes"
        )
    with path.open("r", encoding="utf-8") as fh:
        payload = json.load(fh)
    if not isinstance(payload, list):
        raise ValueError(f"Expected a list of records in {resolved}")

    # Convert ISO date strings to datetime objects
    records = []
    for item in payload:
        record = dict(item)
        for field in DATE_FIELDS:
            value = record.get(field)
            if isinstance(value, str) and value.strip():
                record[field] = datetime.fromisoformat(value.replace("Z", "+00:00"))
        records.append(record)
    return records


def _parse_reference_date(value: Optional[str]) -> Optional[date]:
    if value is None:
        return None
    return date.fromisoformat(value)


def _write_output(payload: dict[str, object], output: Optional[Path]) -> None:
    if output:
        output_path = output.resolve()
        cwd = Path.cwd().resolve()
        try:
            output_path.relative_to(cwd)
        except ValueError:
            raise ValueError(
                f"Output path {output_path} must reside within the current working directory"
            )
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with output_path.open("w", encoding="utf-8") as fh:
            json.dump(payload, fh, indent=2, sort_keys=True)
        logger.info(f"Results written to {output_path}")
    else:  # stdout fallback enables piping in shell usage.
        json.dump(payload, fp=sys.stdout, indent=2, sort_keys=True)
        print()


def _configure_logging(settings: AnalyticsSettings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def segment_customers_cli(argv: list[str] | None = None) -> int:
    """Score and segment customers from a JSON file of transactions.

    Args:
        argv: Command line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, 2 for an invalid window)
    """
    settings = AnalyticsSettings.from_env()
    parser = argparse.ArgumentParser(
        description="RFM customer segmentation from transaction data"
    )
    parser.add_argument(
        "input", type=Path, help="Path to JSON file with raw transactions"
    )
    parser.add_argument(
        "--visits", type=Path, help="Optional JSON file with visits/appointments"
    )
    parser.add_argument(
        "--period-days",
        type=int,
        default=settings.default_period_days,
        help=f"Lookback window in days (default: {settings.default_period_days})",
    )
    parser.add_argument(
        "--reference-date",
        type=str,
        help="End of the window (ISO format: YYYY-MM-DD). Defaults to today.",
    )
    parser.add_argument(
        "--output", type=Path, help="Optional path for writing results as JSON."
    )

    args = parser.parse_args(argv)
    _configure_logging(settings)

    logger.info(f"Loading transactions from {args.input}")
    transactions = _load_records(args.input, settings.max_input_bytes)
    visits = None
    if args.visits:
        logger.info(f"Loading visits from {args.visits}")
        visits = _load_records(args.visits, settings.max_input_bytes)

    try:
        segmentation = segment_customers(
            transactions,
            args.period_days,
            reference_date=_parse_reference_date(args.reference_date),
            visits=visits,
        )
    except InvalidPeriodError as exc:
        logger.error(str(exc))
        return EXIT_INVALID_PERIOD

    logger.info(
        f"Segmented {segmentation.total_customers} customers "
        f"over {segmentation.period_days} days"
    )
    _write_output(segmentation.as_dict(), args.output)
    return 0


def forecast_finances_cli(argv: list[str] | None = None) -> int:
    """Forecast revenue, expenses and profit from JSON files.

    Args:
        argv: Command line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, 2 for an invalid month count)
    """
    settings = AnalyticsSettings.from_env()
    parser = argparse.ArgumentParser(
        description="Forecast revenue, expenses and profit"
    )
    parser.add_argument(
        "revenue", type=Path, help="Path to JSON file with revenue records"
    )
    parser.add_argument(
        "--expenses", type=Path, help="Optional JSON file with expense records"
    )
    parser.add_argument(
        "--months",
        type=int,
        default=settings.default_forecast_months,
        help=f"Months of history to fit (default: {settings.default_forecast_months})",
    )
    parser.add_argument(
        "--reference-date",
        type=str,
        help="Any day in the last month of history (ISO format: YYYY-MM-DD).",
    )
    parser.add_argument(
        "--output", type=Path, help="Optional path for writing results as JSON."
    )

    args = parser.parse_args(argv)
    _configure_logging(settings)

    logger.info(f"Loading revenue from {args.revenue}")
    revenue = _load_records(args.revenue, settings.max_input_bytes)
    expenses: list[dict[str, Any]] = []
    if args.expenses:
        logger.info(f"Loading expenses from {args.expenses}")
        expenses = _load_records(args.expenses, settings.max_input_bytes)

    try:
        report = forecast_finances(
            revenue,
            expenses,
            months=args.months,
            reference_date=_parse_reference_date(args.reference_date),
            settings=settings,
        )
    except InvalidPeriodError as exc:
        logger.error(str(exc))
        return EXIT_INVALID_PERIOD

    _write_output(report.as_dict(), args.output)
    return 0


def main() -> None:
    raise SystemExit(segment_customers_cli())


if __name__ == "__main__":  # pragma: no cover
    main()
