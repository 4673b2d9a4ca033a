"""Pandas DataFrame adapters for RFM scoring."""

from typing import Any, Dict, List, Optional, Sequence
from datetime import date
import pandas as pd  # type: ignore

from dashboard_analytics.foundation.rfm import RFMScore, calculate_rfm_scores
from dashboard_analytics.foundation.transactions import (
    TransactionSummary,
    aggregate_transactions,
)
from ._utils import decimal_to_float, require_columns

SUMMARY_COLUMNS = [
    "customer_id",
    "recency_days",
    "frequency",
    "monetary",
    "first_seen",
    "last_seen",
    "transaction_count",
    "visit_count",
]

SCORE_COLUMNS = ["customer_id", "r_score", "f_score", "m_score", "rfm_score", "segment"]


def dataframe_to_records(
    df: pd.DataFrame,
    customer_id_col: Optional[str] = "customer_id",
    amount_col: Optional[str] = "amount",
    date_col: str = "date",
) -> List[Dict[str, Any]]:
    """Convert a DataFrame of raw records to the mappings the engine expects.

    Args:
        df: DataFrame of transactions, expenses or visits
        customer_id_col: Customer column (None for records without customers,
            e.g. expenses)
        amount_col: Amount column (None for visits)
        date_col: Date or timestamp column

    Returns:
        List of dicts with ``customer_id``, ``amount`` and ``date`` keys, where
        ``date`` is a ``datetime``

    Raises:
        ValueError: If DataFrame is missing required columns or has null values

    Example:
        >>> txns_df = pd.read_parquet('transactions.parquet')
        >>> records = dataframe_to_records(txns_df, date_col='transaction_date')
        >>> summaries = aggregate_transactions(records, period_days=90)
    """
    mapping = {"date": date_col}
    if customer_id_col is not None:
        mapping["customer_id"] = customer_id_col
    if amount_col is not None:
        mapping["amount"] = amount_col

    require_columns(df, list(mapping.values()), "Records")
    if df.empty:
        return []

    records = []
    for row in df.to_dict("records"):
        record: Dict[str, Any] = {
            "date": pd.to_datetime(row[date_col]).to_pydatetime()
        }
        if customer_id_col is not None:
            record["customer_id"] = str(row[customer_id_col])
        if amount_col is not None:
            record["amount"] = row[amount_col]
        records.append(record)
    return records


def summaries_to_dataframe(summaries: Sequence[TransactionSummary]) -> pd.DataFrame:
    """Convert transaction summaries to a DataFrame sorted by customer_id."""
    if not summaries:
        return pd.DataFrame(columns=SUMMARY_COLUMNS)

    rows = [
        {
            "customer_id": s.customer_id,
            "recency_days": s.recency_days,
            "frequency": s.frequency,
            "monetary": decimal_to_float(s.monetary),
            "first_seen": s.first_seen,
            "last_seen": s.last_seen,
            "transaction_count": s.transaction_count,
            "visit_count": s.visit_count,
        }
        for s in summaries
    ]
    df = pd.DataFrame(rows, columns=SUMMARY_COLUMNS)
    return df.sort_values("customer_id").reset_index(drop=True)


def rfm_scores_to_dataframe(scores: Sequence[RFMScore]) -> pd.DataFrame:
    """Convert RFM scores to a DataFrame; ``segment`` holds the label string.

    Example:
        >>> scores_df = rfm_scores_to_dataframe(calculate_rfm_scores(summaries))
        >>> scores_df.groupby('segment').size()
    """
    if not scores:
        return pd.DataFrame(columns=SCORE_COLUMNS)

    rows = [
        {
            "customer_id": s.customer_id,
            "r_score": s.r_score,
            "f_score": s.f_score,
            "m_score": s.m_score,
            "rfm_score": s.rfm_score,
            "segment": s.segment.value,
        }
        for s in scores
    ]
    df = pd.DataFrame(rows, columns=SCORE_COLUMNS)
    return df.sort_values("customer_id").reset_index(drop=True)


def calculate_rfm_df(
    transactions_df: pd.DataFrame,
    period_days: int,
    reference_date: Optional[date] = None,
    visits_df: Optional[pd.DataFrame] = None,
    customer_id_col: str = "customer_id",
    amount_col: str = "amount",
    date_col: str = "date",
) -> pd.DataFrame:
    """Aggregate, score and segment customers from DataFrames.

    Convenience function that combines conversion, aggregation and scoring.

    Args:
        transactions_df: DataFrame of raw transactions
        period_days: Lookback window in days
        reference_date: End of window (defaults to today)
        visits_df: Optional DataFrame of visits with customer and date columns
        *_col: Column name mappings for flexibility

    Returns:
        One row per active customer with summary and score columns

    Example:
        >>> rfm_df = calculate_rfm_df(txns_df, period_days=90)
        >>> rfm_df[rfm_df['segment'] == 'VIP']
    """
    transactions = dataframe_to_records(
        transactions_df,
        customer_id_col=customer_id_col,
        amount_col=amount_col,
        date_col=date_col,
    )
    visits = None
    if visits_df is not None:
        visits = dataframe_to_records(
            visits_df, customer_id_col=customer_id_col, amount_col=None, date_col=date_col
        )

    summaries = aggregate_transactions(
        transactions, period_days, reference_date=reference_date, visits=visits
    )
    scores = calculate_rfm_scores(summaries)

    summary_df = summaries_to_dataframe(summaries)
    scores_df = rfm_scores_to_dataframe(scores)
    return summary_df.merge(scores_df, on="customer_id", how="left")
