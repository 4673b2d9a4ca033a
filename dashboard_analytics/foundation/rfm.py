"""RFM (Recency-Frequency-Monetary) scoring.

Each customer receives a 1-5 score per dimension from their rank position
within the current population:

- Recency: fewer days since last activity is better (5 = freshest)
- Frequency: more activity is better
- Monetary: more spend is better

Scores are relative to the population they were computed from and must be
recomputed whenever the population or window changes. They are never a
stored customer attribute.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np
import pandas as pd  # Used for stable multi-key ranking

from dashboard_analytics.foundation.segments import (
    SEGMENT_RULES,
    Segment,
    SegmentRule,
    classify_segment,
)
from dashboard_analytics.foundation.transactions import TransactionSummary

logger = logging.getLogger(__name__)

# Number of score buckets (quintiles)
SCORE_BINS = 5

# Score given to every customer when a dimension has a single distinct value
NEUTRAL_SCORE = 3


@dataclass(frozen=True)
class RFMScore:
    """RFM scores (1-5) and segment for a single customer.

    Attributes
    ----------
    customer_id:
        Unique customer identifier
    r_score:
        Recency score (1-5, where 5 = most recent)
    f_score:
        Frequency score (1-5, where 5 = most frequent)
    m_score:
        Monetary score (1-5, where 5 = highest spend)
    segment:
        Segment the score triple was classified into (under whichever rule
        table the scorer was given)
    """

    customer_id: str
    r_score: int
    f_score: int
    m_score: int
    segment: Segment

    def __post_init__(self) -> None:
        """Validate RFM scores."""
        for score_name, score_value in [
            ("r_score", self.r_score),
            ("f_score", self.f_score),
            ("m_score", self.m_score),
        ]:
            if not 1 <= score_value <= SCORE_BINS:
                raise ValueError(
                    f"{score_name} must be between 1 and {SCORE_BINS}: {score_value} (customer_id={self.customer_id})"
                )

    @property
    def rfm_score(self) -> str:
        """Combined score code, e.g. ``"555"`` for the best customers."""
        return f"{self.r_score}{self.f_score}{self.m_score}"


def _rank_scores(
    df: pd.DataFrame, column: str, higher_is_better: bool = True
) -> pd.Series:
    """Score one dimension by rank position.

    Customers are ordered worst to best by value (descending when lower is
    better) with a stable sort, ties broken by customer_id, and rank ``k`` of
    ``n`` maps to ``ceil(k / n * SCORE_BINS)``. The best customer therefore
    always scores 5. Equal values can straddle a bucket boundary;
    customer_id decides who lands on which side.
    """
    if df[column].nunique() == 1:
        logger.debug(
            "All %d customers share one %s value; assigning neutral score %d",
            len(df),
            column,
            NEUTRAL_SCORE,
        )
        return pd.Series(NEUTRAL_SCORE, index=df.index, dtype=int)

    n = len(df)
    ordered = df.sort_values(
        [column, "customer_id"], ascending=[higher_is_better, True], kind="mergesort"
    )
    ranks = np.arange(1, n + 1)
    # Integer ceiling division keeps bucket edges exact
    buckets = np.clip((ranks * SCORE_BINS + n - 1) // n, 1, SCORE_BINS)
    return pd.Series(buckets, index=ordered.index, dtype=int).reindex(df.index)


def calculate_rfm_scores(
    summaries: Sequence[TransactionSummary],
    rules: Sequence[SegmentRule] = SEGMENT_RULES,
) -> list[RFMScore]:
    """Score a customer population into 1-5 quintiles and assign segments.

    **Small populations**: with fewer than five customers the rank formula
    still spreads customers across the 1-5 range (e.g. two customers score
    3 and 5), rather than requiring five distinct buckets.

    **Uniform dimensions**: when every customer has the same value for a
    dimension (everyone visited once, say), everyone gets score 3 for that
    dimension instead of an arbitrary split.

    Parameters
    ----------
    summaries:
        One TransactionSummary per customer in the current window.
    rules:
        Ordered segment rule table (defaults to ``SEGMENT_RULES``).

    Returns
    -------
    list[RFMScore]
        Scores for each customer, sorted by customer_id. Empty input gives
        an empty list.

    Raises
    ------
    ValueError
        If a customer_id appears more than once.

    Examples
    --------
    >>> from datetime import date
    >>> from decimal import Decimal
    >>> population = [
    ...     TransactionSummary(f"C{i}", 10 * i, i, Decimal(100 * i), date(2024, 1, 1), date(2024, 1, 1))
    ...     for i in range(1, 6)
    ... ]
    >>> [s.m_score for s in calculate_rfm_scores(population)]
    [1, 2, 3, 4, 5]
    """
    if not summaries:
        logger.warning("No active customers in window; returning no RFM scores")
        return []

    data = {
        "customer_id": [s.customer_id for s in summaries],
        "recency_days": [s.recency_days for s in summaries],
        "frequency": [s.frequency for s in summaries],
        "monetary": [float(s.monetary) for s in summaries],
    }
    df = pd.DataFrame(data)

    duplicated = df["customer_id"][df["customer_id"].duplicated()]
    if not duplicated.empty:
        raise ValueError(
            f"Duplicate customer_id in RFM population: {sorted(set(duplicated))}"
        )

    # Recency: fewer days is better, so it is ranked descending (5 = most recent)
    df["r_score"] = _rank_scores(df, "recency_days", higher_is_better=False)
    df["f_score"] = _rank_scores(df, "frequency")
    df["m_score"] = _rank_scores(df, "monetary")

    rfm_scores: list[RFMScore] = []
    for record in df.to_dict("records"):
        r, f, m = int(record["r_score"]), int(record["f_score"]), int(record["m_score"])
        rfm_scores.append(
            RFMScore(
                customer_id=record["customer_id"],
                r_score=r,
                f_score=f,
                m_score=m,
                segment=classify_segment(r, f, m, rules=rules),
            )
        )

    rfm_scores.sort(key=lambda s: s.customer_id)
    logger.info("Scored %d customers", len(rfm_scores))
    return rfm_scores


# Name used by the dashboard's API layer
compute_rfm = calculate_rfm_scores
