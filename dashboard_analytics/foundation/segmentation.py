"""End-to-end customer segmentation for one analysis window."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, Mapping, Optional

from dashboard_analytics.foundation.rfm import RFMScore, calculate_rfm_scores
from dashboard_analytics.foundation.segments import (
    Segment,
    SegmentStats,
    summarize_segments,
)
from dashboard_analytics.foundation.transactions import (
    TransactionSummary,
    aggregate_transactions,
)


@dataclass(frozen=True)
class CustomerSegmentation:
    """Scored population and per-segment statistics for one window."""

    period_days: int
    reference_date: date
    summaries: list[TransactionSummary]
    scores: list[RFMScore]
    segment_stats: dict[Segment, SegmentStats]

    @property
    def total_customers(self) -> int:
        return len(self.scores)

    def as_dict(self) -> dict[str, object]:
        """Return a JSON-serialisable representation."""
        summaries = {s.customer_id: s for s in self.summaries}
        customers = []
        for score in self.scores:
            summary = summaries[score.customer_id]
            customers.append(
                {
                    "customer_id": score.customer_id,
                    "recency_days": summary.recency_days,
                    "frequency": summary.frequency,
                    "monetary": float(summary.monetary),
                    "transaction_count": summary.transaction_count,
                    "visit_count": summary.visit_count,
                    "first_seen": summary.first_seen.isoformat(),
                    "last_seen": summary.last_seen.isoformat(),
                    "r_score": score.r_score,
                    "f_score": score.f_score,
                    "m_score": score.m_score,
                    "segment": score.segment.value,
                }
            )
        return {
            "period_days": self.period_days,
            "reference_date": self.reference_date.isoformat(),
            "total_customers": self.total_customers,
            "customers": customers,
            "segment_stats": {
                segment.value: {
                    "count": stats.customer_count,
                    "total_revenue": float(stats.total_revenue),
                    "avg_revenue": float(stats.avg_revenue),
                }
                for segment, stats in self.segment_stats.items()
            },
        }


def segment_customers(
    transactions: Iterable[Mapping[str, Any]],
    period_days: int,
    reference_date: Optional[date] = None,
    visits: Optional[Iterable[Mapping[str, Any]]] = None,
) -> CustomerSegmentation:
    """Aggregate, score and segment every active customer in the window."""
    if reference_date is None:
        reference_date = date.today()
    summaries = aggregate_transactions(
        transactions, period_days, reference_date=reference_date, visits=visits
    )
    scores = calculate_rfm_scores(summaries)
    return CustomerSegmentation(
        period_days=period_days,
        reference_date=reference_date,
        summaries=summaries,
        scores=scores,
        segment_stats=summarize_segments(summaries, scores),
    )
