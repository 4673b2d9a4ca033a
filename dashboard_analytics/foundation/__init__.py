"""Customer-level building blocks: activity summaries, RFM scores, segments."""

from .rfm import RFMScore, calculate_rfm_scores, compute_rfm
from .segmentation import CustomerSegmentation, segment_customers
from .segments import (
    SEGMENT_RULES,
    Segment,
    SegmentRule,
    SegmentStats,
    classify_segment,
    summarize_segments,
)
from .transactions import TransactionSummary, aggregate_transactions

__all__ = [
    "CustomerSegmentation",
    "RFMScore",
    "SEGMENT_RULES",
    "Segment",
    "SegmentRule",
    "SegmentStats",
    "TransactionSummary",
    "aggregate_transactions",
    "calculate_rfm_scores",
    "classify_segment",
    "compute_rfm",
    "segment_customers",
    "summarize_segments",
]
