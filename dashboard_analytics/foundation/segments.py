"""Customer segment classification from RFM score triples.

The ordered rule table below is the only place segment labels are
defined. Adding or changing a business category means editing
``SEGMENT_RULES``; the scorer never needs to change.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import TYPE_CHECKING, Callable, Sequence

if TYPE_CHECKING:
    from dashboard_analytics.foundation.rfm import RFMScore
    from dashboard_analytics.foundation.transactions import TransactionSummary

MIN_SCORE = 1
MAX_SCORE = 5

MONEY_PRECISION = Decimal("0.01")


class Segment(str, Enum):
    """Business-facing customer segments."""

    VIP = "VIP"
    EXCELLENT = "Excellent"
    POTENTIAL_VIP = "Potential_VIP"
    GENERAL = "General"
    AT_RISK = "AtRisk"
    DORMANT = "Dormant"


@dataclass(frozen=True)
class SegmentRule:
    """A single predicate → segment entry of the decision table."""

    segment: Segment
    predicate: Callable[[int, int, int], bool]
    description: str

    def matches(self, r: int, f: int, m: int) -> bool:
        return self.predicate(r, f, m)


# First match wins.
SEGMENT_RULES: tuple[SegmentRule, ...] = (
    SegmentRule(
        Segment.VIP,
        lambda r, f, m: r >= 4 and f >= 4 and m >= 4,
        "Recent, frequent and high spending",
    ),
    SegmentRule(
        Segment.EXCELLENT,
        lambda r, f, m: r >= 3 and f >= 3 and m >= 4,
        "Solid activity with high spend",
    ),
    SegmentRule(
        Segment.POTENTIAL_VIP,
        lambda r, f, m: r >= 4 and f <= 2 and m >= 3,
        "Recent but infrequent, spends well (upsell target)",
    ),
    SegmentRule(
        Segment.AT_RISK,
        lambda r, f, m: r <= 2 and f >= 3 and m >= 3,
        "Was valuable, going cold",
    ),
    SegmentRule(
        Segment.DORMANT,
        lambda r, f, m: r <= 2 and f <= 2,
        "Neither recent nor frequent",
    ),
)

FALLBACK_SEGMENT = Segment.GENERAL


def _validate_score(name: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer: {value!r}")
    if not MIN_SCORE <= value <= MAX_SCORE:
        raise ValueError(
            f"{name} must be between {MIN_SCORE} and {MAX_SCORE}: {value}"
        )


def classify_segment(
    r: int,
    f: int,
    m: int,
    rules: Sequence[SegmentRule] = SEGMENT_RULES,
) -> Segment:
    """Map an ``(r, f, m)`` score triple to its segment.

    Rules are evaluated in order and the first match wins; triples matching
    no rule are ``Segment.GENERAL``.

    >>> classify_segment(5, 5, 5)
    <Segment.VIP: 'VIP'>
    >>> classify_segment(5, 1, 4).value
    'Potential_VIP'
    """
    _validate_score("r_score", r)
    _validate_score("f_score", f)
    _validate_score("m_score", m)
    for rule in rules:
        if rule.matches(r, f, m):
            return rule.segment
    return FALLBACK_SEGMENT


@dataclass(frozen=True)
class SegmentStats:
    """Headcount and revenue of one segment.

    Attributes
    ----------
    segment:
        Segment these figures describe
    customer_count:
        Customers assigned to the segment
    total_revenue:
        Sum of monetary values of those customers
    avg_revenue:
        total_revenue / customer_count (0.00 for an empty segment)
    """

    segment: Segment
    customer_count: int
    total_revenue: Decimal
    avg_revenue: Decimal

    def __post_init__(self) -> None:
        if self.customer_count < 0:
            raise ValueError(
                f"customer_count must be >= 0, got {self.customer_count}"
            )
        if self.total_revenue < 0:
            raise ValueError(f"total_revenue must be >= 0, got {self.total_revenue}")


def summarize_segments(
    summaries: Sequence["TransactionSummary"],
    scores: Sequence["RFMScore"],
) -> dict[Segment, SegmentStats]:
    """Aggregate customer counts and revenue per segment.

    Every segment is present in the result, in decision-table order with
    ``GENERAL`` last, so consumers can render a stable legend.

    Raises
    ------
    ValueError
        If a score refers to a customer missing from ``summaries``.
    """
    monetary_by_customer = {s.customer_id: s.monetary for s in summaries}
    counts = {segment: 0 for segment in Segment}
    totals = {segment: Decimal("0") for segment in Segment}

    for score in scores:
        try:
            monetary = monetary_by_customer[score.customer_id]
        except KeyError:
            raise ValueError(
                f"No transaction summary for scored customer {score.customer_id}"
            ) from None
        counts[score.segment] += 1
        totals[score.segment] += Decimal(str(monetary))

    ordered = [rule.segment for rule in SEGMENT_RULES] + [FALLBACK_SEGMENT]
    stats: dict[Segment, SegmentStats] = {}
    for segment in ordered:
        count = counts[segment]
        total = totals[segment].quantize(MONEY_PRECISION, rounding=ROUND_HALF_UP)
        avg = (
            (totals[segment] / count).quantize(MONEY_PRECISION, rounding=ROUND_HALF_UP)
            if count
            else Decimal("0.00")
        )
        stats[segment] = SegmentStats(
            segment=segment,
            customer_count=count,
            total_revenue=total,
            avg_revenue=avg,
        )
    return stats
