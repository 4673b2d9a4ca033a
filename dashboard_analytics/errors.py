"""Exception types raised by the analytics engine.

Degenerate or sparse data is never an error: scoring and forecasting fall
back to documented neutral defaults instead. Only invalid request
parameters and genuine arithmetic faults surface as exceptions.
"""

from __future__ import annotations


class AnalyticsError(Exception):
    """Base class for analytics engine failures."""


class InvalidPeriodError(AnalyticsError, ValueError):
    """Window or month-count parameter is non-positive or out of range.

    Subclasses ``ValueError`` so callers that already guard parameter
    validation with ``except ValueError`` keep working.
    """


class ComputationError(AnalyticsError, ArithmeticError):
    """Numeric result is not finite (overflow, NaN propagation).

    A silently wrong number is worse than no number, so this is always
    propagated to the caller.
    """
