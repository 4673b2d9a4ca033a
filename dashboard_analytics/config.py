"""Runtime settings for the analytics engine and its command line tools."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dashboard_analytics.errors import InvalidPeriodError

ENV_PREFIX = "DASHBOARD_ANALYTICS_"

# Upper bound on month-count requests (five years of monthly points)
MAX_SERIES_MONTHS = 60

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def validate_period_days(period_days: int) -> int:
    """Return ``period_days`` if it is a positive integer.

    Raises
    ------
    InvalidPeriodError
        If the value is not an integer or is ``<= 0``.
    """
    if isinstance(period_days, bool) or not isinstance(period_days, int):
        raise InvalidPeriodError(
            f"period_days must be an integer, got {period_days!r}"
        )
    if period_days <= 0:
        raise InvalidPeriodError(f"period_days must be positive, got {period_days}")
    return period_days


def validate_months(months: int) -> int:
    """Return ``months`` if it lies in ``[1, MAX_SERIES_MONTHS]``."""
    if isinstance(months, bool) or not isinstance(months, int):
        raise InvalidPeriodError(f"months must be an integer, got {months!r}")
    if not 1 <= months <= MAX_SERIES_MONTHS:
        raise InvalidPeriodError(
            f"months must be between 1 and {MAX_SERIES_MONTHS}, got {months}"
        )
    return months


@dataclass(frozen=True)
class AnalyticsSettings:
    """Defaults applied when a caller does not pass explicit parameters.

    Attributes
    ----------
    default_period_days:
        RFM lookback window in days.
    default_forecast_months:
        Number of historical months fed to the forecaster.
    recent_revenue_months:
        Months averaged for the "recent revenue" headline figure.
    log_level:
        Root log level used by the command line tools.
    max_input_bytes:
        Size cap for JSON input files read by the command line tools.
    """

    default_period_days: int = 90
    default_forecast_months: int = 12
    recent_revenue_months: int = 3
    log_level: str = "INFO"
    max_input_bytes: int = 25 * 1024 * 1024

    def __post_init__(self) -> None:
        validate_period_days(self.default_period_days)
        validate_months(self.default_forecast_months)
        validate_months(self.recent_revenue_months)
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level: {self.log_level}")
        if self.max_input_bytes <= 0:
            raise ValueError(
                f"max_input_bytes must be positive, got {self.max_input_bytes}"
            )

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None
    ) -> "AnalyticsSettings":
        """Build settings from ``DASHBOARD_ANALYTICS_*`` environment variables.

        Unset variables keep their defaults.
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        def _int(name: str, default: int) -> int:
            raw = env.get(ENV_PREFIX + name)
            if raw is None or raw.strip() == "":
                return default
            try:
                return int(raw)
            except ValueError:
                raise ValueError(
                    f"{ENV_PREFIX}{name} must be an integer, got {raw!r}"
                ) from None

        return cls(
            default_period_days=_int("PERIOD_DAYS", defaults.default_period_days),
            default_forecast_months=_int(
                "FORECAST_MONTHS", defaults.default_forecast_months
            ),
            recent_revenue_months=_int(
                "RECENT_MONTHS", defaults.recent_revenue_months
            ),
            log_level=env.get(ENV_PREFIX + "LOG_LEVEL", defaults.log_level).upper(),
            max_input_bytes=_int("MAX_INPUT_BYTES", defaults.max_input_bytes),
        )
