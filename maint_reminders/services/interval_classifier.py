"""Usage-intensity classification of a vehicle from its service history.

The gap between the two most recent distinct service days decides which
tier applies. Frequent service (a small gap) means heavy use and a short
reminder interval; sparse service means a longer one.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, List, Optional, Sequence


@dataclass(frozen=True)
class IntervalTier:
    """Use ``interval_days`` when the gap exceeds ``threshold_days``."""

    threshold_days: int
    interval_days: int
    label: str = ""


def as_calendar_date(value: date | datetime) -> date:
    """Drop any time-of-day component."""
    if isinstance(value, datetime):
        return value.date()
    return value


def distinct_days_desc(dates: Iterable[date | datetime]) -> List[date]:
    """Deduplicate by calendar day, most recent first."""
    return sorted({as_calendar_date(d) for d in dates}, reverse=True)


class IntervalClassifier:
    """Pick the maintenance interval for a vehicle from a tier table.

    Tiers must be ordered by strictly descending threshold and end with a
    catch-all tier whose threshold is zero. When there is not enough history
    to measure a gap, ``default_interval_days`` applies; if it is not given,
    the longest configured interval is used.
    """

    def __init__(self, tiers: Sequence[IntervalTier], default_interval_days: Optional[int] = None):
        if not tiers:
            raise ValueError("At least one interval tier is required")
        self.tiers = list(tiers)
        self.default_interval_days = (
            default_interval_days
            if default_interval_days is not None
            else max(tier.interval_days for tier in self.tiers)
        )

    @property
    def default_tier(self) -> IntervalTier:
        """Tier reported when history is insufficient."""
        for tier in self.tiers:
            if tier.interval_days == self.default_interval_days:
                return tier
        return IntervalTier(threshold_days=0, interval_days=self.default_interval_days, label="default")

    def tier_for(self, service_dates: Iterable[date | datetime]) -> IntervalTier:
        days = distinct_days_desc(service_dates)
        if len(days) < 2:
            return self.default_tier

        gap = abs((days[0] - days[1]).days)
        for tier in self.tiers:
            if tier.threshold_days < gap:
                return tier
        # Unreachable with a zero-threshold catch-all, but keep it total
        return self.tiers[-1]

    def classify(self, service_dates: Iterable[date | datetime]) -> int:
        """Return the interval in days for the given service dates."""
        return self.tier_for(service_dates).interval_days
