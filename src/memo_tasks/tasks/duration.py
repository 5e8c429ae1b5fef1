# src/memo_tasks/tasks/duration.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

DAYS_PER_YEAR = 365
DAYS_PER_MONTH = 30


@dataclass(frozen=True, slots=True)
class Duration:
    """
    Coarse year/month/day span.

    Conversion to days uses fixed ratios (1y = 365d, 1m = 30d), not calendar math.
    The conversion is lossy: from_total_days() normalizes, so
    Duration(days=400).total_days == 400 but from_total_days(400) == 1y 1m 5d.
    """

    years: int = 0
    months: int = 0
    days: int = 0

    def __post_init__(self) -> None:
        if self.years < 0 or self.months < 0 or self.days < 0:
            raise ValueError(
                f"Duration fields must be non-negative (got {self.years}y {self.months}m {self.days}d)"
            )

    @property
    def total_days(self) -> int:
        return self.years * DAYS_PER_YEAR + self.months * DAYS_PER_MONTH + self.days

    @classmethod
    def from_total_days(cls, n: int) -> Duration:
        """Greedy split: whole years first, then whole months of the rest, then days."""
        n = int(n)
        if n < 0:
            raise ValueError(f"total days must be non-negative (got {n})")
        years, rest = divmod(n, DAYS_PER_YEAR)
        months, days = divmod(rest, DAYS_PER_MONTH)
        return cls(years=years, months=months, days=days)

    def as_timedelta(self) -> timedelta:
        return timedelta(days=self.total_days)

    def __str__(self) -> str:
        return f"{self.years}y {self.months}m {self.days}d"
