"""Story period tags and their time windows.

Windows are fixed durations counted back from ``now`` (``daily`` is the
last 24 hours, not "since midnight"). The same durations drive cache
staleness.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import StrEnum

from storyline.shared.errors import InvalidPeriodError


class StoryPeriod(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    ALL = "all"


PERIOD_DAYS: dict[StoryPeriod, int] = {
    StoryPeriod.DAILY: 1,
    StoryPeriod.WEEKLY: 7,
    StoryPeriod.MONTHLY: 30,
    StoryPeriod.YEARLY: 365,
}


def resolve_period(raw: str | None) -> StoryPeriod:
    """Normalize a raw period tag against the whitelist.

    Case-insensitive and whitespace-tolerant. Anything outside the
    enumeration raises ``InvalidPeriodError``.
    """
    if raw is None:
        raise InvalidPeriodError("Period is required")
    normalized = raw.strip().lower()
    try:
        return StoryPeriod(normalized)
    except ValueError:
        raise InvalidPeriodError(f"Unknown period: {raw!r}") from None


def window_start(period: StoryPeriod, now: datetime, account_created_at: datetime) -> datetime:
    """Start boundary of the aggregation window for ``period``."""
    if period is StoryPeriod.ALL:
        return account_created_at
    return now - timedelta(days=PERIOD_DAYS[period])


def period_label(period: StoryPeriod) -> str:
    """Prompt wording for the window, e.g. ``"week period"``."""
    if period is StoryPeriod.ALL:
        return "entire journey"
    return {
        StoryPeriod.DAILY: "day period",
        StoryPeriod.WEEKLY: "week period",
        StoryPeriod.MONTHLY: "month period",
        StoryPeriod.YEARLY: "year period",
    }[period]


def period_title(period: StoryPeriod) -> str:
    """Title-case label used for feed posts."""
    return {
        StoryPeriod.DAILY: "Daily",
        StoryPeriod.WEEKLY: "Weekly",
        StoryPeriod.MONTHLY: "Monthly",
        StoryPeriod.YEARLY: "Yearly",
        StoryPeriod.ALL: "All-Time",
    }[period]
