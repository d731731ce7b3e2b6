"""Tests for story period resolution and windows."""

from datetime import datetime, timedelta

import pytest

from storyline.shared.errors import InvalidPeriodError
from storyline.story.periods import (
    PERIOD_DAYS,
    StoryPeriod,
    period_label,
    period_title,
    resolve_period,
    window_start,
)


class TestResolvePeriod:
    """Tests for resolve_period()."""

    @pytest.mark.parametrize("raw", ["daily", "weekly", "monthly", "yearly", "all"])
    def test_accepts_whitelist(self, raw: str):
        assert resolve_period(raw) == StoryPeriod(raw)

    def test_case_and_whitespace_insensitive(self):
        assert resolve_period("  Weekly ") is StoryPeriod.WEEKLY
        assert resolve_period("ALL") is StoryPeriod.ALL

    @pytest.mark.parametrize("raw", ["hourly", "", "week", "daily; DROP TABLE stories"])
    def test_rejects_unknown(self, raw: str):
        with pytest.raises(InvalidPeriodError) as exc_info:
            resolve_period(raw)
        assert exc_info.value.code == "INVALID_PERIOD"

    def test_rejects_none(self):
        with pytest.raises(InvalidPeriodError):
            resolve_period(None)


class TestWindowStart:
    """Tests for window_start()."""

    def test_fixed_durations(self):
        now = datetime(2026, 2, 11, 12, 0)
        created = datetime(2020, 1, 1)
        assert window_start(StoryPeriod.DAILY, now, created) == now - timedelta(days=1)
        assert window_start(StoryPeriod.WEEKLY, now, created) == now - timedelta(days=7)
        assert window_start(StoryPeriod.MONTHLY, now, created) == now - timedelta(days=30)
        assert window_start(StoryPeriod.YEARLY, now, created) == now - timedelta(days=365)

    def test_daily_is_rolling_not_since_midnight(self):
        now = datetime(2026, 2, 11, 0, 30)
        assert window_start(StoryPeriod.DAILY, now, now) == datetime(2026, 2, 10, 0, 30)

    def test_all_starts_at_account_creation(self):
        created = datetime(2024, 6, 1, 9, 15)
        assert window_start(StoryPeriod.ALL, datetime(2026, 2, 11), created) == created

    def test_all_has_no_duration(self):
        assert StoryPeriod.ALL not in PERIOD_DAYS


class TestLabels:
    def test_period_label(self):
        assert period_label(StoryPeriod.WEEKLY) == "week period"
        assert period_label(StoryPeriod.ALL) == "entire journey"

    def test_period_title(self):
        assert period_title(StoryPeriod.MONTHLY) == "Monthly"
        assert period_title(StoryPeriod.ALL) == "All-Time"
