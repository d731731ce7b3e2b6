"""Per-user daily generation quota.

The counter lives on the ``users`` row and is only ever changed by a single
conditional UPDATE, so concurrent requests from the same user cannot both
slip past the ceiling. Day boundaries follow the local calendar date of
``now``.
"""

from __future__ import annotations

import logging
from datetime import datetime, time, timedelta

import sqlalchemy as sa

from storyline.shared.errors import RateLimitExceededError
from storyline.store import Database, User

logger = logging.getLogger(__name__)

DAILY_GENERATION_LIMIT = 10


def _day_bounds(now: datetime) -> tuple[datetime, datetime]:
    start = datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)
    return start, start + timedelta(days=1)


class QuotaGuard:
    """Atomic check-and-increment of ``daily_generation_count``."""

    def __init__(self, db: Database, daily_limit: int = DAILY_GENERATION_LIMIT) -> None:
        self._db = db
        self._limit = daily_limit

    @property
    def daily_limit(self) -> int:
        return self._limit

    def consume(self, user_id: str, now: datetime) -> bool:
        """Take one generation slot for ``user_id``.

        A stamp from another calendar day resets the count to 1; otherwise
        the count increments only while below the limit. Returns whether a
        row was updated. A False return leaves the row untouched.
        """
        users = self._db.users
        day_start, next_day_start = _day_bounds(now)

        new_day = sa.or_(
            users.c.last_generation_date.is_(None),
            users.c.last_generation_date < day_start,
            users.c.last_generation_date >= next_day_start,
        )

        stmt = (
            sa.update(users)
            .where(
                users.c.id == user_id,
                sa.or_(new_day, users.c.daily_generation_count < self._limit),
            )
            .values(
                daily_generation_count=sa.case(
                    (new_day, 1),
                    else_=users.c.daily_generation_count + 1,
                ),
                last_generation_date=now,
            )
        )

        with self._db.engine.begin() as conn:
            result = conn.execute(stmt)
        return result.rowcount == 1

    def check(self, user_id: str, now: datetime) -> None:
        """Consume a slot or raise ``RateLimitExceededError``."""
        if not self.consume(user_id, now):
            logger.warning("Daily generation limit reached for user=%s", user_id)
            raise RateLimitExceededError(
                f"Daily limit of {self._limit} story generations reached"
            )

    def remaining(self, user: User, now: datetime) -> int:
        """Generations left today, from an already-loaded user (display only)."""
        last = user.last_generation_date
        if last is None or last.date() != now.date():
            return self._limit
        return max(self._limit - user.daily_generation_count, 0)
