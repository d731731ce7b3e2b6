"""Goal creation, completion and visibility rules.

Owners see all of their goals; everyone else only sees completed ones.
Only active goals feed story generation (see ``storyline.story.context``).
"""

from __future__ import annotations

import calendar
import logging
from datetime import datetime, time, timedelta

from storyline.shared.errors import GoalConflictError, InvalidGoalError
from storyline.shared.sanitize import sanitize_goal_title
from storyline.store import Database, Goal, GoalPeriod, GoalStatus

logger = logging.getLogger(__name__)

_END_OF_DAY = time(23, 59, 59)


def resolve_goal_period(raw: str | None) -> GoalPeriod:
    if not raw:
        raise InvalidGoalError("Goal period is required")
    try:
        return GoalPeriod(raw.strip().lower())
    except ValueError:
        raise InvalidGoalError(f"Invalid goal period: {raw!r}") from None


def calculate_deadline(period: GoalPeriod, now: datetime) -> datetime:
    """End (23:59:59) of the current day, week (Sunday), month, quarter or year."""
    today = now.date()
    if period is GoalPeriod.DAILY:
        end = today
    elif period is GoalPeriod.WEEKLY:
        end = today + timedelta(days=6 - today.weekday())
    elif period is GoalPeriod.MONTHLY:
        end = today.replace(day=calendar.monthrange(today.year, today.month)[1])
    elif period is GoalPeriod.QUARTERLY:
        quarter_end_month = ((today.month - 1) // 3 + 1) * 3
        last_day = calendar.monthrange(today.year, quarter_end_month)[1]
        end = today.replace(month=quarter_end_month, day=last_day)
    else:
        end = today.replace(month=12, day=31)
    return datetime.combine(end, _END_OF_DAY)


def create_goal(
    db: Database,
    user_id: str,
    title: str,
    raw_period: str,
    now: datetime,
) -> Goal:
    """Create an ACTIVE goal, one per period per user.

    Raises:
        InvalidGoalError: Empty title (after sanitizing) or unknown period.
        GoalConflictError: An ACTIVE goal already exists for this period.
    """
    clean_title = sanitize_goal_title(title)
    if not clean_title:
        raise InvalidGoalError("Goal title is required")
    period = resolve_goal_period(raw_period)

    if db.list_goals(user_id, status=GoalStatus.ACTIVE, period=period):
        raise GoalConflictError(
            f"You already have an active {period.value} goal. Complete or abandon it first."
        )

    goal = db.insert_goal(
        user_id,
        clean_title,
        period,
        start_date=now,
        deadline=calculate_deadline(period, now),
        created_at=now,
    )
    logger.info("Created %s goal %s for user=%s", period.value, goal.id, user_id)
    return goal


def complete_goal(db: Database, user_id: str, goal_id: str, now: datetime) -> bool:
    """Mark an owner's ACTIVE goal COMPLETED. Returns False if no match."""
    return db.mark_goal_completed(user_id, goal_id, now)


def list_user_goals(db: Database, requester_id: str | None, target_user_id: str) -> list[Goal]:
    """Goals of ``target_user_id`` as visible to ``requester_id``, newest first."""
    if requester_id is not None and requester_id == target_user_id:
        return db.list_goals(target_user_id)
    return db.list_goals(target_user_id, status=GoalStatus.COMPLETED)
