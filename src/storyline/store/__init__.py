"""Storage domain: record models and the SQLAlchemy-backed database."""

from storyline.store.db import Database, new_id
from storyline.store.models import (
    Goal,
    GoalPeriod,
    GoalStatus,
    Post,
    PostStatus,
    Story,
    User,
)

__all__ = [
    "Database",
    "Goal",
    "GoalPeriod",
    "GoalStatus",
    "Post",
    "PostStatus",
    "Story",
    "User",
    "new_id",
]
