"""Storage records: pure Pydantic v2 data types.

Each model mirrors one table in ``storyline.store.db`` and is built from a
SQLAlchemy row mapping via ``model_validate``.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class PostStatus(StrEnum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"


class GoalStatus(StrEnum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


class GoalPeriod(StrEnum):
    """Cadence of a goal. Broader than story periods (has quarterly)."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class _Record(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class User(_Record):
    """Profile plus the two quota fields owned by the quota guard."""

    id: str
    name: str
    email: str | None = None
    current_role: str | None = None
    industry: str | None = None
    experience_level: str | None = None
    years_of_experience: int | None = None
    current_skills: list[str] = Field(default_factory=list)
    target_skills: list[str] = Field(default_factory=list)
    current_goals: list[str] = Field(default_factory=list)
    created_at: datetime
    daily_generation_count: int = 0
    last_generation_date: datetime | None = None


class Post(_Record):
    id: str
    author_id: str
    title: str
    content: str
    status: PostStatus = PostStatus.DRAFT
    created_at: datetime
    story_generation_id: str | None = None
    story_period: str | None = None


class Goal(_Record):
    id: str
    user_id: str
    title: str
    period: GoalPeriod
    status: GoalStatus = GoalStatus.ACTIVE
    start_date: datetime
    deadline: datetime
    completed_at: datetime | None = None
    created_at: datetime


class Story(_Record):
    """Cached generated story, one per (user, period)."""

    id: str
    user_id: str
    period: str
    content: str
    created_at: datetime
    updated_at: datetime
