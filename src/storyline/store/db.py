"""SQLAlchemy Core store for users, posts, goals and stories.

Provides table definitions, engine setup, and the read/seed operations the
story engine needs. Story, quota and share mutations live with their owning
components and run their own statements against ``Database.engine``.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.engine import Engine

from storyline.store.models import (
    Goal,
    GoalPeriod,
    GoalStatus,
    Post,
    PostStatus,
    Story,
    User,
)

logger = logging.getLogger(__name__)

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(200), nullable=False),
    Column("email", String(320), unique=True),
    Column("current_role", String(200)),
    Column("industry", String(200)),
    Column("experience_level", String(100)),
    Column("years_of_experience", Integer),
    Column("current_skills", JSON, nullable=False, default=list),
    Column("target_skills", JSON, nullable=False, default=list),
    Column("current_goals", JSON, nullable=False, default=list),
    Column("created_at", DateTime, nullable=False),
    Column("daily_generation_count", Integer, nullable=False, default=0),
    Column("last_generation_date", DateTime),
)

posts = Table(
    "posts",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("author_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("title", String(500), nullable=False),
    Column("content", Text, nullable=False),
    Column("status", String(20), nullable=False, default=PostStatus.DRAFT.value),
    Column("created_at", DateTime, nullable=False),
    Column("story_generation_id", String(64)),
    Column("story_period", String(20)),
    # One feed post per story generation; NULLs (ordinary posts) are exempt.
    UniqueConstraint("author_id", "story_generation_id", name="uq_posts_author_generation"),
)

goals = Table(
    "goals",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("title", String(500), nullable=False),
    Column("period", String(20), nullable=False),
    Column("status", String(20), nullable=False, default=GoalStatus.ACTIVE.value),
    Column("start_date", DateTime, nullable=False),
    Column("deadline", DateTime, nullable=False),
    Column("completed_at", DateTime),
    Column("created_at", DateTime, nullable=False),
)

stories = Table(
    "stories",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("period", String(20), nullable=False),
    Column("content", Text, nullable=False),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
    UniqueConstraint("user_id", "period", name="uq_stories_user_period"),
)


def new_id() -> str:
    return uuid.uuid4().hex


def _row_dict(row: Any) -> dict[str, Any]:
    return dict(row._mapping)


class Database:
    """Engine plus table handles.

    Creates the schema on init (idempotent). Every method opens its own
    short transaction; there is no in-process shared state.
    """

    def __init__(self, url: str, *, echo: bool = False) -> None:
        self.url = url
        self.engine: Engine = create_engine(url, echo=echo)
        self.users = users
        self.posts = posts
        self.goals = goals
        self.stories = stories
        metadata.create_all(self.engine)
        logger.debug("Database ready at %s", self.engine.url.render_as_string(hide_password=True))

    def dispose(self) -> None:
        self.engine.dispose()

    # -- Users ---------------------------------------------------------------

    def create_user(
        self,
        name: str,
        *,
        created_at: datetime,
        user_id: str | None = None,
        **profile: Any,
    ) -> User:
        """Insert a user. ``profile`` keys map to ``users`` columns."""
        values: dict[str, Any] = {
            "id": user_id or new_id(),
            "name": name,
            "current_skills": [],
            "target_skills": [],
            "current_goals": [],
            "created_at": created_at,
            "daily_generation_count": 0,
            "last_generation_date": None,
        }
        values.update(profile)
        with self.engine.begin() as conn:
            conn.execute(sa.insert(self.users).values(**values))
        return User.model_validate(values)

    def get_user(self, user_id: str) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(
                sa.select(self.users).where(self.users.c.id == user_id)
            ).fetchone()
        if row is None:
            return None
        return User.model_validate(_row_dict(row))

    def set_quota_state(
        self, user_id: str, count: int, last_generation_date: datetime | None
    ) -> None:
        """Overwrite the quota fields directly. Used by `storyline reset-quota`."""
        with self.engine.begin() as conn:
            conn.execute(
                sa.update(self.users)
                .where(self.users.c.id == user_id)
                .values(
                    daily_generation_count=count,
                    last_generation_date=last_generation_date,
                )
            )

    # -- Posts ---------------------------------------------------------------

    def add_post(
        self,
        author_id: str,
        title: str,
        content: str,
        *,
        created_at: datetime,
        status: PostStatus = PostStatus.PUBLISHED,
    ) -> Post:
        values: dict[str, Any] = {
            "id": new_id(),
            "author_id": author_id,
            "title": title,
            "content": content,
            "status": status.value,
            "created_at": created_at,
            "story_generation_id": None,
            "story_period": None,
        }
        with self.engine.begin() as conn:
            conn.execute(sa.insert(self.posts).values(**values))
        return Post.model_validate(values)

    def list_published_posts(self, author_id: str, since: datetime) -> list[Post]:
        """PUBLISHED posts by ``author_id`` created on/after ``since``, oldest first.

        Feed posts mirrored from stories are excluded; a story never feeds
        the next generation.
        """
        stmt = (
            sa.select(self.posts)
            .where(
                self.posts.c.author_id == author_id,
                self.posts.c.status == PostStatus.PUBLISHED.value,
                self.posts.c.story_generation_id.is_(None),
                self.posts.c.created_at >= since,
            )
            .order_by(self.posts.c.created_at.asc())
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [Post.model_validate(_row_dict(r)) for r in rows]

    def list_story_posts(self, author_id: str) -> list[Post]:
        """Feed posts mirrored from stories, newest first."""
        stmt = (
            sa.select(self.posts)
            .where(
                self.posts.c.author_id == author_id,
                self.posts.c.story_generation_id.is_not(None),
            )
            .order_by(self.posts.c.created_at.desc())
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [Post.model_validate(_row_dict(r)) for r in rows]

    # -- Goals ---------------------------------------------------------------

    def insert_goal(
        self,
        user_id: str,
        title: str,
        period: GoalPeriod,
        *,
        start_date: datetime,
        deadline: datetime,
        status: GoalStatus = GoalStatus.ACTIVE,
        created_at: datetime | None = None,
    ) -> Goal:
        values: dict[str, Any] = {
            "id": new_id(),
            "user_id": user_id,
            "title": title,
            "period": period.value,
            "status": status.value,
            "start_date": start_date,
            "deadline": deadline,
            "completed_at": None,
            "created_at": created_at or start_date,
        }
        with self.engine.begin() as conn:
            conn.execute(sa.insert(self.goals).values(**values))
        return Goal.model_validate(values)

    def list_goals(
        self,
        user_id: str,
        *,
        status: GoalStatus | None = None,
        period: GoalPeriod | None = None,
        order_by_start: bool = False,
    ) -> list[Goal]:
        """Goals for a user, newest first (by creation, or by start date)."""
        stmt = sa.select(self.goals).where(self.goals.c.user_id == user_id)
        if status is not None:
            stmt = stmt.where(self.goals.c.status == status.value)
        if period is not None:
            stmt = stmt.where(self.goals.c.period == period.value)
        order_col = self.goals.c.start_date if order_by_start else self.goals.c.created_at
        stmt = stmt.order_by(order_col.desc())
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [Goal.model_validate(_row_dict(r)) for r in rows]

    def mark_goal_completed(self, user_id: str, goal_id: str, completed_at: datetime) -> bool:
        """Flip an ACTIVE goal to COMPLETED. Returns False if nothing matched."""
        stmt = (
            sa.update(self.goals)
            .where(
                self.goals.c.id == goal_id,
                self.goals.c.user_id == user_id,
                self.goals.c.status == GoalStatus.ACTIVE.value,
            )
            .values(status=GoalStatus.COMPLETED.value, completed_at=completed_at)
        )
        with self.engine.begin() as conn:
            result = conn.execute(stmt)
        return result.rowcount == 1

    # -- Stories (read-only here; see storyline.story.cache) ------------------

    def fetch_story(self, user_id: str, period: str) -> Story | None:
        stmt = sa.select(self.stories).where(
            self.stories.c.user_id == user_id,
            self.stories.c.period == period,
        )
        with self.engine.connect() as conn:
            row = conn.execute(stmt).fetchone()
        if row is None:
            return None
        return Story.model_validate(_row_dict(row))
