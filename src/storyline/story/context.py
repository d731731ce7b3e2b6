"""Context aggregation for story synthesis (deterministic, no LLM).

Collects a user's profile, in-window published posts and active goals,
sanitizes every free-text field, and renders three text blocks for the
prompt composer.
"""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field

from storyline.shared.sanitize import sanitize_content, sanitize_for_prompt, sanitize_goal_title
from storyline.store import Database, GoalStatus, User
from storyline.story.periods import StoryPeriod, window_start

TITLE_MAX_LENGTH = 200
PROFILE_FIELD_MAX_LENGTH = 200
POST_CONTENT_MAX_LENGTH = 2000

NOT_SPECIFIED = "Not specified"
NO_GOALS_TEXT = "No active goals set."
NO_POSTS_TEXT = "No posts in this period."


class PostForLLM(BaseModel):
    """Compact, sanitized view of a single post."""

    created: date
    title: str
    content: str


class GoalForLLM(BaseModel):
    """Compact, sanitized view of a single active goal."""

    title: str
    period: str
    start_date: date
    deadline: date


class StoryContext(BaseModel):
    """Everything the prompt needs about one user and one window."""

    user_id: str
    period: StoryPeriod
    window_start: datetime
    profile: dict[str, str] = Field(default_factory=dict)
    posts: list[PostForLLM] = Field(default_factory=list)
    goals: list[GoalForLLM] = Field(default_factory=list)

    @property
    def has_posts(self) -> bool:
        return bool(self.posts)

    @property
    def has_goals(self) -> bool:
        return bool(self.goals)

    def render_profile(self) -> str:
        lines = ["Profile:"]
        for label, value in self.profile.items():
            lines.append(f"- {label}: {value}")
        return "\n".join(lines)

    def render_posts(self) -> str:
        if not self.posts:
            return NO_POSTS_TEXT
        blocks: list[str] = []
        for i, post in enumerate(self.posts, start=1):
            blocks.append(
                f"Post {i} ({post.created.isoformat()}):\n"
                f"Title: {post.title}\n"
                f"Content: {post.content}"
            )
        return "\n\n".join(blocks)

    def render_goals(self) -> str:
        if not self.goals:
            return NO_GOALS_TEXT
        lines: list[str] = []
        for goal in self.goals:
            lines.append(f'- {goal.period} Goal: "{goal.title}"')
            lines.append(f"  Started: {goal.start_date.isoformat()}")
            lines.append(f"  Deadline: {goal.deadline.isoformat()}")
        return "\n".join(lines)


def _field(value: object) -> str:
    if value is None or value == "":
        return NOT_SPECIFIED
    return sanitize_for_prompt(str(value), PROFILE_FIELD_MAX_LENGTH) or NOT_SPECIFIED


def _list_field(values: list[str]) -> str:
    cleaned = [sanitize_for_prompt(v, PROFILE_FIELD_MAX_LENGTH) for v in values]
    cleaned = [v for v in cleaned if v]
    return ", ".join(cleaned) if cleaned else NOT_SPECIFIED


def _profile(user: User) -> dict[str, str]:
    return {
        "Name": _field(user.name),
        "Role": _field(user.current_role),
        "Industry": _field(user.industry),
        "Experience Level": _field(user.experience_level),
        "Years of Experience": _field(user.years_of_experience),
        "Current Skills": _list_field(user.current_skills),
        "Target Skills": _list_field(user.target_skills),
        "Current Goals": _list_field(user.current_goals),
    }


def prepare_story_context(
    db: Database,
    user: User,
    period: StoryPeriod,
    now: datetime,
) -> StoryContext:
    """Aggregate a user's activity in the window ending at ``now``.

    Args:
        db: Database to read posts and goals from.
        user: The user whose story is being generated.
        period: Resolved story period.
        now: Reference time for the window.

    Returns:
        StoryContext with sanitized profile, posts (oldest first) and
        active goals (newest start first). Pure read.
    """
    start = window_start(period, now, user.created_at)

    posts = [
        PostForLLM(
            created=p.created_at.date(),
            title=sanitize_for_prompt(p.title, TITLE_MAX_LENGTH),
            content=sanitize_content(p.content, POST_CONTENT_MAX_LENGTH),
        )
        for p in db.list_published_posts(user.id, start)
    ]

    goals = [
        GoalForLLM(
            title=sanitize_goal_title(g.title, TITLE_MAX_LENGTH),
            period=g.period.value,
            start_date=g.start_date.date(),
            deadline=g.deadline.date(),
        )
        for g in db.list_goals(user.id, status=GoalStatus.ACTIVE, order_by_start=True)
    ]

    return StoryContext(
        user_id=user.id,
        period=period,
        window_start=start,
        profile=_profile(user),
        posts=posts,
        goals=goals,
    )
