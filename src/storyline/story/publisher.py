"""Mirror cached stories into the public feed.

Each story generation (identified by its ``updated_at``) may be shared once.
Regenerating a story changes the key and allows one more share.
"""

from __future__ import annotations

import logging
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError

from storyline.shared.errors import AlreadySharedError, StoryNotFoundError
from storyline.shared.sanitize import sanitize_content
from storyline.store import Database, Post, PostStatus, Story, new_id
from storyline.story.periods import StoryPeriod, period_title

logger = logging.getLogger(__name__)

FEED_CONTENT_MAX_LENGTH = 10000


def generation_key(story: Story) -> str:
    """Dedup key for one generation of a story."""
    return story.updated_at.isoformat()


def feed_title(period: StoryPeriod) -> str:
    return f"{period_title(period)} Growth Story"


class FeedPublisher:
    """Creates the feed post for a story generation, at most once."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def find_shared_post(self, author_id: str, key: str) -> Post | None:
        posts = self._db.posts
        with self._db.engine.connect() as conn:
            row = conn.execute(
                sa.select(posts).where(
                    posts.c.author_id == author_id,
                    posts.c.story_generation_id == key,
                )
            ).fetchone()
        if row is None:
            return None
        return Post.model_validate(dict(row._mapping))

    def share(self, user_id: str, period: StoryPeriod, now: datetime) -> Post:
        """Publish the current story for (user, period) as a feed post.

        Raises:
            StoryNotFoundError: No story has been generated for this period.
            AlreadySharedError: This generation is already in the feed.
        """
        story = self._db.fetch_story(user_id, period.value)
        if story is None:
            raise StoryNotFoundError(f"No {period} story to share")

        key = generation_key(story)
        if self.find_shared_post(user_id, key) is not None:
            raise AlreadySharedError("This story has already been shared")

        values = {
            "id": new_id(),
            "author_id": user_id,
            "title": feed_title(period),
            "content": sanitize_content(story.content, FEED_CONTENT_MAX_LENGTH),
            "status": PostStatus.PUBLISHED.value,
            "created_at": now,
            "story_generation_id": key,
            "story_period": period.value,
        }
        try:
            with self._db.engine.begin() as conn:
                conn.execute(sa.insert(self._db.posts).values(**values))
        except IntegrityError as exc:
            # Lost a race with a concurrent share of the same generation.
            raise AlreadySharedError("This story has already been shared") from exc

        return Post.model_validate(values)
