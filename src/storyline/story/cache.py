"""Story cache keyed by (user, period).

``put`` is the only write path for ``stories`` rows. Staleness is advisory
metadata for the caller and never triggers regeneration.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError

from storyline.store import Database, Story, new_id
from storyline.story.periods import PERIOD_DAYS, StoryPeriod

logger = logging.getLogger(__name__)


class StoryCache:
    """Upsert/read access to generated stories."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def get(self, user_id: str, period: StoryPeriod) -> Story | None:
        """Return the cached story, or None if never generated."""
        return self._db.fetch_story(user_id, period.value)

    def put(self, user_id: str, period: StoryPeriod, content: str, now: datetime) -> Story:
        """Create or overwrite the story for (user, period).

        Concurrent first writes race on the unique constraint; the loser
        retries as an update, so the last writer wins.
        """
        try:
            self._upsert(user_id, period, content, now)
        except IntegrityError:
            logger.debug("Concurrent story insert for %s/%s, updating", user_id, period)
            self._update(user_id, period, content, now)

        story = self.get(user_id, period)
        if story is None:
            raise RuntimeError(f"Story for {user_id}/{period} vanished after upsert")
        return story

    def _upsert(self, user_id: str, period: StoryPeriod, content: str, now: datetime) -> None:
        stories = self._db.stories
        with self._db.engine.begin() as conn:
            existing = conn.execute(
                sa.select(stories.c.id).where(
                    stories.c.user_id == user_id,
                    stories.c.period == period.value,
                )
            ).fetchone()
            if existing is None:
                conn.execute(
                    sa.insert(stories).values(
                        id=new_id(),
                        user_id=user_id,
                        period=period.value,
                        content=content,
                        created_at=now,
                        updated_at=now,
                    )
                )
            else:
                conn.execute(
                    sa.update(stories)
                    .where(stories.c.id == existing.id)
                    .values(content=content, updated_at=now)
                )

    def _update(self, user_id: str, period: StoryPeriod, content: str, now: datetime) -> None:
        stories = self._db.stories
        with self._db.engine.begin() as conn:
            conn.execute(
                sa.update(stories)
                .where(
                    stories.c.user_id == user_id,
                    stories.c.period == period.value,
                )
                .values(content=content, updated_at=now)
            )

    @staticmethod
    def is_stale(story: Story, period: StoryPeriod, now: datetime) -> bool:
        """Whether the story is older than its period's window.

        ``all`` stories never go stale.
        """
        if period is StoryPeriod.ALL:
            return False
        return now - story.updated_at > timedelta(days=PERIOD_DAYS[period])
