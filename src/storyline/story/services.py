"""Story engine orchestration.

Wires the period resolver, context aggregator, quota guard, prompt
composer, synthesizer, cache and feed publisher into the operations callers
use. Stateless: every call reads and writes through the database.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from pydantic import BaseModel

from storyline.config import StorylineConfig
from storyline.goals import list_user_goals as _list_user_goals
from storyline.shared.errors import (
    InvalidProofError,
    NoPostsError,
    StoryError,
    UserNotFoundError,
)
from storyline.store import Database, Goal, Post, Story, User
from storyline.story.cache import StoryCache
from storyline.story.context import prepare_story_context
from storyline.story.periods import StoryPeriod, resolve_period
from storyline.story.prompts import compose_prompt, resolve_tone
from storyline.story.publisher import FeedPublisher
from storyline.story.quota import QuotaGuard
from storyline.story.synthesizer import StorySynthesizer

logger = logging.getLogger(__name__)

ProofVerifier = Callable[[str | None], bool]


class CachedStory(BaseModel):
    """A cache hit plus advisory staleness."""

    story: Story
    period: StoryPeriod
    is_stale: bool


class GeneratedStory(BaseModel):
    content: str
    updated_at: datetime


class StoryService:
    """Public operations of the story engine."""

    def __init__(
        self,
        db: Database,
        config: StorylineConfig,
        verify_proof: ProofVerifier,
        *,
        synthesizer: StorySynthesizer | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._db = db
        self._config = config
        self._verify_proof = verify_proof
        self._clock = clock
        self.cache = StoryCache(db)
        self.quota = QuotaGuard(db, config.quota.daily_limit)
        self.publisher = FeedPublisher(db)
        self.synthesizer = synthesizer or StorySynthesizer(config.generation)

    # -- Helpers -------------------------------------------------------------

    def _require_proof(self, proof: str | None) -> None:
        if not self._verify_proof(proof):
            raise InvalidProofError("Invalid or expired request token")

    def _require_user(self, user_id: str) -> User:
        user = self._db.get_user(user_id)
        if user is None:
            raise UserNotFoundError(f"User not found: {user_id}")
        return user

    # -- Reads ---------------------------------------------------------------

    def resolve_and_get_cached_story(self, user_id: str, raw_period: str) -> CachedStory | None:
        """Cache-first read of the caller's own story."""
        period = resolve_period(raw_period)
        story = self.cache.get(user_id, period)
        if story is None:
            return None
        return CachedStory(
            story=story,
            period=period,
            is_stale=self.cache.is_stale(story, period, self._clock()),
        )

    def get_public_story(self, target_user_id: str, raw_period: str) -> Story | None:
        """Any user's story for a period. Stories are public once generated."""
        return self.cache.get(target_user_id, resolve_period(raw_period))

    def list_user_goals(self, requester_id: str | None, target_user_id: str) -> list[Goal]:
        return _list_user_goals(self._db, requester_id, target_user_id)

    def list_shared_stories(self, user_id: str) -> list[Post]:
        """Feed posts mirrored from this user's stories, newest first."""
        return self._db.list_story_posts(user_id)

    def remaining_generations(self, user_id: str) -> int:
        """Generations left today for display. Consumes nothing."""
        return self.quota.remaining(self._require_user(user_id), self._clock())

    # -- Mutations -----------------------------------------------------------

    def generate_story(
        self,
        user_id: str,
        raw_period: str,
        tone: str,
        proof: str | None,
    ) -> GeneratedStory:
        """Generate (or regenerate) the story for a period.

        Order: proof, period, tone, user, context, empty-window check,
        quota, model call, cache upsert. Every failure before the quota
        step is side-effect free; an empty window never burns quota.

        Raises:
            InvalidProofError, InvalidPeriodError, InvalidToneError,
            UserNotFoundError, NoPostsError, RateLimitExceededError,
            GenerationError.
        """
        self._require_proof(proof)
        period = resolve_period(raw_period)
        selected_tone = resolve_tone(tone)
        user = self._require_user(user_id)

        now = self._clock()
        context = prepare_story_context(self._db, user, period, now)
        if not context.has_posts:
            logger.info("No posts in window for user=%s period=%s", user_id, period)
            raise NoPostsError("No posts found in this period")

        self.quota.check(user_id, now)

        prompt = compose_prompt(
            selected_tone,
            context,
            language=self._config.generation.language,
        )
        try:
            content = self.synthesizer.synthesize(prompt, label=f"story {user_id}/{period}")
        except StoryError:
            logger.warning("Generation failed for user=%s period=%s", user_id, period)
            raise

        story = self.cache.put(user_id, period, content, self._clock())
        logger.info(
            "Generated %s story for user=%s tone=%s (%d posts, %d goals)",
            period,
            user_id,
            selected_tone,
            len(context.posts),
            len(context.goals),
        )
        return GeneratedStory(content=story.content, updated_at=story.updated_at)

    def share_story_to_feed(self, user_id: str, raw_period: str, proof: str | None) -> str:
        """Mirror the current story generation into the feed. Returns the post id.

        Raises:
            InvalidProofError, InvalidPeriodError, StoryNotFoundError,
            AlreadySharedError.
        """
        self._require_proof(proof)
        period = resolve_period(raw_period)
        post = self.publisher.share(user_id, period, self._clock())
        logger.info("Shared %s story for user=%s as post=%s", period, user_id, post.id)
        return post.id
