"""Tests for the story engine orchestration."""

from datetime import datetime, timedelta

import pytest

from storyline.shared.errors import (
    AlreadySharedError,
    GenerationError,
    InvalidPeriodError,
    InvalidProofError,
    InvalidToneError,
    NoPostsError,
    RateLimitExceededError,
    StoryNotFoundError,
    UserNotFoundError,
)
from storyline.store import Database, GoalPeriod, GoalStatus, User
from storyline.story.services import StoryService


@pytest.fixture
def posted_user(db: Database, user: User, now: datetime) -> User:
    db.add_post(user.id, "Shipped search", "Rolled out the new index.",
                created_at=now - timedelta(days=1))
    return user


class TestGenerateStory:
    """Tests for StoryService.generate_story()."""

    def test_round_trip(self, service: StoryService, posted_user: User, proof: str, synthesizer):
        result = service.generate_story(posted_user.id, "weekly", "medium", proof)

        assert result.content == synthesizer.content
        cached = service.resolve_and_get_cached_story(posted_user.id, "weekly")
        assert cached.story.content == result.content
        assert cached.story.updated_at == result.updated_at
        assert cached.is_stale is False

    def test_prompt_uses_tone_and_context(
        self, service: StoryService, posted_user: User, proof: str, synthesizer
    ):
        service.generate_story(posted_user.id, "Weekly", "harsh", proof)

        prompt = synthesizer.prompts[0]
        assert "demanding performance coach" in prompt.system
        assert "Title: Shipped search" in prompt.user

    def test_invalid_proof_has_no_side_effects(
        self, db: Database, service: StoryService, posted_user: User, synthesizer
    ):
        with pytest.raises(InvalidProofError):
            service.generate_story(posted_user.id, "weekly", "medium", "forged")

        assert synthesizer.prompts == []
        assert db.get_user(posted_user.id).daily_generation_count == 0

    def test_missing_proof(self, service: StoryService, posted_user: User):
        with pytest.raises(InvalidProofError):
            service.generate_story(posted_user.id, "weekly", "medium", None)

    def test_invalid_period(self, db: Database, service: StoryService, posted_user: User, proof):
        with pytest.raises(InvalidPeriodError):
            service.generate_story(posted_user.id, "fortnightly", "medium", proof)
        assert db.get_user(posted_user.id).daily_generation_count == 0

    def test_invalid_tone(self, db: Database, service: StoryService, posted_user: User, proof):
        with pytest.raises(InvalidToneError):
            service.generate_story(posted_user.id, "weekly", "savage", proof)
        assert db.get_user(posted_user.id).daily_generation_count == 0

    def test_unknown_user(self, service: StoryService, proof: str):
        with pytest.raises(UserNotFoundError):
            service.generate_story("ghost", "weekly", "medium", proof)

    def test_no_posts_writes_nothing(
        self, db: Database, service: StoryService, user: User, proof: str, synthesizer
    ):
        with pytest.raises(NoPostsError) as exc_info:
            service.generate_story(user.id, "daily", "low", proof)

        assert exc_info.value.code == "NO_POSTS"
        assert db.fetch_story(user.id, "daily") is None
        assert synthesizer.prompts == []
        assert db.get_user(user.id).daily_generation_count == 0

    def test_no_posts_keeps_previous_story(
        self, db: Database, service: StoryService, posted_user: User, proof: str, clock
    ):
        service.generate_story(posted_user.id, "daily", "low", proof)
        clock.advance(days=3)

        with pytest.raises(NoPostsError):
            service.generate_story(posted_user.id, "daily", "low", proof)

        assert db.fetch_story(posted_user.id, "daily") is not None

    def test_shared_story_is_not_fed_back(
        self, db: Database, service: StoryService, posted_user: User, proof: str, synthesizer,
        clock,
    ):
        """A window holding only the mirrored feed post counts as empty."""
        service.generate_story(posted_user.id, "daily", "medium", proof)
        clock.advance(hours=20)
        service.share_story_to_feed(posted_user.id, "daily", proof)
        clock.advance(hours=5)

        with pytest.raises(NoPostsError):
            service.generate_story(posted_user.id, "daily", "medium", proof)

        assert len(synthesizer.prompts) == 1
        assert db.get_user(posted_user.id).daily_generation_count == 1

    def test_shared_story_absent_from_prompt(
        self, service: StoryService, posted_user: User, proof: str, synthesizer, clock
    ):
        service.generate_story(posted_user.id, "weekly", "medium", proof)
        service.share_story_to_feed(posted_user.id, "weekly", proof)
        clock.advance(minutes=1)

        service.generate_story(posted_user.id, "weekly", "medium", proof)

        assert "Growth Story" not in synthesizer.prompts[1].user
        assert "Post 2" not in synthesizer.prompts[1].user

    def test_eleventh_call_is_rate_limited(
        self, db: Database, service: StoryService, posted_user: User, proof: str, synthesizer
    ):
        for _ in range(10):
            service.generate_story(posted_user.id, "weekly", "medium", proof)

        with pytest.raises(RateLimitExceededError):
            service.generate_story(posted_user.id, "weekly", "medium", proof)

        assert len(synthesizer.prompts) == 10
        assert db.get_user(posted_user.id).daily_generation_count == 10

    def test_quota_resets_next_day(
        self, service: StoryService, posted_user: User, proof: str, db: Database, clock
    ):
        db.set_quota_state(posted_user.id, 10, clock())
        clock.advance(hours=13)

        service.generate_story(posted_user.id, "monthly", "medium", proof)

        assert db.get_user(posted_user.id).daily_generation_count == 1

    def test_failed_generation_consumes_quota_and_keeps_cache(
        self, db: Database, service: StoryService, posted_user: User, proof: str, synthesizer
    ):
        service.generate_story(posted_user.id, "weekly", "medium", proof)
        before = db.fetch_story(posted_user.id, "weekly")
        synthesizer.fail = True

        with pytest.raises(GenerationError):
            service.generate_story(posted_user.id, "weekly", "medium", proof)

        assert db.fetch_story(posted_user.id, "weekly") == before
        assert db.get_user(posted_user.id).daily_generation_count == 2

    def test_regeneration_overwrites(
        self, service: StoryService, posted_user: User, proof: str, synthesizer, clock
    ):
        first = service.generate_story(posted_user.id, "weekly", "medium", proof)
        clock.advance(minutes=5)
        synthesizer.content = "second draft"

        second = service.generate_story(posted_user.id, "weekly", "medium", proof)

        assert second.content == "second draft"
        assert second.updated_at > first.updated_at

    def test_goals_switch_prompt_layout(
        self, db: Database, service: StoryService, posted_user: User, proof: str, synthesizer, now
    ):
        db.insert_goal(posted_user.id, "Ship v2", GoalPeriod.MONTHLY,
                       start_date=now - timedelta(days=2), deadline=now + timedelta(days=10))

        service.generate_story(posted_user.id, "weekly", "medium", proof)

        assert "## 🎯 Goals vs Reality" in synthesizer.prompts[0].system
        assert 'monthly Goal: "Ship v2"' in synthesizer.prompts[0].user


class TestReads:
    """Tests for cache-first and public reads."""

    def test_cached_story_miss(self, service: StoryService, user: User):
        assert service.resolve_and_get_cached_story(user.id, "weekly") is None

    def test_cached_story_goes_stale(
        self, service: StoryService, posted_user: User, proof: str, clock
    ):
        service.generate_story(posted_user.id, "daily", "low", proof)
        clock.advance(hours=25)

        cached = service.resolve_and_get_cached_story(posted_user.id, "daily")

        assert cached.is_stale is True

    def test_cached_story_rejects_bad_period(self, service: StoryService, user: User):
        with pytest.raises(InvalidPeriodError):
            service.resolve_and_get_cached_story(user.id, "soon")

    def test_public_story(self, service: StoryService, posted_user: User, proof: str):
        service.generate_story(posted_user.id, "all", "low", proof)

        story = service.get_public_story(posted_user.id, "ALL")

        assert story is not None
        assert story.period == "all"

    def test_public_story_missing(self, service: StoryService, user: User):
        assert service.get_public_story(user.id, "yearly") is None

    def test_remaining_generations(self, service: StoryService, posted_user: User, proof: str):
        assert service.remaining_generations(posted_user.id) == 10

        service.generate_story(posted_user.id, "weekly", "medium", proof)

        assert service.remaining_generations(posted_user.id) == 9

    def test_remaining_generations_unknown_user(self, service: StoryService):
        with pytest.raises(UserNotFoundError):
            service.remaining_generations("ghost")

    def test_list_shared_stories(self, service: StoryService, posted_user: User, proof: str):
        assert service.list_shared_stories(posted_user.id) == []

        service.generate_story(posted_user.id, "weekly", "medium", proof)
        post_id = service.share_story_to_feed(posted_user.id, "weekly", proof)

        assert [p.id for p in service.list_shared_stories(posted_user.id)] == [post_id]

    def test_goal_visibility(self, db: Database, service: StoryService, user: User, now):
        db.insert_goal(user.id, "Active one", GoalPeriod.WEEKLY,
                       start_date=now, deadline=now + timedelta(days=3))
        db.insert_goal(user.id, "Done one", GoalPeriod.DAILY, start_date=now, deadline=now,
                       status=GoalStatus.COMPLETED)

        assert len(service.list_user_goals(user.id, user.id)) == 2
        assert [g.title for g in service.list_user_goals("someone-else", user.id)] == ["Done one"]
        assert [g.title for g in service.list_user_goals(None, user.id)] == ["Done one"]


class TestShareStoryToFeed:
    """Tests for StoryService.share_story_to_feed()."""

    def test_share(self, db: Database, service: StoryService, posted_user: User, proof: str):
        service.generate_story(posted_user.id, "weekly", "medium", proof)

        post_id = service.share_story_to_feed(posted_user.id, "weekly", proof)

        [post] = db.list_story_posts(posted_user.id)
        assert post.id == post_id
        assert post.title == "Weekly Growth Story"

    def test_share_is_idempotent_per_generation(
        self, db: Database, service: StoryService, posted_user: User, proof: str
    ):
        service.generate_story(posted_user.id, "weekly", "medium", proof)
        service.share_story_to_feed(posted_user.id, "weekly", proof)

        with pytest.raises(AlreadySharedError) as exc_info:
            service.share_story_to_feed(posted_user.id, "weekly", proof)

        assert exc_info.value.code == "ALREADY_SHARED"
        assert len(db.list_story_posts(posted_user.id)) == 1

    def test_regeneration_unlocks_sharing(
        self, db: Database, service: StoryService, posted_user: User, proof: str, clock
    ):
        service.generate_story(posted_user.id, "weekly", "medium", proof)
        service.share_story_to_feed(posted_user.id, "weekly", proof)
        clock.advance(seconds=30)
        service.generate_story(posted_user.id, "weekly", "medium", proof)

        service.share_story_to_feed(posted_user.id, "weekly", proof)

        assert len(db.list_story_posts(posted_user.id)) == 2

    def test_share_without_story(self, service: StoryService, user: User, proof: str):
        with pytest.raises(StoryNotFoundError):
            service.share_story_to_feed(user.id, "weekly", proof)

    def test_share_requires_proof(self, service: StoryService, posted_user: User, proof: str):
        service.generate_story(posted_user.id, "weekly", "medium", proof)

        with pytest.raises(InvalidProofError):
            service.share_story_to_feed(posted_user.id, "weekly", "")
