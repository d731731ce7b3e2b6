"""Story generation and caching engine.

Turns a user's posts and goals over a period into an LLM-written growth
story. Two-phase pipeline: deterministic context aggregation (testable
without an LLM) followed by a single tone-specific Claude call. Results are
cached per (user, period) and can be mirrored into the feed once per
generation.
"""

from storyline.story.cache import StoryCache
from storyline.story.context import StoryContext, prepare_story_context
from storyline.story.periods import PERIOD_DAYS, StoryPeriod, resolve_period, window_start
from storyline.story.prompts import ComposedPrompt, Tone, compose_prompt, resolve_tone
from storyline.story.publisher import FeedPublisher, generation_key
from storyline.story.quota import DAILY_GENERATION_LIMIT, QuotaGuard
from storyline.story.services import CachedStory, GeneratedStory, StoryService
from storyline.story.synthesizer import StorySynthesizer

__all__ = [
    "DAILY_GENERATION_LIMIT",
    "PERIOD_DAYS",
    "CachedStory",
    "ComposedPrompt",
    "FeedPublisher",
    "GeneratedStory",
    "QuotaGuard",
    "StoryCache",
    "StoryContext",
    "StoryPeriod",
    "StoryService",
    "StorySynthesizer",
    "Tone",
    "compose_prompt",
    "generation_key",
    "prepare_story_context",
    "resolve_period",
    "resolve_tone",
    "window_start",
]
