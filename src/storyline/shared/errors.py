"""Error types for the story engine.

Every domain failure carries a stable ``code`` so callers (CLI, HTTP layer)
can render distinct messages without string matching.
"""

from __future__ import annotations


class StoryError(Exception):
    """Base error for all story engine failures."""

    code = "STORY_ERROR"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.code)


class InvalidPeriodError(StoryError):
    """Raised when a period tag is not in the whitelist."""

    code = "INVALID_PERIOD"


class InvalidToneError(StoryError):
    """Raised when a tone selector is not one of the known tones."""

    code = "INVALID_TONE"


class InvalidProofError(StoryError):
    """Raised when the proof-of-intent check fails on a mutating call."""

    code = "INVALID_PROOF"


class UserNotFoundError(StoryError):
    code = "USER_NOT_FOUND"


class NoPostsError(StoryError):
    """Raised when there are no published posts in the requested window."""

    code = "NO_POSTS"


class RateLimitExceededError(StoryError):
    """Raised when the daily generation ceiling has been reached."""

    code = "RATE_LIMIT_EXCEEDED"


class GenerationError(StoryError):
    """Raised when the model call fails or returns nothing."""

    code = "GENERATION_FAILED"


class StoryNotFoundError(StoryError):
    code = "STORY_NOT_FOUND"


class AlreadySharedError(StoryError):
    """Raised when this generation of a story is already in the feed."""

    code = "ALREADY_SHARED"


class GoalConflictError(StoryError):
    """Raised when a user already has an active goal for a period."""

    code = "GOAL_CONFLICT"


class InvalidGoalError(StoryError):
    """Raised when a goal is missing a title or has an unknown period."""

    code = "INVALID_GOAL"
