"""Shared fixtures: a file-backed SQLite database, a seeded user, a fake clock."""

from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path

import pytest

from storyline.config import SecuritySectionConfig, StorylineConfig
from storyline.shared.errors import GenerationError
from storyline.store import Database, User
from storyline.story.prompts import ComposedPrompt
from storyline.story.services import StoryService

# A Wednesday, midday.
NOW = datetime(2026, 2, 11, 12, 0, 0)
VALID_PROOF = "valid-proof"


class FakeClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class FakeSynthesizer:
    """Stands in for StorySynthesizer; records prompts instead of calling Claude."""

    def __init__(self, content: str = "## 📊 Analysis Basis\n- 1 post analyzed") -> None:
        self.content = content
        self.prompts: list[ComposedPrompt] = []
        self.fail = False

    def synthesize(self, prompt: ComposedPrompt, *, label: str = "story") -> str:
        self.prompts.append(prompt)
        if self.fail:
            raise GenerationError("Failed to generate story")
        return self.content


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def proof() -> str:
    return VALID_PROOF


@pytest.fixture
def db(tmp_path: Path):
    database = Database(f"sqlite:///{tmp_path / 'storyline.db'}")
    yield database
    database.dispose()


@pytest.fixture
def user(db: Database) -> User:
    return db.create_user(
        "Ada",
        created_at=NOW - timedelta(days=90),
        current_role="Backend Engineer",
        industry="Fintech",
        experience_level="Mid",
        years_of_experience=4,
        current_skills=["Python", "SQL"],
        target_skills=["Distributed systems"],
    )


@pytest.fixture
def config() -> StorylineConfig:
    return StorylineConfig(security=SecuritySectionConfig(csrf_secret="test-secret"))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(NOW)


@pytest.fixture
def synthesizer() -> FakeSynthesizer:
    return FakeSynthesizer()


@pytest.fixture
def service(
    db: Database,
    config: StorylineConfig,
    synthesizer: FakeSynthesizer,
    clock: FakeClock,
) -> StoryService:
    return StoryService(
        db,
        config,
        lambda proof: proof == VALID_PROOF,
        synthesizer=synthesizer,
        clock=clock,
    )
