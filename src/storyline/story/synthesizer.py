"""Claude integration for story synthesis.

Single non-streaming call per request; failures surface as
``GenerationError`` with no retry.
"""

from __future__ import annotations

import logging

from storyline.config import GenerationSectionConfig
from storyline.shared.errors import GenerationError
from storyline.shared.llm import LLMError, call_model
from storyline.story.prompts import ComposedPrompt

logger = logging.getLogger(__name__)


class StorySynthesizer:
    """Synthesizes growth stories via Claude."""

    def __init__(self, config: GenerationSectionConfig) -> None:
        self._config = config

    def synthesize(self, prompt: ComposedPrompt, *, label: str = "story") -> str:
        """Send a composed prompt to the model.

        Args:
            prompt: System and user text from the prompt composer.
            label: Label for logging (usually ``story {user}/{period}``).

        Returns:
            Raw story text from Claude.

        Raises:
            GenerationError: If the call fails or the response is empty.
        """
        try:
            return call_model(
                prompt.system,
                prompt.user,
                model=self._config.model,
                max_tokens=self._config.max_tokens,
                temperature=self._config.temperature,
                timeout=self._config.timeout,
                use_cli=self._config.use_cli,
                label=label,
            )
        except LLMError as exc:
            logger.warning("Story generation failed (%s): %s", label, exc)
            raise GenerationError("Failed to generate story") from exc
