"""Sanitizers for user text headed into prompts or the public feed.

Strips role/instruction markers that could be read as prompt directives,
normalizes whitespace, and bounds length to cap token usage.
"""

from __future__ import annotations

import re

_ROLE_MARKER_RE = re.compile(r"\[(?:SYSTEM|ASSISTANT|USER|INSTRUCTION|PROMPT)\]", re.IGNORECASE)
_CODE_BLOCK_RE = re.compile(r"```.*?```", re.DOTALL)
_ROLE_PLAY_RE = re.compile(
    r"(?:act as|pretend to be|you are now|ignore previous|disregard|forget)",
    re.IGNORECASE,
)
_ANY_BRACKET_TAG_RE = re.compile(r"\[.*?\]")
_MARKDOWN_CHARS_RE = re.compile(r"[#*_`~]")
_WHITESPACE_RE = re.compile(r"\s+")
_EXCESS_NEWLINES_RE = re.compile(r"\n{4,}")
_HORIZONTAL_WS_RE = re.compile(r"[ \t\f\v]{2,}")

CODE_BLOCK_PLACEHOLDER = "[code block removed]"


def sanitize_for_prompt(text: str | None, max_length: int = 5000) -> str:
    """Aggressive cleanup for short fields injected into prompts.

    Removes role markers, code blocks and role-play phrases, then
    collapses all whitespace to single spaces.
    """
    if not text:
        return ""
    text = _ROLE_MARKER_RE.sub("", text)
    text = _CODE_BLOCK_RE.sub(CODE_BLOCK_PLACEHOLDER, text)
    text = _ROLE_PLAY_RE.sub("", text)
    text = _WHITESPACE_RE.sub(" ", text).strip()
    return text[:max_length]


def sanitize_content(text: str | None, max_length: int = 10000) -> str:
    """Lighter cleanup for post/story bodies; keeps paragraph breaks."""
    if not text:
        return ""
    text = _ROLE_MARKER_RE.sub("", text)
    text = _EXCESS_NEWLINES_RE.sub("\n\n\n", text)
    text = _HORIZONTAL_WS_RE.sub(" ", text).strip()
    return text[:max_length]


def sanitize_goal_title(title: str | None, max_length: int = 200) -> str:
    """Strict cleanup for goal titles: no bracket tags, no markdown."""
    if not title:
        return ""
    title = _ANY_BRACKET_TAG_RE.sub("", title)
    title = _MARKDOWN_CHARS_RE.sub("", title)
    title = _WHITESPACE_RE.sub(" ", title).strip()
    return title[:max_length]
