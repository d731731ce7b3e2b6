"""Tone-specific prompts for story synthesis.

Each tone is a row of data (voice, word ceiling, section headings) rendered
through one shared template, with a goals-present and a goals-absent
section layout.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from storyline.shared.errors import InvalidToneError
from storyline.story.context import StoryContext
from storyline.story.periods import period_label


class Tone(StrEnum):
    """Coaching style, from gentle to confrontational."""

    LOW = "low"
    MEDIUM = "medium"
    HARSH = "harsh"
    BRUTAL = "brutal"


def resolve_tone(raw: str | None) -> Tone:
    """Parse a tone selector. Unknown values raise ``InvalidToneError``."""
    if raw is None:
        raise InvalidToneError("Tone is required")
    try:
        return Tone(raw.strip().lower())
    except ValueError:
        raise InvalidToneError(f"Unknown tone: {raw!r}") from None


@dataclass(frozen=True)
class ToneProfile:
    persona: str
    voice: str
    word_limit: int
    goal_sections: tuple[str, ...]
    activity_sections: tuple[str, ...]
    closing: str


_BASIS = "## 📊 Analysis Basis"

TONE_PROFILES: dict[Tone, ToneProfile] = {
    Tone.LOW: ToneProfile(
        persona="You are a warm, encouraging career coach.",
        voice=(
            "Supportive and patient. Lead with what went well, frame gaps as "
            "opportunities, and keep criticism gentle."
        ),
        word_limit=400,
        goal_sections=(
            _BASIS,
            "## 🎯 Goals and Progress",
            "## 🏆 Wins Worth Celebrating",
            "## 🌱 Room to Grow",
            "## 💡 Gentle Next Steps",
        ),
        activity_sections=(
            _BASIS,
            "## 🏆 Activity Highlights",
            "## 🌱 Room to Grow",
            "## 💡 Gentle Next Steps",
        ),
        closing="Warm and encouraging. Praise first, then one or two kind suggestions.",
    ),
    Tone.MEDIUM: ToneProfile(
        persona="You are a data-driven career coach.",
        voice=(
            "Friendly but honest. Balance recognition with improvement points, "
            "and prefer clear statements over hedging."
        ),
        word_limit=350,
        goal_sections=(
            _BASIS,
            "## 🎯 Goals vs Reality",
            "## 🏆 Key Achievements",
            "## ⚠️ Gaps",
            "## 💡 Next Actions",
        ),
        activity_sections=(
            _BASIS,
            "## 🏆 Key Activities",
            "## ⚠️ Gaps",
            "## 💡 Next Steps",
        ),
        closing="Kind but candid. Improvement points over praise. Short and clear.",
    ),
    Tone.HARSH: ToneProfile(
        persona="You are a demanding performance coach who does not sugar-coat.",
        voice=(
            "Direct and critical. Call out the distance between stated goals "
            "and actual output plainly. Praise only what the evidence forces."
        ),
        word_limit=300,
        goal_sections=(
            _BASIS,
            "## 🎯 Goals vs Reality",
            "## 🏆 What Actually Got Done",
            "## ⚠️ Where You Fell Short",
            "## 💡 Required Actions",
        ),
        activity_sections=(
            _BASIS,
            "## 🏆 What Actually Got Done",
            "## ⚠️ Where You Fell Short",
            "## 💡 Required Actions",
        ),
        closing="Blunt. No filler, no compliments without evidence.",
    ),
    Tone.BRUTAL: ToneProfile(
        persona="You are a ruthless executive reviewer holding the user to the highest bar.",
        voice=(
            "Confrontational and unsparing. Treat every unmet goal as a failure "
            "to explain. Never soften a conclusion. Stay professional and never "
            "insult the person, only the output."
        ),
        word_limit=300,
        goal_sections=(
            _BASIS,
            "## 🎯 Promises vs Delivery",
            "## 🏆 The Little That Counted",
            "## ⚠️ Failures",
            "## 💡 Non-Negotiable Actions",
        ),
        activity_sections=(
            _BASIS,
            "## 🏆 The Little That Counted",
            "## ⚠️ Failures",
            "## 💡 Non-Negotiable Actions",
        ),
        closing="Relentless. Every judgment backed by a post, every gap named.",
    ),
}

_SYSTEM_TEMPLATE = """\
{persona} Analyze the user's professional activity and write a growth story.

**Voice:** {voice}

**Strict requirements:**
- Total length: at most {word_limit} words
- Bullet points only, each bullet one to two lines
- Back every claim with concrete evidence from the posts (dates, titles, counts)
- Explain the reasoning behind every judgment

**Required structure:**

{sections}

{section_rules}

**Tone:** {closing}"""

_GOAL_RULES = """\
**Rules for this structure:**
- Under the goals section, write one bullet per goal (at most 3 goals): \
the goal, how many posts relate to it, and your assessment
- Under the analysis basis, state how many posts and which dates you analyzed"""

_ACTIVITY_RULES = """\
**Rules for this structure:**
- The user has no active goals. Do not include any goal-related section
- Do not mention the absence of goals; focus naturally on the activity
- Include one next step recommending a concrete goal to set
- Under the analysis basis, state how many posts and which dates you analyzed"""

_USER_TEMPLATE = """\
Analyze this professional's {period_label} and write their growth story:

{profile}

Current active goals:
{goals}

Posts in this period:
{posts}

**Important: Respond only in {language}.**
**Important: Cite concrete evidence from the posts for every claim.**
**Important: Explain why you reached every judgment.**"""

_GOAL_COUNT_RULE = (
    "**Important: Count the posts related to each goal and judge whether "
    "the goal is on track.**"
)


@dataclass(frozen=True)
class ComposedPrompt:
    system: str
    user: str


def get_system_prompt(tone: Tone, *, has_goals: bool) -> str:
    """Render the system instruction document for a tone."""
    profile = TONE_PROFILES[tone]
    sections = profile.goal_sections if has_goals else profile.activity_sections
    return _SYSTEM_TEMPLATE.format(
        persona=profile.persona,
        voice=profile.voice,
        word_limit=profile.word_limit,
        sections="\n".join(sections),
        section_rules=_GOAL_RULES if has_goals else _ACTIVITY_RULES,
        closing=profile.closing,
    )


def get_user_prompt(context: StoryContext, language: str) -> str:
    """Render the user-turn message embedding the aggregated context."""
    text = _USER_TEMPLATE.format(
        period_label=period_label(context.period),
        profile=context.render_profile(),
        goals=context.render_goals(),
        posts=context.render_posts(),
        language=language,
    )
    if context.has_goals:
        text += "\n" + _GOAL_COUNT_RULE
    return text


def compose_prompt(tone: Tone, context: StoryContext, language: str = "English") -> ComposedPrompt:
    """Build the full generation request. Pure: no I/O."""
    return ComposedPrompt(
        system=get_system_prompt(tone, has_goals=context.has_goals),
        user=get_user_prompt(context, language),
    )
