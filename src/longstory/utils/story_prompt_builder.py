"""
Story prompt builder for multi-call story generation.

This module builds the exact instruction text sent for each chunk of a long
story: the opening prompt (full story setup) and the continuation prompts
(previous-context excerpt plus continuity rules). It follows the same pattern
as the rest of the package: parameter objects, enums for closed label sets,
and prompt text assembled from parts.

Key Components:
- Enums: Genre, Tone - closed label sets with prompt guidance
- Dataclass: StoryParams - parameter object for all story prompts
- Functions: build_opening_prompt, build_continuation_prompt
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from ..planner import ChunkPlan
from ..stages import StageDirective
from .llm_constants import STYLE_EXAMPLE_MAX_CHARS


class Genre(str, Enum):
    """Story genre (the request's niche label)."""
    HORROR = "horror"
    MYSTERY = "mystery"
    THRILLER = "thriller"
    ROMANCE = "romance"
    REVENGE = "revenge"
    FAMILY_DRAMA = "family_drama"
    TRUE_CRIME = "true_crime"
    FANTASY = "fantasy"
    SCIENCE_FICTION = "science_fiction"
    GENERAL = "general"

    @classmethod
    def from_label(cls, label: Optional[str]) -> "Genre":
        """Map a free-form niche label to a genre, defaulting to GENERAL."""
        normalized = (label or "").strip().lower()
        if not normalized:
            return cls.GENERAL
        for genre, keywords in _GENRE_KEYWORDS:
            if any(keyword in normalized for keyword in keywords):
                return genre
        return cls.GENERAL


class Tone(str, Enum):
    """Story tone options."""
    DARK = "dark"
    SUSPENSEFUL = "suspenseful"
    EMOTIONAL = "emotional"
    DRAMATIC = "dramatic"
    UPLIFTING = "uplifting"
    HUMOROUS = "humorous"
    BALANCED = "balanced"

    @classmethod
    def from_label(cls, label: Optional[str]) -> "Tone":
        """Map a free-form tone label to a tone, defaulting to BALANCED."""
        normalized = (label or "").strip().lower()
        for tone, keywords in _TONE_KEYWORDS:
            if any(keyword in normalized for keyword in keywords):
                return tone
        return cls.BALANCED


# Checked in order; the first matching keyword wins
_GENRE_KEYWORDS: Tuple[Tuple[Genre, Tuple[str, ...]], ...] = (
    (Genre.TRUE_CRIME, ("true crime", "crime", "murder", "detective")),
    (Genre.HORROR, ("horror", "scary", "creepy", "paranormal", "ghost")),
    (Genre.MYSTERY, ("mystery", "whodunit")),
    (Genre.THRILLER, ("thriller", "suspense")),
    (Genre.REVENGE, ("revenge", "karma", "payback")),
    (Genre.FAMILY_DRAMA, ("family", "drama", "inheritance", "marriage", "divorce")),
    (Genre.ROMANCE, ("romance", "love")),
    (Genre.FANTASY, ("fantasy", "magic")),
    (Genre.SCIENCE_FICTION, ("sci-fi", "science fiction", "scifi", "space")),
)

_TONE_KEYWORDS: Tuple[Tuple[Tone, Tuple[str, ...]], ...] = (
    (Tone.DARK, ("dark", "grim", "bleak", "sinister")),
    (Tone.SUSPENSEFUL, ("suspense", "tense", "thrilling")),
    (Tone.EMOTIONAL, ("emotional", "heartfelt", "sad", "touching")),
    (Tone.DRAMATIC, ("dramatic", "intense")),
    (Tone.UPLIFTING, ("uplifting", "hopeful", "inspiring", "wholesome")),
    (Tone.HUMOROUS, ("funny", "humor", "humour", "comedic", "light")),
)

GENRE_GUIDANCE: Dict[Genre, str] = {
    Genre.HORROR: "Build dread through atmosphere and sound; let the threat stay partly unseen",
    Genre.MYSTERY: "Plant fair clues early and let the reader reason alongside the protagonist",
    Genre.THRILLER: "Keep a ticking clock and escalate danger scene by scene",
    Genre.ROMANCE: "Let attraction and conflict grow through specific shared moments",
    Genre.REVENGE: "Make the wrong vivid and the payback earned, specific and proportionate",
    Genre.FAMILY_DRAMA: "Root conflict in history, loyalty and what family members leave unsaid",
    Genre.TRUE_CRIME: "Keep a grounded, documentary texture with precise times, places and procedure",
    Genre.FANTASY: "Reveal the world through the characters' habits, never through lectures",
    Genre.SCIENCE_FICTION: "Let one clear speculative idea drive the human stakes",
    Genre.GENERAL: "Focus on a clear central conflict and characters the reader cares about",
}

TONE_GUIDANCE: Dict[Tone, str] = {
    Tone.DARK: "Sustain a heavy, ominous mood; allow no easy comfort",
    Tone.SUSPENSEFUL: "Withhold answers and end scenes on open questions",
    Tone.EMOTIONAL: "Dwell on reactions and small gestures that carry feeling",
    Tone.DRAMATIC: "Push confrontations to their peak and let stakes be spoken aloud",
    Tone.UPLIFTING: "Let hope grow out of struggle without skipping the struggle",
    Tone.HUMOROUS: "Find humor in character and situation, not in jokes pasted on top",
    Tone.BALANCED: "Balance tension and relief to keep the reader engaged",
}

PROSE_QUALITY_CHECKLIST: Tuple[str, ...] = (
    "Ground every scene in sensory detail: sight, sound, smell, touch and taste",
    "Give each character a distinct voice; dialogue must sound like that person",
    "Show emotion through action and body language instead of naming it",
    "Vary sentence length and scene pacing; slow down for key moments",
    "Keep every character name exactly the same from first mention to last",
    "Match the style reference exactly",
)

CONTINUITY_RULES: Tuple[str, ...] = (
    "Continue exactly where the previous part ended",
    "Do not recap or summarize earlier events",
    "Do not re-introduce characters or the setting",
    "Keep the same names, personalities, style and tone",
    "Continuing mid-scene or mid-action is fine",
)

CLOSING_CHECKLIST: Tuple[str, ...] = (
    "Resolve every open plot thread",
    "Deliver the aftermath: show what happens after the climax",
    "Give the protagonist emotional closure and complete the character arc",
    "End on a memorable final image",
    "Do not compress the ending to fit the remaining length; give it full scenes",
)

FORMATTING_RULES: Tuple[str, ...] = (
    "NO titles, headers, part labels or chapter numbers",
    "NO markdown formatting",
    "Plain prose narrative only",
)


@dataclass
class StoryParams:
    """Parameters for building story generation prompts."""
    title: str
    niche: str
    tone: str
    plot: str
    style_example: str
    extra_instructions: Optional[str] = None
    character_details: Optional[str] = None

    @property
    def genre(self) -> Genre:
        return Genre.from_label(self.niche)

    @property
    def tone_enum(self) -> Tone:
        return Tone.from_label(self.tone)


def _format_length(length: int) -> str:
    return f"{length:,}"


def _append_list(prompt_parts: List[str], items: Sequence[str], marker: str = "-") -> None:
    for item in items:
        prompt_parts.append(f"{marker} {item}")


def _append_stage(prompt_parts: List[str], stage: StageDirective) -> None:
    prompt_parts.append(f"**NARRATIVE STAGE: {stage.label}**")
    _append_list(prompt_parts, stage.directions)
    prompt_parts.append("")


def _append_closing(prompt_parts: List[str]) -> None:
    prompt_parts.append("**FINAL PART - THE ENDING (MANDATORY):**")
    _append_list(prompt_parts, CLOSING_CHECKLIST)
    prompt_parts.append("")


def build_opening_prompt(
    params: StoryParams,
    plan: ChunkPlan,
    stage: StageDirective,
    index: int = 1,
) -> str:
    """
    Build the prompt for the first chunk of a story.

    Args:
        params: Story parameters
        plan: Chunk plan for the story
        stage: Stage directive for the first chunk
        index: Chunk index (always 1 for the opening)

    Returns:
        Prompt text
    """
    target = _format_length(plan.per_chunk_length)
    genre = params.genre
    tone = params.tone_enum

    prompt_parts = [
        f"You are a MASTER storyteller creating {params.tone} content in the {params.niche} niche.",
        "",
        f"TARGET: EXACTLY {target} characters (Part {index}/{plan.count})",
        "",
        "STYLE REFERENCE (MATCH EXACTLY):",
        params.style_example[:STYLE_EXAMPLE_MAX_CHARS],
        "",
        "STORY DETAILS:",
        f"Title: {params.title}",
        f"Plot: {params.plot}",
    ]
    if params.character_details:
        prompt_parts.append(f"Characters: {params.character_details}")
    if params.extra_instructions:
        prompt_parts.append(f"Instructions: {params.extra_instructions}")
    prompt_parts.append("")

    prompt_parts.append("**GENRE AND TONE:**")
    prompt_parts.append(f"- Genre: {GENRE_GUIDANCE[genre]}")
    prompt_parts.append(f"- Tone: {TONE_GUIDANCE[tone]}")
    prompt_parts.append("")

    if stage.terminal:
        prompt_parts.append("Write the COMPLETE story from opening hook to final scene.")
    else:
        prompt_parts.append(
            f"Part {index}/{plan.count} - Write the OPENING. The story continues in later parts, "
            "so do not conclude it here."
        )
    prompt_parts.append("")
    _append_stage(prompt_parts, stage)

    prompt_parts.append("**CRITICAL RULES:**")
    _append_list(prompt_parts, FORMATTING_RULES)
    _append_list(prompt_parts, PROSE_QUALITY_CHECKLIST)
    prompt_parts.append("")

    if stage.terminal:
        _append_closing(prompt_parts)

    prompt_parts.append(f"WRITE EXACTLY {target} CHARACTERS!")
    prompt_parts.append("")
    prompt_parts.append("Begin (no title):")

    return "\n".join(prompt_parts)


def build_continuation_prompt(
    params: StoryParams,
    plan: ChunkPlan,
    excerpt: str,
    stage: StageDirective,
    index: int,
    names: Optional[Sequence[str]] = None,
) -> str:
    """
    Build the prompt for a chunk after the first.

    Args:
        params: Story parameters
        plan: Chunk plan for the story
        excerpt: Trailing excerpt of the previous chunk
        stage: Stage directive for this chunk
        index: 1-based chunk index
        names: Recurring character names to keep consistent (optional)

    Returns:
        Prompt text
    """
    target = _format_length(plan.per_chunk_length)

    prompt_parts = [
        f"Continue SEAMLESSLY. Part {index}/{plan.count} of \"{params.title}\" "
        f"({params.tone} {params.niche}).",
        "",
        "PREVIOUS PART ENDED:",
        f"\"{excerpt}\"",
        "",
        f"TARGET: EXACTLY {target} characters",
        "",
        "**CONTINUITY RULES:**",
    ]
    _append_list(prompt_parts, CONTINUITY_RULES)
    if names:
        prompt_parts.append(f"- Characters so far: {', '.join(names)} (use these exact names)")
    if params.character_details:
        prompt_parts.append(f"- Character notes: {params.character_details}")
    prompt_parts.append("")

    _append_stage(prompt_parts, stage)

    if stage.terminal:
        _append_closing(prompt_parts)
    else:
        prompt_parts.append(f"Part {index} - Keep the tension building; the story is not over yet.")
        prompt_parts.append("")

    prompt_parts.append("**CRITICAL RULES:**")
    _append_list(prompt_parts, FORMATTING_RULES)
    prompt_parts.append("")
    prompt_parts.append(f"WRITE {target} CHARACTERS!")
    prompt_parts.append("")
    prompt_parts.append("Continue:")

    return "\n".join(prompt_parts)
