"""
Narrative stage mapping.

Each chunk's position in the plan selects a stage of the story arc. The stage
decides which directions are embedded in that chunk's prompt, so a story split
over several calls still rises, turns and resolves in the right places.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple


class NarrativeStage(str, Enum):
    """Stages of the narrative arc, in story order."""
    HOOK = "hook"
    RISING_ACTION = "rising_action"
    COMPLICATION = "complication"
    MIDPOINT_REVERSAL = "midpoint_reversal"
    DARKEST_MOMENT = "darkest_moment"
    CLIMAX = "climax"
    RESOLUTION = "resolution"


@dataclass(frozen=True)
class StageDirective:
    """Prompt directions for one narrative stage."""
    stage: NarrativeStage
    label: str
    directions: Tuple[str, ...]
    terminal: bool = False


STAGE_DIRECTIONS: Dict[NarrativeStage, Tuple[str, Tuple[str, ...]]] = {
    NarrativeStage.HOOK: (
        "Opening hook and setup",
        (
            "Open with a hook that is specific to this story, not a generic teaser",
            "Ground the reader in a concrete place and time within the first paragraphs",
            "Introduce the protagonist through action and voice, not a biography",
            "Plant the central conflict or question early",
        ),
    ),
    NarrativeStage.RISING_ACTION: (
        "Rising action",
        (
            "Raise the stakes with each scene",
            "Deepen relationships and reveal what each character wants",
            "Introduce obstacles that force choices",
            "Keep tension building without resolving it",
        ),
    ),
    NarrativeStage.COMPLICATION: (
        "Complication",
        (
            "Add a complication that makes the original plan fail",
            "Reveal information that changes how the protagonist sees the situation",
            "Let a secondary character act against expectations",
            "End scenes on unresolved tension",
        ),
    ),
    NarrativeStage.MIDPOINT_REVERSAL: (
        "Midpoint reversal",
        (
            "Deliver a reversal that turns the story in a new direction",
            "Shift the protagonist from reacting to acting",
            "Make the cost of failure personal and visible",
            "Keep earlier details paying off in unexpected ways",
        ),
    ),
    NarrativeStage.DARKEST_MOMENT: (
        "Escalation to the darkest moment",
        (
            "Escalate the conflict to its most dangerous point",
            "Strip away the protagonist's support or advantage",
            "Let the protagonist's flaw cause real damage",
            "Bring the story to the edge of defeat",
        ),
    ),
    NarrativeStage.CLIMAX: (
        "Climax",
        (
            "Drive every thread toward the final confrontation",
            "Force the protagonist into the decisive choice",
            "Keep pacing tight and scenes in motion",
            "Do not resolve the story yet; the ending comes in the final part",
        ),
    ),
    NarrativeStage.RESOLUTION: (
        "Resolution",
        (
            "Deliver the climax's consequences in full scenes",
            "Resolve the central conflict through the protagonist's own choice",
            "Show how the characters have changed",
            "Give the reader emotional closure",
        ),
    ),
}

# (inclusive upper bound of progress, stage); progress == 1.0 is RESOLUTION
_PROGRESS_BANDS: Tuple[Tuple[float, NarrativeStage], ...] = (
    (0.15, NarrativeStage.HOOK),
    (0.35, NarrativeStage.RISING_ACTION),
    (0.50, NarrativeStage.COMPLICATION),
    (0.65, NarrativeStage.MIDPOINT_REVERSAL),
    (0.80, NarrativeStage.DARKEST_MOMENT),
)


def directive_for_stage(stage: NarrativeStage, terminal: bool = False) -> StageDirective:
    label, directions = STAGE_DIRECTIONS[stage]
    return StageDirective(stage=stage, label=label, directions=directions, terminal=terminal)


def stage_for(index: int, total: int) -> StageDirective:
    """
    Map a chunk position to its stage directive.

    Progress is index / total with a 1-based index, so the last chunk always
    reaches 1.0 and is the only terminal chunk. The first chunk of a
    multi-chunk plan always opens the story.

    Args:
        index: 1-based chunk index
        total: Number of chunks in the plan

    Returns:
        StageDirective

    Raises:
        ValueError: If total < 1 or index is outside 1..total
    """
    if total < 1:
        raise ValueError(f"total must be at least 1, got {total}")
    if index < 1 or index > total:
        raise ValueError(f"index must be between 1 and {total}, got {index}")

    if index == total:
        return directive_for_stage(NarrativeStage.RESOLUTION, terminal=True)
    if index == 1:
        return directive_for_stage(NarrativeStage.HOOK)

    progress = index / total
    for upper_bound, stage in _PROGRESS_BANDS:
        if progress <= upper_bound:
            return directive_for_stage(stage)
    return directive_for_stage(NarrativeStage.CLIMAX)
