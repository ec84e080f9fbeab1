"""
Continuity context between chunks.

The next chunk's prompt receives the tail of the previous chunk so the model
can continue mid-scene. The tail is bounded and, where possible, starts on a
sentence boundary. A name tracker supplies recurring proper names to the
continuation prompt. It is a heuristic only.
"""

import re
from collections import Counter
from typing import Dict, FrozenSet, List, Optional, Protocol

from .utils.llm_constants import (
    CONTEXT_CHARS,
    CONTEXT_LOOKAHEAD_CHARS,
    TRACKED_NAME_MIN_OCCURRENCES,
    TRACKED_NAMES_LIMIT,
)

# Sentence end: terminal punctuation, optional closing quotes/brackets, whitespace
_SENTENCE_BOUNDARY = re.compile(r"[.!?][\"'”’)\]]*\s+")
_SENTENCE_END = re.compile(r"[.!?][\"'”’)\]]*$")


def extract_context(
    text: Optional[str],
    bound: int = CONTEXT_CHARS,
    lookahead: int = CONTEXT_LOOKAHEAD_CHARS,
) -> Optional[str]:
    """
    Reduce a chunk to a bounded trailing excerpt for the next prompt.

    Args:
        text: Completed chunk text
        bound: Maximum excerpt length in characters
        lookahead: How far into the window to look for a sentence boundary

    Returns:
        The whole text if it fits within bound, otherwise the last bound
        characters starting after the first sentence boundary in the
        lookahead (or the raw window if there is none)
    """
    if not text or len(text) <= bound:
        return text

    window = text[-bound:]
    preceding = text[:-bound]
    if preceding[-1:].isspace() and _SENTENCE_END.search(preceding.rstrip()):
        # Window already starts on a sentence
        return window.lstrip()

    match = _SENTENCE_BOUNDARY.search(window[:lookahead])
    if match and match.end() < len(window):
        return window[match.end():]
    return window


class NameTracker(Protocol):
    """Strategy that pulls likely character names out of prose."""

    def track_names(self, text: str) -> List[str]:
        ...


# Capitalized words that are almost never character names
NAME_STOPLIST: FrozenSet[str] = frozenset({
    "I", "Me", "My", "Mine", "We", "Us", "Our", "You", "Your",
    "He", "Him", "His", "She", "Her", "Hers", "It", "Its", "They", "Them", "Their",
    "The", "A", "An", "This", "That", "These", "Those", "There", "Here",
    "Then", "When", "What", "Where", "Why", "How", "Who", "Which", "While",
    "And", "But", "Or", "So", "If", "As", "At", "In", "On", "Of", "For", "With",
    "By", "From", "To", "Into", "Not", "No", "Yes", "Oh", "Now", "Just",
    "After", "Before", "Maybe", "Even", "Still", "All", "Some", "Every", "One",
    "Something", "Nothing", "Everything", "Someone", "Everyone", "Nobody",
    "Mr", "Mrs", "Ms", "Dr", "Sir", "God", "Okay", "OK",
})

_CAPITALIZED_RUN = re.compile(r"\b[A-Z][a-zA-Z'\-]*(?:[ \t]+[A-Z][a-zA-Z'\-]*)*")


class CapitalizedNameTracker:
    """
    Counts capitalized-word sequences that are not common non-names.

    Args:
        limit: Maximum number of names returned
        min_occurrences: Minimum count for a name to be returned
        stoplist: Words never treated as names
    """

    def __init__(
        self,
        limit: int = TRACKED_NAMES_LIMIT,
        min_occurrences: int = TRACKED_NAME_MIN_OCCURRENCES,
        stoplist: FrozenSet[str] = NAME_STOPLIST,
    ):
        self.limit = limit
        self.min_occurrences = min_occurrences
        self.stoplist = stoplist

    def _candidates(self, text: str) -> List[str]:
        candidates = []
        for match in _CAPITALIZED_RUN.finditer(text):
            run: List[str] = []
            for word in match.group(0).split():
                bare = word.rstrip("'-")
                if bare.endswith("'s"):
                    bare = bare[:-2]
                if bare in self.stoplist or not bare:
                    if run:
                        candidates.append(" ".join(run))
                        run = []
                    continue
                run.append(bare)
            if run:
                candidates.append(" ".join(run))
        return candidates

    def track_names(self, text: str) -> List[str]:
        """
        Return the most frequent name candidates in a text.

        Ordered by descending count, ties broken by first appearance.
        """
        if not text:
            return []

        candidates = self._candidates(text)
        counts = Counter(candidates)
        first_seen: Dict[str, int] = {}
        for position, name in enumerate(candidates):
            first_seen.setdefault(name, position)

        ranked = sorted(
            (name for name, count in counts.items() if count >= self.min_occurrences),
            key=lambda name: (-counts[name], first_seen[name]),
        )
        return ranked[:self.limit]
