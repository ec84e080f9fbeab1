"""
Generation session: drives one request from plan to finished story.

A session plans the chunk sequence once, then generates chunks strictly in
order because every continuation prompt depends on the previous chunk's
text. It can run to completion in one call (batch mode) or yield progress
events as it goes (incremental mode).
"""

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

from .context import CapitalizedNameTracker, NameTracker, extract_context
from .executor import CallExecutor
from .planner import ChunkPlan, plan_chunks
from .stages import stage_for
from .utils.errors import APIError, GenerationCancelledError
from .utils.llm_constants import ACHIEVED_RATIO, CHUNK_SEPARATOR, CONTEXT_CHARS
from .utils.story_prompt_builder import (
    StoryParams,
    build_continuation_prompt,
    build_opening_prompt,
)

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Lifecycle of a generation session."""
    PLANNED = "planned"
    GENERATING = "generating"
    COMPLETE = "complete"
    ERRORED = "errored"


@dataclass
class GenerationResult:
    """Final story and statistics."""
    script: str
    total_chars: int
    total_words: int
    target_length: int
    chunks: int
    achieved: bool

    def stats(self) -> Dict[str, Any]:
        return {
            "totalChars": self.total_chars,
            "totalWords": self.total_words,
            "targetLength": self.target_length,
            "achieved": self.achieved,
            "chunks": self.chunks,
        }


@dataclass
class GenerationSession:
    """
    One request's worth of generation state.

    Args:
        params: Story parameters
        target_length: Requested total length in characters
        executor: Call executor shared with other sessions
        name_tracker: Strategy for recurring names (None disables tracking)
        context_chars: Bound on the continuity excerpt
        achieved_ratio: Fraction of target_length that counts as achieved
    """
    params: StoryParams
    target_length: int
    executor: CallExecutor
    name_tracker: Optional[NameTracker] = field(default_factory=CapitalizedNameTracker)
    context_chars: int = CONTEXT_CHARS
    achieved_ratio: float = ACHIEVED_RATIO

    def __post_init__(self):
        self.plan: ChunkPlan = plan_chunks(self.target_length)
        self.chunks: List[str] = []
        self.names: List[str] = []
        self.state = SessionState.PLANNED
        self.current_chunk = 0
        self.error: Optional[Exception] = None
        self._cancelled = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        """Stop before the next chunk; a call already in flight still completes."""
        self._cancelled.set()

    def _build_prompt(self, index: int) -> str:
        stage = stage_for(index, self.plan.count)
        if index == 1:
            return build_opening_prompt(self.params, self.plan, stage, index=index)

        excerpt = extract_context(self.chunks[index - 2], bound=self.context_chars)
        return build_continuation_prompt(
            self.params,
            self.plan,
            excerpt,
            stage,
            index=index,
            names=self.names or None,
        )

    def _generate_chunk(self, index: int) -> str:
        if self.cancelled:
            raise GenerationCancelledError(completed_chunks=len(self.chunks))

        self.state = SessionState.GENERATING
        self.current_chunk = index
        prompt = self._build_prompt(index)
        text = self.executor.execute(prompt)
        self.chunks.append(text)

        if index == 1 and self.name_tracker is not None:
            self.names = self.name_tracker.track_names(text)
            if self.names:
                logger.debug(f"Tracking names: {', '.join(self.names)}")

        logger.info(f"Part {index}/{self.plan.count}: {len(text)} chars")
        return text

    def _finish(self) -> GenerationResult:
        script = CHUNK_SEPARATOR.join(self.chunks)
        total_chars = len(script)
        result = GenerationResult(
            script=script,
            total_chars=total_chars,
            total_words=len(script.split()),
            target_length=self.target_length,
            chunks=self.plan.count,
            achieved=total_chars >= self.achieved_ratio * self.target_length,
        )
        self.state = SessionState.COMPLETE
        logger.info(
            f"Total: {total_chars} chars ({total_chars / self.target_length:.0%} of target, "
            f"achieved={result.achieved})"
        )
        return result

    def run(self) -> GenerationResult:
        """
        Generate the whole story.

        Returns:
            GenerationResult

        Raises:
            Any executor error or GenerationCancelledError; no partial story
            is returned.
        """
        logger.info(
            f"Generating \"{self.params.title}\": {self.plan.count} parts x "
            f"{self.plan.per_chunk_length} chars"
        )
        try:
            for index in range(1, self.plan.count + 1):
                self._generate_chunk(index)
        except Exception as e:
            self.state = SessionState.ERRORED
            self.error = e
            raise
        return self._finish()

    def stream(self) -> Iterator[Dict[str, Any]]:
        """
        Generate the story, yielding progress events.

        Yields init, then progress and chunk for each part, then complete.
        A failure yields a single error event and ends the stream; chunks
        already yielded stay valid.
        """
        total = self.plan.count
        yield {"type": "init", "totalChunks": total, "targetLength": self.target_length}

        for index in range(1, total + 1):
            yield {
                "type": "progress",
                "chunk": index,
                "total": total,
                "progressPercent": round((index - 1) / total * 100),
            }
            try:
                text = self._generate_chunk(index)
            except Exception as e:
                self.state = SessionState.ERRORED
                self.error = e
                if not isinstance(e, APIError):
                    logger.error(f"Unexpected error generating part {index}: {e}", exc_info=True)
                yield {"type": "error", "chunk": index, "error": str(e)}
                return
            yield {"type": "chunk", "chunk": index, "text": text, "chars": len(text)}

        result = self._finish()
        yield {
            "type": "complete",
            "totalChars": result.total_chars,
            "totalWords": result.total_words,
            "fullStory": result.script,
            "achieved": result.achieved,
        }
