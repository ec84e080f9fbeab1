"""
Chunk planning: how many sequential calls a story needs and how long each is.
"""

import math
from typing import NamedTuple

from .utils.llm_constants import CHUNK_BANDS, MAX_CHARS_PER_CALL


class ChunkPlan(NamedTuple):
    """Number of sequential calls and the target characters for each."""
    count: int
    per_chunk_length: int

    @property
    def planned_length(self) -> int:
        return self.count * self.per_chunk_length


def plan_chunks(requested_length: int) -> ChunkPlan:
    """
    Plan the chunk sequence for a requested story length.

    The chunk count comes from the first band whose upper bound covers the
    request; longer requests get as many chunks as the per-call ceiling
    requires. The length is then split evenly, so the planned total exceeds
    the request by less than one character per chunk.

    Args:
        requested_length: Total story length in characters

    Returns:
        ChunkPlan

    Raises:
        ValueError: If requested_length is not a positive integer
    """
    if isinstance(requested_length, bool) or not isinstance(requested_length, int):
        raise ValueError(f"requested_length must be an integer, got {requested_length!r}")
    if requested_length < 1:
        raise ValueError(f"requested_length must be positive, got {requested_length}")

    count = None
    for upper_bound, band_count in CHUNK_BANDS:
        if requested_length <= upper_bound:
            count = band_count
            break
    if count is None:
        count = math.ceil(requested_length / MAX_CHARS_PER_CALL)

    per_chunk_length = math.ceil(requested_length / count)
    return ChunkPlan(count=count, per_chunk_length=per_chunk_length)
