"""
Long-form story generator.

Generates stories far longer than a single model response by planning a
sequence of calls, carrying continuity between them and rotating API keys
against the service's rate limits.
"""

from .credentials import Credential, CredentialPool
from .executor import CallExecutor
from .planner import ChunkPlan, plan_chunks
from .stages import NarrativeStage, StageDirective, stage_for
from .context import CapitalizedNameTracker, extract_context
from .session import GenerationResult, GenerationSession, SessionState

__version__ = "1.0.0"

__all__ = [
    "Credential",
    "CredentialPool",
    "CallExecutor",
    "ChunkPlan",
    "plan_chunks",
    "NarrativeStage",
    "StageDirective",
    "stage_for",
    "CapitalizedNameTracker",
    "extract_context",
    "GenerationResult",
    "GenerationSession",
    "SessionState",
]
