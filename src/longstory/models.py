"""
Request and response models.

Inbound request bodies are validated with Pydantic before a generation
session is created. Field aliases accept the camelCase names used by the
web client.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .utils.llm_constants import (
    DEFAULT_TARGET_LENGTH,
    MAX_TARGET_LENGTH,
    MIN_TARGET_LENGTH,
    STYLE_EXAMPLE_MIN_CHARS,
)
from .utils.story_prompt_builder import StoryParams


class GenerateRequest(BaseModel):
    """Body of a story generation request."""
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    title: str = Field(..., min_length=1)
    niche: str = Field(..., min_length=1, description="Genre label")
    tone: str = Field(..., min_length=1)
    plot: str = Field(..., min_length=1)
    style_example: str = Field(..., alias="styleExample", min_length=STYLE_EXAMPLE_MIN_CHARS)
    extra_instructions: Optional[str] = Field(default=None, alias="extraInstructions")
    target_length: int = Field(
        default=DEFAULT_TARGET_LENGTH,
        alias="targetLength",
        ge=MIN_TARGET_LENGTH,
        le=MAX_TARGET_LENGTH,
    )
    character_details: Optional[str] = Field(default=None, alias="characterDetails")

    @field_validator("extra_instructions", "character_details")
    @classmethod
    def blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        return value or None

    def to_story_params(self) -> StoryParams:
        return StoryParams(
            title=self.title,
            niche=self.niche,
            tone=self.tone,
            plot=self.plot,
            style_example=self.style_example,
            extra_instructions=self.extra_instructions,
            character_details=self.character_details,
        )


class AutoGenerateRequest(BaseModel):
    """Body of a story setup request."""
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1)
    niche: str = Field(..., min_length=1)
    tone: str = Field(..., min_length=1)


class CharacterSetup(BaseModel):
    """One character suggested by the setup generator."""
    name: str
    age: Optional[int] = None
    role: str = ""


class StorySetup(BaseModel):
    """Characters, location and concept suggested for a title."""
    characters: List[CharacterSetup] = Field(default_factory=list)
    location: str = ""
    concept: str = ""
