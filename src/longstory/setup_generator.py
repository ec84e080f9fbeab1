"""
Story setup generation.

Asks the model for a small JSON setup (characters, location, concept) for a
title, so a user can start from a suggested cast instead of a blank form.
"""

import json
import logging
import re

from pydantic import ValidationError as PydanticValidationError

from .executor import CallExecutor
from .models import StorySetup
from .utils.errors import ServiceError

logger = logging.getLogger(__name__)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def build_setup_prompt(title: str, niche: str, tone: str) -> str:
    """Build the prompt requesting a JSON story setup."""
    return f"""Generate story setup for:

Title: "{title}"
Niche: {niche}
Tone: {tone}

Return JSON:
{{
  "characters": [{{"name": "Full Name", "age": number, "role": "description"}}],
  "location": "Specific place, year",
  "concept": "2-3 sentence concept"
}}

Make contextual, realistic. 2-3 characters max."""


def parse_setup(text: str) -> StorySetup:
    """
    Parse the model reply into a StorySetup.

    The reply may wrap the JSON in prose or code fences; the outermost
    {...} block is used.

    Raises:
        ServiceError: If no valid JSON setup is found
    """
    match = _JSON_OBJECT.search(text or "")
    if not match:
        raise ServiceError("No valid JSON in setup response")
    try:
        return StorySetup.model_validate(json.loads(match.group(0)))
    except json.JSONDecodeError as e:
        raise ServiceError(f"No valid JSON in setup response: {e.msg}") from e
    except PydanticValidationError as e:
        raise ServiceError(
            "Setup response has an unexpected structure",
            details={"errors": [error["msg"] for error in e.errors()]},
        ) from e


def generate_story_setup(title: str, niche: str, tone: str, executor: CallExecutor) -> StorySetup:
    """
    Generate a story setup for a title.

    Args:
        title: Story title
        niche: Genre label
        tone: Tone label
        executor: Call executor

    Returns:
        StorySetup
    """
    logger.info(f"Auto-generating setup: \"{title}\"")
    reply = executor.execute(build_setup_prompt(title, niche, tone))
    return parse_setup(reply)
