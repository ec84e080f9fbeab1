"""
Provider and executor factory.

Builds the Gemini transport and the call executor from a configuration
mapping (Flask app.config or the dict returned by load_config()).
"""

import logging
from typing import Any, Callable, Mapping, Optional

from ..credentials import CredentialPool
from ..executor import CallExecutor
from ..utils import llm_constants as constants
from .gemini import GeminiProvider

logger = logging.getLogger(__name__)


def create_provider(config: Optional[Mapping[str, Any]] = None, **kwargs) -> GeminiProvider:
    """
    Create a Gemini provider.

    Args:
        config: Configuration mapping (LLM_* keys); missing keys use defaults
        **kwargs: Explicit overrides passed to GeminiProvider

    Returns:
        GeminiProvider instance
    """
    config = config or {}
    options = {
        "model_name": config.get("LLM_MODEL", constants.DEFAULT_GEMINI_MODEL),
        "temperature": config.get("LLM_TEMPERATURE", constants.DEFAULT_TEMPERATURE),
        "top_p": config.get("LLM_TOP_P", constants.DEFAULT_TOP_P),
        "top_k": config.get("LLM_TOP_K", constants.DEFAULT_TOP_K),
        "max_output_tokens": config.get("LLM_MAX_OUTPUT_TOKENS", constants.GEMINI_MAX_OUTPUT_TOKENS),
        "timeout": config.get("LLM_TIMEOUT_SECONDS", constants.REQUEST_TIMEOUT_SECONDS),
    }
    options.update(kwargs)
    provider = GeminiProvider(**options)
    logger.info(f"Initialized GeminiProvider with model: {provider.model_name}")
    return provider


def create_executor(
    pool: CredentialPool,
    config: Optional[Mapping[str, Any]] = None,
    transport: Optional[Any] = None,
    sleep: Optional[Callable[[float], None]] = None,
) -> CallExecutor:
    """
    Create a call executor over a credential pool.

    Args:
        pool: Shared credential pool
        config: Configuration mapping
        transport: Transport to use (default: a new GeminiProvider)
        sleep: Sleep function override (tests)

    Returns:
        CallExecutor instance
    """
    config = config or {}
    options = {
        "max_attempts": config.get("LLM_MAX_ATTEMPTS", constants.MAX_ATTEMPTS),
        "backoff_seconds": config.get("LLM_BACKOFF_SECONDS", constants.BACKOFF_BASE_SECONDS),
        "cooldown_ms": config.get("KEY_COOLDOWN_MS", constants.KEY_COOLDOWN_MS),
    }
    if sleep is not None:
        options["sleep"] = sleep
    return CallExecutor(
        pool=pool,
        transport=transport if transport is not None else create_provider(config),
        **options,
    )
