"""
Configuration loading.

All runtime settings come from the environment (a .env file is loaded by the
entry points). Integer and float values are validated so a typo in a
deployment variable fails at startup instead of mid-generation.
"""

import os
from typing import Any, Dict, List, Optional

from .utils import llm_constants as constants


def get_env_int(var_name: str, default: int, min_value: int = 1, max_value: int = 10_000_000) -> int:
    """Safely get and validate an integer environment variable."""
    value = os.getenv(var_name)
    if value is None or value.strip() == "":
        return default
    try:
        int_value = int(value)
    except ValueError:
        raise ValueError(f"{var_name} must be a valid integer, got '{value}'")
    if int_value < min_value or int_value > max_value:
        raise ValueError(
            f"{var_name} must be between {min_value} and {max_value}, got {int_value}"
        )
    return int_value


def get_env_float(var_name: str, default: float, min_value: float = 0.0, max_value: float = 3600.0) -> float:
    """Safely get and validate a float environment variable."""
    value = os.getenv(var_name)
    if value is None or value.strip() == "":
        return default
    try:
        float_value = float(value)
    except ValueError:
        raise ValueError(f"{var_name} must be a valid number, got '{value}'")
    if float_value < min_value or float_value > max_value:
        raise ValueError(
            f"{var_name} must be between {min_value} and {max_value}, got {float_value}"
        )
    return float_value


def get_env_str(var_name: str, default: str, allowed_values: Optional[List[str]] = None) -> str:
    """Safely get and validate a string environment variable."""
    value = os.getenv(var_name, default)
    if allowed_values and value not in allowed_values:
        raise ValueError(
            f"{var_name} must be one of {allowed_values}, got '{value}'"
        )
    return value


def load_config() -> Dict[str, Any]:
    """
    Read generation and API settings from the environment.

    Returns:
        Dict suitable for Flask's app.config
    """
    return {
        "LLM_MODEL": get_env_str("LLM_MODEL", constants.DEFAULT_GEMINI_MODEL),
        "LLM_TEMPERATURE": get_env_float("LLM_TEMPERATURE", constants.DEFAULT_TEMPERATURE, max_value=2.0),
        "LLM_TOP_P": get_env_float("LLM_TOP_P", constants.DEFAULT_TOP_P, max_value=1.0),
        "LLM_TOP_K": get_env_int("LLM_TOP_K", constants.DEFAULT_TOP_K, max_value=1000),
        "LLM_MAX_OUTPUT_TOKENS": get_env_int(
            "LLM_MAX_OUTPUT_TOKENS", constants.GEMINI_MAX_OUTPUT_TOKENS, max_value=1_000_000
        ),
        "LLM_TIMEOUT_SECONDS": get_env_float(
            "LLM_TIMEOUT_SECONDS", constants.REQUEST_TIMEOUT_SECONDS, min_value=1.0
        ),
        "LLM_MAX_ATTEMPTS": get_env_int("LLM_MAX_ATTEMPTS", constants.MAX_ATTEMPTS, max_value=10),
        "LLM_BACKOFF_SECONDS": get_env_float("LLM_BACKOFF_SECONDS", constants.BACKOFF_BASE_SECONDS, max_value=60.0),
        "KEY_COOLDOWN_MS": get_env_int("KEY_COOLDOWN_MS", constants.KEY_COOLDOWN_MS, min_value=0, max_value=3_600_000),
        "CONTEXT_CHARS": get_env_int("CONTEXT_CHARS", constants.CONTEXT_CHARS, min_value=100, max_value=20_000),
        "GENERATE_RATE_LIMIT": get_env_str("GENERATE_RATE_LIMIT", "50 per 15 minutes"),
        "AUTO_GENERATE_RATE_LIMIT": get_env_str("AUTO_GENERATE_RATE_LIMIT", "50 per 15 minutes"),
        "RATELIMIT_STORAGE_URL": get_env_str("RATELIMIT_STORAGE_URL", os.getenv("REDIS_URL", "memory://")),
    }
