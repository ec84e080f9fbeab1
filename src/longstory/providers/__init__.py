"""
LLM provider implementations.

Currently supports the Google Gemini REST API via GeminiProvider.
"""

from .gemini import GeminiProvider
from .factory import create_provider, create_executor

__all__ = [
    "GeminiProvider",
    "create_provider",
    "create_executor",
]
