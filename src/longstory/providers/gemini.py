"""
Google Gemini provider.

This module performs a single generateContent call against the Gemini REST
API with an explicit credential. All Gemini-specific code (endpoint, payload
layout, response shape) is isolated here; retry and key rotation live in the
call executor.

The key is passed per request in the x-goog-api-key header rather than
configured process-wide, so concurrent sessions can use different keys from
the shared pool.
"""

import logging
import time
from typing import Any, Dict, Optional

import requests

from ..credentials import Credential
from ..utils.errors import ServiceError, TransientServiceError
from ..utils.llm_constants import (
    DEFAULT_GEMINI_MODEL,
    DEFAULT_TEMPERATURE,
    DEFAULT_TOP_K,
    DEFAULT_TOP_P,
    GEMINI_API_BASE_URL,
    GEMINI_API_KEY_HEADER as API_KEY_HEADER,
    GEMINI_MAX_OUTPUT_TOKENS,
    REQUEST_TIMEOUT_SECONDS,
)

logger = logging.getLogger(__name__)


def _extract_text(payload: Any) -> Optional[str]:
    """Return candidates[0].content.parts[0].text stripped, or None if absent."""
    try:
        text = payload["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    if not isinstance(text, str):
        return None
    text = text.strip()
    return text or None


class GeminiProvider:
    """
    Provider for the Gemini generateContent REST endpoint.

    Args:
        model_name: Gemini model name (with or without 'models/' prefix)
        temperature: Sampling temperature
        top_p: Nucleus sampling parameter
        top_k: Top-k sampling parameter
        max_output_tokens: Output token ceiling requested per call
        timeout: Request timeout in seconds
        session: Optional requests.Session (a new one is created if None)
        base_url: API base URL
    """

    def __init__(
        self,
        model_name: str = DEFAULT_GEMINI_MODEL,
        temperature: float = DEFAULT_TEMPERATURE,
        top_p: float = DEFAULT_TOP_P,
        top_k: int = DEFAULT_TOP_K,
        max_output_tokens: int = GEMINI_MAX_OUTPUT_TOKENS,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
        base_url: str = GEMINI_API_BASE_URL,
    ):
        self._model_name = model_name.replace("models/", "")
        self.temperature = temperature
        self.top_p = top_p
        self.top_k = top_k
        self.max_output_tokens = max_output_tokens
        self.timeout = timeout
        self.session = session or requests.Session()
        self.base_url = base_url.rstrip("/")

    @property
    def model_name(self) -> str:
        """Get the model name being used by this provider."""
        return self._model_name

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self._model_name}:generateContent"

    def build_payload(self, prompt: str) -> Dict[str, Any]:
        """Build the generateContent request body for a prompt."""
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": self.max_output_tokens,
                "topP": self.top_p,
                "topK": self.top_k,
            },
        }

    def generate(self, prompt: str, credential: Credential) -> str:
        """
        Send one generation request with the given credential.

        Args:
            prompt: Full prompt text
            credential: Credential to authenticate this call

        Returns:
            Generated text (stripped, never empty)

        Raises:
            TransientServiceError: On 429, 5xx, timeout or a dropped connection
            ServiceError: On any other HTTP error, an invalid response shape
                or a request that could not be sent
        """
        start_time = time.time()
        try:
            response = self.session.post(
                self.endpoint,
                headers={API_KEY_HEADER: credential.value},
                json=self.build_payload(prompt),
                timeout=self.timeout,
            )
        # requests messages can echo the request URL; only the exception type is reported
        except requests.Timeout as e:
            logger.warning(f"Gemini request timed out after {self.timeout}s (key #{credential.slot})")
            raise TransientServiceError(f"Request timed out after {self.timeout}s") from e
        except (requests.ConnectionError, requests.exceptions.ChunkedEncodingError) as e:
            logger.warning(f"Network error calling Gemini (key #{credential.slot}): {type(e).__name__}")
            raise TransientServiceError(f"Connection failed: {type(e).__name__}") from e
        except requests.RequestException as e:
            logger.error(f"Gemini request could not be sent (key #{credential.slot}): {type(e).__name__}")
            raise ServiceError(f"Request failed: {type(e).__name__}") from e

        status = response.status_code
        if status == 429 or status >= 500:
            raise TransientServiceError(
                f"Gemini returned HTTP {status}", http_status=status
            )
        if status >= 400:
            raise ServiceError(
                f"Gemini request failed with HTTP {status}: {self._error_message(response)}",
                http_status=status,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise ServiceError("Invalid response shape: body is not JSON", http_status=status) from e

        text = _extract_text(payload)
        if text is None:
            finish_reason = self._finish_reason(payload)
            logger.warning(f"Gemini returned no text (finish reason: {finish_reason})")
            raise ServiceError(
                "Invalid response shape: no generated text",
                http_status=status,
                details={"finish_reason": finish_reason},
            )

        duration = time.time() - start_time
        logger.info(f"Generated {len(text)} chars in {duration:.1f}s")
        return text

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            return response.json()["error"]["message"]
        except (ValueError, KeyError, TypeError):
            return response.text[:200]

    @staticmethod
    def _finish_reason(payload: Any) -> str:
        try:
            return str(payload["candidates"][0].get("finishReason", "UNKNOWN"))
        except (KeyError, IndexError, TypeError, AttributeError):
            return "UNKNOWN"
