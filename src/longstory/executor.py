"""
Call executor: one logical generation call with retry, backoff and key rotation.

Failure policy:

    429                -> suspend the key, back off, retry
    429, all suspended -> ExhaustedError chained to the 429, no backoff
    5xx / timeout      -> back off, retry
    other 4xx          -> ServiceError, no retry
    missing text       -> ServiceError, no retry
    attempts exhausted -> RetryExhaustedError wrapping the last failure
"""

import logging
import time
from typing import Callable, Protocol

from .credentials import Credential, CredentialPool
from .utils.errors import ExhaustedError, RetryExhaustedError, TransientServiceError
from .utils.llm_constants import BACKOFF_BASE_SECONDS, KEY_COOLDOWN_MS, MAX_ATTEMPTS

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Anything that can perform a single authenticated generation request."""

    def generate(self, prompt: str, credential: Credential) -> str:
        ...


class CallExecutor:
    """
    Executes prompts against the generation service using a credential pool.

    Args:
        pool: Shared credential pool
        transport: Single-request transport (e.g. GeminiProvider)
        max_attempts: Total attempts per call, including the first
        backoff_seconds: Base delay; attempt n waits backoff_seconds * n
        cooldown_ms: Suspension applied to a key after a 429
        sleep: Sleep function (injectable for tests)
    """

    def __init__(
        self,
        pool: CredentialPool,
        transport: Transport,
        max_attempts: int = MAX_ATTEMPTS,
        backoff_seconds: float = BACKOFF_BASE_SECONDS,
        cooldown_ms: int = KEY_COOLDOWN_MS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.pool = pool
        self.transport = transport
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.cooldown_ms = cooldown_ms
        self._sleep = sleep

    def execute(self, prompt: str) -> str:
        """
        Generate text for a prompt.

        Each attempt acquires a fresh credential, so a key suspended after a
        429 is skipped on the retry.

        Returns:
            Generated text

        Raises:
            ConfigurationError: No keys configured
            ExhaustedError: Every key is suspended, either before a call or
                after a 429 suspends the last available key
            ServiceError: Non-transient service failure
            RetryExhaustedError: Transient failures on every attempt
        """
        attempt = 1
        while True:
            credential = self.pool.acquire()
            logger.info(f"Calling Gemini (attempt {attempt}/{self.max_attempts})...")
            try:
                return self.transport.generate(prompt, credential)
            except TransientServiceError as e:
                logger.warning(f"Transient failure on attempt {attempt}: {e}")
                if e.rate_limited:
                    self.pool.suspend(credential, self.cooldown_ms)
                if attempt >= self.max_attempts:
                    logger.error(f"Giving up after {self.max_attempts} attempts: {e}")
                    raise RetryExhaustedError(self.max_attempts, e) from e
                if e.rate_limited:
                    status = self.pool.status()
                    if not status["available"]:
                        # Every key is cooling down
                        raise ExhaustedError(total=status["total"]) from e

            delay = self.backoff_seconds * attempt
            logger.info(f"Retrying in {delay:.1f}s")
            self._sleep(delay)
            attempt += 1
