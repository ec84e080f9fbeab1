"""
Gemini credential pool.

Keys are read once from the numbered GEMINI_KEY_1..GEMINI_KEY_10 slots and
handed out round-robin. A key that hits the service's rate limit is suspended
for a cooldown window and skipped until the window has elapsed.

The pool is shared by every generation session in the process, so every
read-and-advance of the rotation cursor happens under a lock.
"""

import logging
import os
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Any

from .utils.errors import ConfigurationError, ExhaustedError
from .utils.llm_constants import CREDENTIAL_ENV_PREFIX, CREDENTIAL_SLOTS, KEY_COOLDOWN_MS

logger = logging.getLogger(__name__)


@dataclass
class Credential:
    """A single API key plus its usage and suspension state."""
    value: str
    slot: int
    use_count: int = 0
    suspended: bool = False
    suspended_until: float = 0.0

    def __repr__(self) -> str:
        # Never include the secret itself
        return (
            f"Credential(slot={self.slot}, use_count={self.use_count}, "
            f"suspended={self.suspended})"
        )


class CredentialPool:
    """
    Round-robin pool of Gemini API keys.

    Args:
        values: Key values in slot order
        clock: Monotonic time source in seconds (injectable for tests)
    """

    def __init__(self, values: Optional[List[str]] = None, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._cursor = 0
        self._credentials: List[Credential] = [
            Credential(value=value, slot=index + 1)
            for index, value in enumerate(values or [])
        ]

    @classmethod
    def load(
        cls,
        env: Optional[Mapping[str, str]] = None,
        slots: int = CREDENTIAL_SLOTS,
        clock: Callable[[], float] = time.monotonic,
    ) -> "CredentialPool":
        """
        Build a pool from the numbered credential slots.

        Blank slots are skipped. An empty pool is allowed here so the service
        can still start and report zero keys; it fails on first acquire().

        Args:
            env: Environment mapping (default: os.environ)
            slots: Number of numbered slots to read
            clock: Monotonic time source

        Returns:
            CredentialPool instance
        """
        if env is None:
            env = os.environ

        values = []
        for slot in range(1, slots + 1):
            raw = env.get(f"{CREDENTIAL_ENV_PREFIX}{slot}")
            if raw and raw.strip():
                values.append(raw.strip())

        pool = cls(values, clock=clock)
        logger.info(f"Loaded {len(values)} API keys")
        return pool

    def __len__(self) -> int:
        return len(self._credentials)

    def acquire(self) -> Credential:
        """
        Return the next usable credential and advance the cursor past it.

        Raises:
            ConfigurationError: If the pool is empty
            ExhaustedError: If every credential is currently suspended
        """
        with self._lock:
            total = len(self._credentials)
            if total == 0:
                raise ConfigurationError()

            now = self._clock()
            for _ in range(total):
                credential = self._credentials[self._cursor]
                self._cursor = (self._cursor + 1) % total
                self._refresh(credential, now)
                if credential.suspended:
                    continue
                credential.use_count += 1
                logger.info(f"Key #{credential.slot} ({credential.use_count} uses)")
                return credential

        raise ExhaustedError(total=total)

    def suspend(self, credential: Credential, cooldown_ms: int = KEY_COOLDOWN_MS) -> None:
        """Suspend a credential until cooldown_ms milliseconds from now."""
        with self._lock:
            credential.suspended = True
            credential.suspended_until = self._clock() + cooldown_ms / 1000.0
        logger.warning(f"Key #{credential.slot} suspended for {cooldown_ms}ms, switching...")

    def status(self) -> Dict[str, Any]:
        """
        Summarize the pool without exposing key values.

        Returns:
            Dict with total, available and suspended counts and per-slot usage
        """
        with self._lock:
            now = self._clock()
            for credential in self._credentials:
                self._refresh(credential, now)
            suspended = sum(1 for c in self._credentials if c.suspended)
            return {
                "total": len(self._credentials),
                "available": len(self._credentials) - suspended,
                "suspended": suspended,
                "usage": {f"key_{c.slot}": c.use_count for c in self._credentials},
            }

    @staticmethod
    def _refresh(credential: Credential, now: float) -> None:
        if credential.suspended and now >= credential.suspended_until:
            credential.suspended = False
            credential.suspended_until = 0.0
            logger.info(f"Key #{credential.slot} cooldown elapsed, back in rotation")
