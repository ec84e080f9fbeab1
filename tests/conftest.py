"""
Shared pytest fixtures for test suite.

Generation never reaches the real Gemini API in tests: a scripted fake
transport stands in for GeminiProvider, a fake clock drives key cooldowns
and backoff sleeps are recorded instead of slept.
"""

from typing import List, Union

import pytest

from app import create_app
from src.longstory.credentials import Credential, CredentialPool
from src.longstory.executor import CallExecutor
from src.longstory.utils.story_prompt_builder import StoryParams


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTransport:
    """
    Transport returning scripted results in order.

    Each script entry is either a string (returned as the generated text) or
    an exception instance (raised). Once the script runs out, the default
    reply is returned. Every call is recorded as (prompt, credential slot).
    """

    def __init__(self, script: List[Union[str, Exception]] = None, default: str = None):
        self.script = list(script or [])
        self.default = default
        self.calls = []

    def generate(self, prompt: str, credential: Credential) -> str:
        self.calls.append((prompt, credential.slot))
        if self.script:
            result = self.script.pop(0)
        elif self.default is not None:
            result = self.default
        else:
            raise AssertionError("FakeTransport script exhausted")
        if isinstance(result, Exception):
            raise result
        return result

    @property
    def prompts(self) -> List[str]:
        return [prompt for prompt, _ in self.calls]

    @property
    def slots(self) -> List[int]:
        return [slot for _, slot in self.calls]


class RecordingSleep:
    """Sleep replacement that records requested delays."""

    def __init__(self):
        self.delays = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def make_chunk(length: int, sentence: str = "Mara walked to the lighthouse and Tom followed her. ") -> str:
    """Build prose of exactly `length` characters from a repeated sentence."""
    text = sentence * (length // len(sentence) + 1)
    return text[:length]


@pytest.fixture
def fake_clock():
    """Fake monotonic clock starting at t=1000s."""
    return FakeClock()


@pytest.fixture
def recording_sleep():
    """Sleep function that records delays."""
    return RecordingSleep()


@pytest.fixture
def pool(fake_clock):
    """Credential pool with three keys."""
    return CredentialPool(["key-one", "key-two", "key-three"], clock=fake_clock)


@pytest.fixture
def transport():
    """Fake transport with an empty script."""
    return FakeTransport()


@pytest.fixture
def executor(pool, transport, recording_sleep):
    """Call executor over the three-key pool and fake transport."""
    return CallExecutor(
        pool=pool,
        transport=transport,
        max_attempts=3,
        backoff_seconds=2.0,
        cooldown_ms=60000,
        sleep=recording_sleep,
    )


@pytest.fixture
def style_example():
    """A style example long enough to pass request validation."""
    return (
        "The rain had not stopped for three days when Evelyn found the letter. "
        "It was tucked behind the loose brick in the cellar, the one her father "
        "always told her never to touch. "
    ) * 8


@pytest.fixture
def story_params(style_example):
    """Sample story parameters."""
    return StoryParams(
        title="The Lighthouse Keeper's Daughter",
        niche="horror",
        tone="dark",
        plot="A keeper's daughter discovers her father has been hiding the drowned.",
        style_example=style_example,
        character_details="Mara (19), Tom (52, her father)",
    )


@pytest.fixture
def generate_payload(style_example):
    """Sample JSON body for /api/generate."""
    return {
        "title": "The Lighthouse Keeper's Daughter",
        "niche": "horror",
        "tone": "dark",
        "plot": "A keeper's daughter discovers her father has been hiding the drowned.",
        "styleExample": style_example,
        "targetLength": 10000,
    }


@pytest.fixture
def app_transport():
    """Fake transport used by the Flask app fixture; replies with 5000 chars."""
    return FakeTransport(default=make_chunk(5000))


@pytest.fixture
def app(pool, app_transport, recording_sleep):
    """Flask app wired to the fake pool and transport."""
    config = {
        'TESTING': True,
        'GENERATE_RATE_LIMIT': '100 per minute',
        'AUTO_GENERATE_RATE_LIMIT': '100 per minute',
        'RATELIMIT_STORAGE_URL': 'memory://',
    }
    return create_app(config=config, pool=pool, transport=app_transport, sleep=recording_sleep)


@pytest.fixture
def client(app):
    """Flask test client."""
    with app.test_client() as test_client:
        yield test_client
