"""
Tests for the Gemini REST transport.

The requests session is mocked, apart from connection-failure tests that
target a closed port on localhost.
"""

import logging
from unittest.mock import MagicMock

import pytest
import requests

from app import create_app
from src.longstory.credentials import Credential, CredentialPool
from src.longstory.providers.factory import create_executor, create_provider
from src.longstory.providers.gemini import GeminiProvider, _extract_text
from src.longstory.utils.errors import ServiceError, TransientServiceError


def make_response(status_code=200, payload=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    if payload is None:
        response.json.side_effect = ValueError("No JSON")
    else:
        response.json.return_value = payload
    response.text = text
    return response


def text_payload(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}, "finishReason": "STOP"}]}


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def provider(session):
    return GeminiProvider(model_name="gemini-test", timeout=30, session=session)


@pytest.fixture
def credential():
    return Credential(value="secret-key", slot=2)


class TestRequest:

    def test_posts_to_generate_content_with_key(self, provider, session, credential):
        session.post.return_value = make_response(payload=text_payload("Hello"))

        provider.generate("Write a story", credential)

        args, kwargs = session.post.call_args
        assert args[0].endswith("/models/gemini-test:generateContent")
        assert kwargs["headers"] == {"x-goog-api-key": "secret-key"}
        assert "params" not in kwargs
        assert "secret-key" not in args[0]
        assert kwargs["timeout"] == 30
        assert kwargs["json"]["contents"] == [{"parts": [{"text": "Write a story"}]}]

    def test_generation_config(self, provider):
        config = provider.build_payload("p")["generationConfig"]
        assert config == {
            "temperature": 0.95,
            "maxOutputTokens": 65536,
            "topP": 0.95,
            "topK": 64,
        }

    def test_model_prefix_is_stripped(self, session):
        provider = GeminiProvider(model_name="models/gemini-x", session=session)
        assert provider.model_name == "gemini-x"


class TestResponses:

    def test_returns_stripped_text(self, provider, session, credential):
        session.post.return_value = make_response(payload=text_payload("  The end.  \n"))
        assert provider.generate("p", credential) == "The end."

    @pytest.mark.parametrize("status", [429, 500, 503])
    def test_transient_statuses(self, provider, session, credential, status):
        session.post.return_value = make_response(status_code=status, payload={})
        with pytest.raises(TransientServiceError) as exc_info:
            provider.generate("p", credential)
        assert exc_info.value.http_status == status
        assert exc_info.value.rate_limited is (status == 429)

    def test_client_error_is_service_error(self, provider, session, credential):
        session.post.return_value = make_response(
            status_code=403, payload={"error": {"message": "API key not valid"}}
        )
        with pytest.raises(ServiceError) as exc_info:
            provider.generate("p", credential)
        assert exc_info.value.http_status == 403
        assert "API key not valid" in exc_info.value.message

    def test_timeout_is_transient(self, provider, session, credential):
        session.post.side_effect = requests.Timeout("read timed out")
        with pytest.raises(TransientServiceError) as exc_info:
            provider.generate("p", credential)
        assert exc_info.value.rate_limited is False

    def test_connection_error_is_transient(self, provider, session, credential):
        session.post.side_effect = requests.ConnectionError("refused")
        with pytest.raises(TransientServiceError):
            provider.generate("p", credential)

    def test_dropped_connection_mid_body_is_transient(self, provider, session, credential):
        session.post.side_effect = requests.exceptions.ChunkedEncodingError("connection broken")
        with pytest.raises(TransientServiceError) as exc_info:
            provider.generate("p", credential)
        assert exc_info.value.http_status is None

    @pytest.mark.parametrize("error", [
        requests.TooManyRedirects("redirect loop"),
        requests.exceptions.InvalidURL("bad url"),
        requests.RequestException("other"),
    ])
    def test_other_request_failures_are_service_errors(self, provider, session, credential, error):
        session.post.side_effect = error
        with pytest.raises(ServiceError) as exc_info:
            provider.generate("p", credential)
        assert exc_info.value.message == f"Request failed: {type(error).__name__}"

    def test_request_failure_text_is_not_echoed(self, provider, session, credential):
        session.post.side_effect = requests.ConnectionError(
            "Max retries exceeded with url: /generateContent?key=secret-key"
        )
        with pytest.raises(TransientServiceError) as exc_info:
            provider.generate("p", credential)
        assert "secret-key" not in str(exc_info.value)

    def test_non_json_body(self, provider, session, credential):
        session.post.return_value = make_response(payload=None, text="<html>")
        with pytest.raises(ServiceError, match="Invalid response shape"):
            provider.generate("p", credential)

    def test_missing_candidates(self, provider, session, credential):
        session.post.return_value = make_response(
            payload={"candidates": [{"finishReason": "SAFETY"}]}
        )
        with pytest.raises(ServiceError) as exc_info:
            provider.generate("p", credential)
        assert exc_info.value.details["finish_reason"] == "SAFETY"

    def test_key_never_in_error_message(self, provider, session, credential):
        session.post.return_value = make_response(status_code=400, payload=None, text="bad request")
        with pytest.raises(ServiceError) as exc_info:
            provider.generate("p", credential)
        assert "secret-key" not in str(exc_info.value)


class TestUnreachableHost:
    """A real requests.Session against a closed local port."""

    def test_connection_failure_never_exposes_key(self, caplog):
        provider = GeminiProvider(base_url="http://127.0.0.1:9/v1beta", timeout=5)
        credential = Credential(value="SECRET-KEY-123", slot=1)

        with caplog.at_level(logging.DEBUG):
            with pytest.raises(TransientServiceError) as exc_info:
                provider.generate("p", credential)

        assert "SECRET-KEY-123" not in str(exc_info.value)
        assert "SECRET-KEY-123" not in caplog.text
        assert "SECRET-KEY-123" not in str(exc_info.value.__cause__)

    def test_retry_exhausted_response_never_exposes_key(self, recording_sleep, generate_payload):
        app = create_app(
            config={'TESTING': True, 'RATELIMIT_STORAGE_URL': 'memory://'},
            pool=CredentialPool(["SECRET-KEY-123"]),
            transport=GeminiProvider(base_url="http://127.0.0.1:9/v1beta", timeout=5),
            sleep=recording_sleep,
        )
        generate_payload["targetLength"] = 2000

        response = app.test_client().post('/api/generate', json=generate_payload)

        assert response.status_code == 503
        assert response.get_json()["error_code"] == "RETRY_EXHAUSTED"
        assert "SECRET-KEY-123" not in response.get_data(as_text=True)
        assert recording_sleep.delays == [2.0, 4.0]


class TestExecutorThroughProvider:

    def test_dropped_connection_is_retried(self, pool, recording_sleep):
        session = MagicMock(spec=requests.Session)
        session.post.side_effect = [
            requests.exceptions.ChunkedEncodingError("connection broken"),
            make_response(payload=text_payload("Recovered")),
        ]
        provider = GeminiProvider(session=session)
        executor = create_executor(pool, transport=provider, sleep=recording_sleep)

        assert executor.execute("p") == "Recovered"
        assert recording_sleep.delays == [2.0]

    def test_redirect_loop_is_not_retried(self, pool, recording_sleep):
        session = MagicMock(spec=requests.Session)
        session.post.side_effect = requests.TooManyRedirects("redirect loop")
        executor = create_executor(pool, transport=GeminiProvider(session=session), sleep=recording_sleep)

        with pytest.raises(ServiceError) as exc_info:
            executor.execute("p")

        assert exc_info.value.status_code == 502
        assert session.post.call_count == 1
        assert recording_sleep.delays == []


class TestExtractText:

    @pytest.mark.parametrize("payload", [
        {},
        {"candidates": []},
        {"candidates": [{"content": {"parts": []}}]},
        {"candidates": [{"content": {"parts": [{"text": "   "}]}}]},
        {"candidates": [{"content": {"parts": [{"text": 42}]}}]},
        None,
    ])
    def test_missing_or_empty_text(self, payload):
        assert _extract_text(payload) is None


class TestFactory:

    def test_create_provider_reads_config(self):
        provider = create_provider({"LLM_MODEL": "gemini-custom", "LLM_TEMPERATURE": 0.5, "LLM_TOP_K": 10})
        assert provider.model_name == "gemini-custom"
        assert provider.temperature == 0.5
        assert provider.top_k == 10

    def test_create_provider_defaults(self):
        provider = create_provider()
        assert provider.model_name == "gemini-2.0-flash-exp"
        assert provider.max_output_tokens == 65536

    def test_create_executor_uses_config(self, pool, transport):
        executor = create_executor(
            pool,
            config={"LLM_MAX_ATTEMPTS": 5, "LLM_BACKOFF_SECONDS": 0.5, "KEY_COOLDOWN_MS": 100},
            transport=transport,
        )
        assert executor.max_attempts == 5
        assert executor.backoff_seconds == 0.5
        assert executor.cooldown_ms == 100
        assert executor.transport is transport

    def test_create_executor_builds_provider(self, pool):
        executor = create_executor(pool)
        assert isinstance(executor.transport, GeminiProvider)
