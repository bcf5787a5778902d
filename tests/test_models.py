"""Tests for ModelProtocol implementations (Anthropic, OpenAI, Ollama).

All tests work without actual API access; SDK/HTTP calls are mocked.
"""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from lorekeeper.protocols import (
    ModelCapabilities,
    ModelError,
    ModelMessage,
    ModelProtocol,
    ModelResponse,
)

# =============================================================================
# AnthropicModel tests
# =============================================================================


class TestAnthropicModel:
    def test_model_id_and_capabilities(self, anthropic_model):
        assert anthropic_model.model_id == "claude-haiku-4-5-20251001"
        caps = anthropic_model.capabilities
        assert isinstance(caps, ModelCapabilities)
        assert caps.provider == "anthropic"
        assert isinstance(anthropic_model, ModelProtocol)

    def test_api_key_from_env(self, monkeypatch):
        monkeypatch.delenv("CLAUDE_API_KEY", raising=False)
        monkeypatch.setenv("ANTHROPIC_API_KEY", "test-ak")
        mock_module = MagicMock()
        with patch.dict("sys.modules", {"anthropic": mock_module}):
            from lorekeeper.models.anthropic import AnthropicModel

            AnthropicModel()
        mock_module.Anthropic.assert_called_once_with(api_key="test-ak")

    def test_claude_api_key_takes_priority(self, monkeypatch):
        monkeypatch.setenv("CLAUDE_API_KEY", "claude-key")
        monkeypatch.setenv("ANTHROPIC_API_KEY", "anthropic-key")
        mock_module = MagicMock()
        with patch.dict("sys.modules", {"anthropic": mock_module}):
            from lorekeeper.models.anthropic import AnthropicModel

            AnthropicModel()
        mock_module.Anthropic.assert_called_once_with(api_key="claude-key")

    def test_missing_api_key_raises(self, monkeypatch):
        monkeypatch.delenv("CLAUDE_API_KEY", raising=False)
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        with patch.dict("sys.modules", {"anthropic": MagicMock()}):
            from lorekeeper.models.anthropic import AnthropicModel

            with pytest.raises(ValueError, match="API key"):
                AnthropicModel()

    def test_missing_sdk_raises_import_error(self):
        with patch.dict("sys.modules", {"anthropic": None}):
            from lorekeeper.models.anthropic import AnthropicModel

            with pytest.raises(ImportError, match="anthropic"):
                AnthropicModel(api_key="k")

    def test_generate_extracts_system_message(self, anthropic_model):
        mock_client = anthropic_model._client
        mock_client.messages.create.return_value = _make_anthropic_response("ok")

        anthropic_model.generate(
            [
                ModelMessage(role="system", content="From message."),
                ModelMessage(role="user", content="Hi"),
            ],
            system="From param.",
            temperature=0.2,
        )

        kwargs = mock_client.messages.create.call_args[1]
        assert kwargs["messages"] == [{"role": "user", "content": "Hi"}]
        assert kwargs["system"] == "From param.\n\nFrom message."
        assert kwargs["temperature"] == 0.2
        assert kwargs["max_tokens"] == 2048

    def test_generate_returns_model_response(self, anthropic_model):
        anthropic_model._client.messages.create.return_value = _make_anthropic_response(
            '["fact"]', input_tokens=10, output_tokens=5
        )
        result = anthropic_model.generate([ModelMessage(role="user", content="Hi")])
        assert isinstance(result, ModelResponse)
        assert result.content == '["fact"]'
        assert result.usage == {"input_tokens": 10, "output_tokens": 5}
        assert result.stop_reason == "end_turn"

    def test_generate_error_wrapped(self, anthropic_model):
        anthropic_model._client.messages.create.side_effect = RuntimeError("connection lost")
        with pytest.raises(ModelError, match="Anthropic API error") as exc_info:
            anthropic_model.generate([ModelMessage(role="user", content="Hi")])
        assert exc_info.value.error_class == "unknown"


# =============================================================================
# OpenAI error classification
# =============================================================================


_OPENAI_FAKE = SimpleNamespace(
    OpenAI=MagicMock(return_value=MagicMock()),
    RateLimitError=type("RateLimitError", (Exception,), {}),
    AuthenticationError=type("AuthenticationError", (Exception,), {}),
    APITimeoutError=type("APITimeoutError", (Exception,), {}),
    APIStatusError=type("APIStatusError", (Exception,), {"status_code": 502}),
)


@pytest.fixture
def openai_model():
    """OpenAIModel with a mocked SDK that stays active."""
    _OPENAI_FAKE.OpenAI.return_value = MagicMock()
    with patch.dict("sys.modules", {"openai": _OPENAI_FAKE}):
        from lorekeeper.models.openai import OpenAIModel

        yield OpenAIModel(api_key="test-key")


class TestOpenAIModel:
    def test_generate_prepends_system(self, openai_model):
        choice = SimpleNamespace(message=SimpleNamespace(content="ok"), finish_reason="stop")
        openai_model._client.chat.completions.create.return_value = SimpleNamespace(
            choices=[choice],
            usage=SimpleNamespace(prompt_tokens=3, completion_tokens=1),
            model="gpt-4o-mini",
        )

        result = openai_model.generate([ModelMessage(role="user", content="Hi")], system="Be brief.")

        kwargs = openai_model._client.chat.completions.create.call_args[1]
        assert kwargs["messages"][0] == {"role": "system", "content": "Be brief."}
        assert result.content == "ok"
        assert result.usage == {"input_tokens": 3, "output_tokens": 1}

    @pytest.mark.parametrize(
        "name,error_class",
        [
            ("RateLimitError", "rate_limit"),
            ("AuthenticationError", "auth"),
            ("APITimeoutError", "timeout"),
            ("APIStatusError", "server"),
        ],
    )
    def test_sdk_errors_classified(self, openai_model, name, error_class):
        exc = getattr(_OPENAI_FAKE, name)("failure")
        openai_model._client.chat.completions.create.side_effect = exc
        with pytest.raises(ModelError) as exc_info:
            openai_model.generate([ModelMessage(role="user", content="hi")])
        assert exc_info.value.error_class == error_class

    def test_unknown_exception_classified(self, openai_model):
        openai_model._client.chat.completions.create.side_effect = RuntimeError("unknown")
        with pytest.raises(ModelError) as exc_info:
            openai_model.generate([ModelMessage(role="user", content="hi")])
        assert exc_info.value.error_class == "unknown"


# =============================================================================
# OllamaModel tests
# =============================================================================


class TestOllamaModel:
    def test_defaults(self, ollama_model):
        assert ollama_model.model_id == "llama3.2:latest"
        assert ollama_model.capabilities.provider == "ollama"
        assert ollama_model.capabilities.context_window == 8192

    def test_custom_base_url(self):
        with _mock_requests():
            from lorekeeper.models.ollama import OllamaModel

            model = OllamaModel(base_url="http://myhost:9999/")
        assert model._base_url == "http://myhost:9999"

    def test_generate_sends_correct_request(self, ollama_model, mock_requests_post):
        mock_requests_post.return_value = _make_ollama_response("Hello!", prompt_eval_count=10, eval_count=5)

        result = ollama_model.generate(
            [ModelMessage(role="user", content="Hi")],
            system="Be concise.",
            temperature=0.2,
            max_tokens=100,
        )

        url = mock_requests_post.call_args[0][0]
        payload = mock_requests_post.call_args[1]["json"]
        assert url.endswith("/api/chat")
        assert payload["stream"] is False
        assert payload["messages"][0] == {"role": "system", "content": "Be concise."}
        assert payload["options"] == {"temperature": 0.2, "num_predict": 100}
        assert result.content == "Hello!"
        assert result.usage == {"input_tokens": 10, "output_tokens": 5}

    @pytest.mark.parametrize("status,error_class", [(401, "auth"), (429, "rate_limit"), (503, "server"), (404, "unknown")])
    def test_http_errors_classified(self, ollama_model, mock_requests_post, status, error_class):
        resp = MagicMock()
        resp.status_code = status
        resp.text = "nope"
        mock_requests_post.return_value = resp
        with pytest.raises(ModelError) as exc_info:
            ollama_model.generate([ModelMessage(role="user", content="Hi")])
        assert exc_info.value.error_class == error_class

    def test_connection_error_is_timeout_class(self, ollama_model, mock_requests_post):
        mock_requests_post.side_effect = _MockRequestsModule.ConnectionError("refused")
        with pytest.raises(ModelError, match="Cannot connect") as exc_info:
            ollama_model.generate([ModelMessage(role="user", content="Hi")])
        assert exc_info.value.error_class == "timeout"


# =============================================================================
# Fixtures and helpers
# =============================================================================


@pytest.fixture
def anthropic_model():
    """Create an AnthropicModel with a mocked SDK client."""
    with patch.dict("sys.modules", {"anthropic": MagicMock()}):
        from lorekeeper.models.anthropic import AnthropicModel

        model = AnthropicModel(api_key="test-key-123")
    return model


@pytest.fixture
def ollama_model():
    """Create an OllamaModel with mocked requests module."""
    with _mock_requests():
        from lorekeeper.models.ollama import OllamaModel

        model = OllamaModel()
    return model


@pytest.fixture
def mock_requests_post(ollama_model):
    """Patch requests.post on an existing OllamaModel instance."""
    with patch.object(ollama_model._requests, "post") as mock_post:
        yield mock_post


def _make_anthropic_response(
    text: str,
    *,
    input_tokens: int = 0,
    output_tokens: int = 0,
    stop_reason: str = "end_turn",
    model: str = "claude-haiku-4-5-20251001",
) -> SimpleNamespace:
    """Create a fake Anthropic API response."""
    return SimpleNamespace(
        content=[SimpleNamespace(type="text", text=text)],
        usage=SimpleNamespace(input_tokens=input_tokens, output_tokens=output_tokens),
        stop_reason=stop_reason,
        model=model,
    )


class _MockRequestsModule:
    """Fake requests module with exception classes."""

    class ConnectionError(Exception):
        pass

    class Timeout(Exception):  # noqa: N818
        pass

    def post(self, *args, **kwargs):
        pass


def _mock_requests():
    """Context manager that mocks the requests import."""
    return patch.dict("sys.modules", {"requests": _MockRequestsModule()})


def _make_ollama_response(
    content: str,
    *,
    prompt_eval_count: int = 0,
    eval_count: int = 0,
) -> MagicMock:
    """Create a fake requests.Response for Ollama non-streaming."""
    resp = MagicMock()
    resp.status_code = 200
    data: dict[str, Any] = {
        "model": "llama3.2:latest",
        "message": {"role": "assistant", "content": content},
        "done": True,
        "prompt_eval_count": prompt_eval_count,
        "eval_count": eval_count,
    }
    resp.json.return_value = data
    return resp
