"""
Tests for the LLM provider layer: OpenAIProvider and router.

All OpenAI API calls are mocked; no real network requests.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from openai import APITimeoutError, RateLimitError

from lumora.config import Settings
from lumora.llm.openai_provider import OpenAIProvider
from lumora.llm.router import ModelRole, clear_provider_cache, get_llm_provider


@pytest.fixture(autouse=True)
def _clear_cache():
    """Ensure a clean provider cache for every test."""
    clear_provider_cache()
    yield
    clear_provider_cache()


def _make_mock_response(content: str = "Hello!", prompt_tokens: int = 10, completion_tokens: int = 5):
    """Build a fake ChatCompletion response object."""
    message = SimpleNamespace(content=content)
    choice = SimpleNamespace(message=message)
    usage = SimpleNamespace(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens)
    return SimpleNamespace(choices=[choice], usage=usage)


def _make_settings(**overrides) -> Settings:
    """Create a Settings instance with LLM defaults, without reading env."""
    s = object.__new__(Settings)  # skip __init__ (avoids env reads)
    s.llm_provider = "openai"
    s.llm_api_key = "test-key-123"
    s.llm_model = "gpt-4o-mini"
    s.llm_model_risk = "gpt-4o-mini"
    s.llm_timeout = 60.0
    s.llm_max_retries = 3
    for k, v in overrides.items():
        setattr(s, k, v)
    return s


class TestOpenAIProviderComplete:
    def test_basic_complete(self):
        with patch("lumora.llm.openai_provider.OpenAI") as MockOpenAI:
            mock_client = MagicMock()
            MockOpenAI.return_value = mock_client
            mock_client.chat.completions.create.return_value = _make_mock_response("world")

            provider = OpenAIProvider(api_key="k")
            result = provider.complete("hello")

        assert result == "world"
        call_kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert call_kwargs["model"] == "gpt-4o-mini"
        assert call_kwargs["messages"] == [{"role": "user", "content": "hello"}]
        assert call_kwargs["temperature"] == 0.3

    def test_json_mode_kwargs_pass_through(self):
        with patch("lumora.llm.openai_provider.OpenAI") as MockOpenAI:
            mock_client = MagicMock()
            MockOpenAI.return_value = mock_client
            mock_client.chat.completions.create.return_value = _make_mock_response("{}")

            provider = OpenAIProvider(api_key="k")
            provider.complete(
                "json please",
                system_prompt="be terse",
                temperature=0.0,
                response_format={"type": "json_object"},
            )

        call_kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert call_kwargs["messages"][0] == {"role": "system", "content": "be terse"}
        assert call_kwargs["temperature"] == 0.0
        assert call_kwargs["response_format"] == {"type": "json_object"}
        assert "max_tokens" not in call_kwargs

    def test_retry_on_rate_limit(self):
        with patch("lumora.llm.openai_provider.OpenAI") as MockOpenAI, \
             patch("lumora.llm.openai_provider.time") as mock_time:
            mock_client = MagicMock()
            MockOpenAI.return_value = mock_client
            mock_time.monotonic.return_value = 0.0

            rate_err = RateLimitError(
                message="rate limited",
                response=MagicMock(status_code=429),
                body=None,
            )
            mock_client.chat.completions.create.side_effect = [
                rate_err,
                rate_err,
                _make_mock_response("finally"),
            ]

            provider = OpenAIProvider(api_key="k")
            result = provider.complete("test")

        assert result == "finally"
        assert mock_client.chat.completions.create.call_count == 3
        assert [c.args[0] for c in mock_time.sleep.call_args_list] == [1.0, 2.0]

    def test_gives_up_after_max_retries(self):
        with patch("lumora.llm.openai_provider.OpenAI") as MockOpenAI, \
             patch("lumora.llm.openai_provider.time") as mock_time:
            mock_client = MagicMock()
            MockOpenAI.return_value = mock_client
            mock_time.monotonic.return_value = 0.0
            mock_client.chat.completions.create.side_effect = APITimeoutError(request=MagicMock())

            provider = OpenAIProvider(api_key="k", max_retries=2)
            with pytest.raises(APITimeoutError):
                provider.complete("test")

        assert mock_client.chat.completions.create.call_count == 2
        assert mock_time.sleep.call_count == 1


class TestRouter:
    def test_returns_openai_provider_for_risk_role(self):
        with patch("lumora.llm.openai_provider.OpenAI"):
            provider = get_llm_provider(role=ModelRole.RISK, settings=_make_settings(llm_model_risk="gpt-4o"))
        assert isinstance(provider, OpenAIProvider)
        assert provider.model == "gpt-4o"

    def test_caches_provider(self):
        with patch("lumora.llm.openai_provider.OpenAI"):
            s = _make_settings()
            p1 = get_llm_provider(settings=s)
            p2 = get_llm_provider(settings=s)
        assert p1 is p2

    def test_raises_for_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown LLM provider"):
            get_llm_provider(settings=_make_settings(llm_provider="anthropic"))

    def test_raises_when_api_key_missing(self):
        with pytest.raises(ValueError, match="LLM_API_KEY is required"):
            get_llm_provider(settings=_make_settings(llm_api_key=None))

    def test_router_passes_timeout_and_retries(self):
        with patch("lumora.llm.openai_provider.OpenAI") as MockOpenAI:
            s = _make_settings(llm_timeout=90.0, llm_max_retries=5)
            provider = get_llm_provider(settings=s)
        assert MockOpenAI.call_args.kwargs["timeout"] == 90.0
        assert provider.max_retries == 5
