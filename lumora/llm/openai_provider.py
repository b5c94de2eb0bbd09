"""
OpenAI LLM provider implementation.

Uses the openai Python SDK (>=1.0.0) with synchronous client.
Retries with exponential backoff on rate-limit, timeout and connection errors.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from openai import APIConnectionError, APIError, APITimeoutError, OpenAI, RateLimitError

from lumora.llm.provider import LLMProvider

logger = logging.getLogger(__name__)

INITIAL_BACKOFF = 1.0  # seconds
BACKOFF_MULTIPLIER = 2.0

_RETRYABLE_ERRORS = (RateLimitError, APITimeoutError, APIConnectionError)


class OpenAIProvider(LLMProvider):
    """Concrete LLM provider backed by the OpenAI chat completions API."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        timeout: float = 60.0,
        max_retries: int = 3,
    ) -> None:
        self.model = model
        self.timeout = timeout
        self.max_retries = max_retries
        self._client = OpenAI(api_key=api_key, timeout=timeout)

    def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        **kwargs: Any,
    ) -> str:
        """Send prompt to OpenAI and return the completion text.

        Supported kwargs:
            temperature (float): Sampling temperature (default 0.3).
            max_tokens (int): Maximum tokens in the response.
            response_format (dict): E.g. {"type": "json_object"} for JSON mode.
        """
        messages: list[dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        create_kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": kwargs.get("temperature", 0.3),
        }
        for key in ("max_tokens", "response_format"):
            if key in kwargs:
                create_kwargs[key] = kwargs[key]

        return self._call_with_retry(create_kwargs)

    def _call_with_retry(self, create_kwargs: dict[str, Any]) -> str:
        """Call the API, backing off exponentially on retryable errors."""
        backoff = INITIAL_BACKOFF

        for attempt in range(1, self.max_retries + 1):
            try:
                start = time.monotonic()
                response = self._client.chat.completions.create(**create_kwargs)
                elapsed = time.monotonic() - start

                usage = response.usage
                logger.info(
                    "LLM call: model=%s tokens_in=%d tokens_out=%d latency=%.2fs",
                    create_kwargs["model"],
                    usage.prompt_tokens if usage else 0,
                    usage.completion_tokens if usage else 0,
                    elapsed,
                )
                return response.choices[0].message.content or ""

            except _RETRYABLE_ERRORS as exc:
                if attempt == self.max_retries:
                    logger.error(
                        "OpenAI retryable error: giving up after %d attempts: %s",
                        self.max_retries,
                        exc,
                    )
                    raise
                logger.warning(
                    "OpenAI %s: retry %d/%d in %.1fs",
                    type(exc).__name__,
                    attempt,
                    self.max_retries,
                    backoff,
                )
                time.sleep(backoff)
                backoff *= BACKOFF_MULTIPLIER

            except APIError as exc:
                logger.error("OpenAI API error: %s", exc)
                raise

        raise RuntimeError("max_retries must be at least 1")
