"""
LLM provider abstraction.

The LLM is a reasoning oracle only. It may:
- cluster suspicious scans into geographic hotspots
- assign a risk score to each hotspot
- phrase an advisory for regulators

It may NOT: write to the database, change verification outcomes, or decide
manufacturer trust state.
"""

from abc import ABC, abstractmethod
from typing import Any


class LLMProvider(ABC):
    """Abstract base for LLM providers."""

    @abstractmethod
    def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        **kwargs: Any,
    ) -> str:
        """Send prompt and return completion text."""
        ...
