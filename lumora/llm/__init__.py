"""LLM provider abstraction. The LLM is a reasoning oracle, never an orchestrator."""

from lumora.llm.openai_provider import OpenAIProvider
from lumora.llm.provider import LLMProvider
from lumora.llm.router import ModelRole, get_llm_provider

__all__ = ["LLMProvider", "ModelRole", "OpenAIProvider", "get_llm_provider"]
