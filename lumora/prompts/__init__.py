"""Prompt templates for the risk oracle."""

from lumora.prompts.loader import load_prompt, render_prompt

__all__ = ["load_prompt", "render_prompt"]
