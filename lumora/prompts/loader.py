"""
Prompt template loader.

Loads .md prompt templates from lumora/prompts/ and renders them by
substituting {{VARIABLE_NAME}} placeholders.
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from pathlib import Path

logger = logging.getLogger(__name__)

_PROMPTS_DIR = Path(__file__).parent

# Pattern to match {{VARIABLE_NAME}} placeholders
_PLACEHOLDER_RE = re.compile(r"\{\{([A-Z_][A-Z0-9_]*)\}\}")


@lru_cache(maxsize=16)
def load_prompt(template_name: str) -> str:
    """Load a prompt template by name (file name without the .md extension).

    Raises:
        FileNotFoundError: If the template file does not exist.
    """
    path = _PROMPTS_DIR / f"{template_name}.md"
    if not path.is_file():
        available = sorted(p.stem for p in _PROMPTS_DIR.glob("*.md"))
        raise FileNotFoundError(
            f"Prompt template '{template_name}' not found at {path}. "
            f"Available templates: {available}"
        )
    return path.read_text(encoding="utf-8")


def render_prompt(template_name: str, **variables: str) -> str:
    """Load a template and fill in {{VARIABLE}} placeholders.

    Uses plain string replacement (not str.format) so JSON examples inside
    templates are left alone.

    Raises:
        FileNotFoundError: If the template file does not exist.
        ValueError: If placeholders remain unfilled after rendering.
    """
    template = load_prompt(template_name)
    placeholders = set(_PLACEHOLDER_RE.findall(template))
    for var_name in variables:
        if var_name not in placeholders:
            logger.warning(
                "Variable '%s' provided but not found in template '%s'",
                var_name,
                template_name,
            )
    rendered = template
    for var_name, var_value in variables.items():
        rendered = rendered.replace(f"{{{{{var_name}}}}}", str(var_value))
    remaining = _PLACEHOLDER_RE.findall(rendered)
    if remaining:
        raise ValueError(
            f"Unfilled placeholders in template '{template_name}': "
            f"{sorted(set(remaining))}. "
            f"Provide these as keyword arguments."
        )
    return rendered
