"""Tests for prompt template loader."""

import json

import pytest

from lumora.prompts.loader import _PLACEHOLDER_RE, load_prompt, render_prompt


def test_hotspot_template_placeholders() -> None:
    template = load_prompt("hotspot_analysis_v1")
    assert set(_PLACEHOLDER_RE.findall(template)) == {"TASK_DESCRIPTION", "RECORDS_JSON"}


def test_render_fills_placeholders_and_keeps_json_braces() -> None:
    records = [{"codeValue": "LUM-X", "latitude": 6.5, "longitude": 3.4}]
    rendered = render_prompt(
        "hotspot_analysis_v1",
        TASK_DESCRIPTION="Find hotspots",
        RECORDS_JSON=json.dumps(records),
    )
    assert "Find hotspots" in rendered
    assert '"codeValue": "LUM-X"' in rendered
    assert "{{" not in rendered


def test_render_raises_on_missing_variable() -> None:
    with pytest.raises(ValueError, match="RECORDS_JSON"):
        render_prompt("hotspot_analysis_v1", TASK_DESCRIPTION="x")


def test_render_warns_on_unused_variable(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level("WARNING"):
        render_prompt("hotspot_analysis_v1", TASK_DESCRIPTION="x", RECORDS_JSON="[]", EXTRA="y")
    assert "EXTRA" in caplog.text


def test_load_unknown_template_raises() -> None:
    with pytest.raises(FileNotFoundError, match="Available templates"):
        load_prompt("does_not_exist_v9")
