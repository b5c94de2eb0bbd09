"""Risk oracle: external reasoning service that clusters suspicious scans into hotspots.

The oracle only reasons over the sample it is given. Its raw output is
untrusted: `parse_predictions` validates shape and bounds and degrades any
malformed response to an empty list.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any

from openai import OpenAIError
from pydantic import ValidationError

from lumora.errors import OracleDegradedError
from lumora.llm.provider import LLMProvider
from lumora.prompts.loader import render_prompt
from lumora.schemas.hotspots import HotspotPrediction

logger = logging.getLogger(__name__)

HOTSPOT_TASK = (
    "Predict high-risk zones (latitude/longitude) for potential counterfeit activity, "
    "assign each zone a risk score between 0 and 1, and suggest actionable insights "
    "for regulatory focus."
)


class RiskOracle(ABC):
    """Abstract reasoning oracle over privacy-filtered scan records."""

    @abstractmethod
    def analyze(self, records: list[dict[str, Any]], task: str) -> Any:
        """Return the oracle's raw answer (JSON text or already-decoded data).

        Raises:
            OracleDegradedError: The oracle could not be reached or failed.
        """
        ...


class LLMRiskOracle(RiskOracle):
    """Risk oracle backed by an LLMProvider in JSON mode."""

    def __init__(self, llm: LLMProvider, template: str = "hotspot_analysis_v1") -> None:
        self.llm = llm
        self.template = template

    def analyze(self, records: list[dict[str, Any]], task: str) -> Any:
        try:
            prompt = render_prompt(
                self.template,
                TASK_DESCRIPTION=task,
                RECORDS_JSON=json.dumps(records, separators=(",", ":")),
            )
        except (FileNotFoundError, ValueError) as exc:
            logger.error("Risk oracle prompt unusable: template=%s error=%s", self.template, exc)
            raise OracleDegradedError(str(exc)) from exc
        try:
            return self.llm.complete(
                prompt,
                response_format={"type": "json_object"},
                temperature=0.2,
            )
        except OpenAIError as exc:
            logger.warning("Risk oracle unavailable: %s", exc)
            raise OracleDegradedError(str(exc)) from exc


def get_risk_oracle() -> RiskOracle:
    """Default oracle wired to the configured LLM provider."""
    from lumora.llm.router import ModelRole, get_llm_provider

    return LLMRiskOracle(get_llm_provider(role=ModelRole.RISK))


def _decode(raw: Any) -> Any:
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    if isinstance(raw, str):
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return None
    return raw


def parse_predictions(raw: Any) -> list[HotspotPrediction]:
    """Validate oracle output into predictions.

    Accepts a bare list or an object wrapping the list under ``hotspots`` or
    ``predictions``. Anything else is treated as empty. Items that fail
    validation are dropped individually.
    """
    data = _decode(raw)
    if isinstance(data, dict):
        data = data.get("hotspots", data.get("predictions"))
    if not isinstance(data, list):
        logger.warning("Risk oracle returned malformed output; treating as empty")
        return []

    predictions: list[HotspotPrediction] = []
    for item in data:
        try:
            predictions.append(HotspotPrediction.model_validate(item))
        except ValidationError:
            logger.warning("Dropping invalid hotspot prediction: %r", item)
    return predictions
