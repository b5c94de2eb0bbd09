"""
Configuration tests.
"""

import pytest

from lumora.config import (
    ForensicsPolicy,
    QuotaPolicy,
    Settings,
    get_forensics_policy,
    get_quota_policy,
    get_settings,
)


def test_get_settings_returns_settings() -> None:
    settings = get_settings()
    assert isinstance(settings, Settings)
    assert settings.app_name == "Lumora"


def test_database_url_normalised_to_psycopg(monkeypatch: pytest.MonkeyPatch) -> None:
    """A bare postgresql:// URL gets the psycopg3 driver."""
    monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db:5432/lumora")
    settings = Settings()
    assert settings.database_url == "postgresql+psycopg://u:p@db:5432/lumora"


def test_quota_defaults() -> None:
    settings = get_settings()
    assert settings.quota_basic_daily == 50
    assert settings.quota_premium_daily == 10000
    assert settings.code_prefix == "LUM-"


def test_quota_policy_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("QUOTA_BASIC_DAILY", "5")
    monkeypatch.setenv("QUOTA_PREMIUM_DAILY", "500")
    monkeypatch.setenv("QUOTA_TIMEZONE", "Africa/Lagos")
    policy = get_quota_policy()
    assert policy.limit_for("BASIC") == 5
    assert policy.limit_for("premium") == 500
    assert policy.timezone == "Africa/Lagos"


def test_quota_policy_unknown_plan_uses_default() -> None:
    policy = QuotaPolicy()
    assert policy.limit_for("ENTERPRISE") == 50
    assert policy.limit_for(None) == 50


def test_policies_are_immutable() -> None:
    policy = get_quota_policy()
    with pytest.raises(Exception):
        policy.timezone = "Europe/Paris"  # type: ignore[misc]
    with pytest.raises(TypeError):
        policy.limits["BASIC"] = 1  # type: ignore[index]


def test_forensics_policy_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FORENSICS_MAX_ATTEMPTS", "5")
    monkeypatch.setenv("FORENSICS_BACKOFF_SECONDS", "2.5")
    monkeypatch.setenv("FORENSICS_TAMPER_HIGH", "30")
    policy = get_forensics_policy()
    assert policy.max_attempts == 5
    assert policy.backoff_seconds == 2.5
    assert policy.tamper_high == 30.0
    assert policy.fake_threshold == 0.7
    assert policy.suspicious_threshold == 0.25


def test_forensics_policy_defaults() -> None:
    policy = ForensicsPolicy()
    assert (policy.tamper_high, policy.tamper_moderate, policy.min_text_length) == (20.0, 10.0, 10)
    assert policy.max_attempts == 3


def test_llm_model_risk_falls_back_to_llm_model(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("LLM_MODEL_RISK", raising=False)
    monkeypatch.setenv("LLM_MODEL", "gpt-4-turbo")
    settings = Settings()
    assert settings.llm_model_risk == "gpt-4-turbo"
