"""
Application configuration. Loads from environment variables.
Secrets and sensitive config must never be hardcoded.
"""

import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from dotenv import load_dotenv

load_dotenv()
from functools import lru_cache
from typing import Optional


@lru_cache(maxsize=1)
def get_settings() -> "Settings":
    """Return cached settings instance."""
    return Settings()


class Settings:
    """Application settings loaded from environment."""

    # App
    app_name: str = "Lumora"
    debug: bool = False

    # Database (postgresql+psycopg for psycopg3; use postgresql:// for psycopg2)
    database_url: str = "postgresql+psycopg://localhost:5432/lumora_dev"
    db_connect_timeout: int = 10  # seconds

    # Security: shared secret for /internal/* and gateway-forwarded identities
    internal_job_token: str = ""

    # LLM (risk oracle)
    llm_provider: str = "openai"
    llm_api_key: Optional[str] = None
    llm_model: str = "gpt-4o-mini"
    llm_model_risk: str = "gpt-4o-mini"
    llm_timeout: float = 60.0
    llm_max_retries: int = 3

    # Quota: daily code allowance per plan
    quota_basic_daily: int = 50
    quota_premium_daily: int = 10000  # effectively unlimited
    quota_timezone: str = "UTC"

    # Codes
    code_prefix: str = "LUM-"
    max_codes_per_request: int = 10000

    # Forensics (certificate forgery detection)
    forensics_tamper_high: float = 20.0
    forensics_tamper_moderate: float = 10.0
    forensics_min_text_length: int = 10
    forensics_max_attempts: int = 3
    forensics_backoff_seconds: float = 1.0
    forensics_visibility_timeout: int = 300  # seconds before an in-progress job is reclaimable
    forensics_poll_interval: float = 5.0

    # Hotspots
    hotspot_window_days: int = 30
    hotspot_sample_limit: int = 500
    external_sample_limit: int = 50

    # Coarse geo capture for fraud outcomes (decimal places kept)
    coarse_geo_precision: int = 1

    def __init__(self) -> None:
        self.app_name = os.getenv("APP_NAME", self.app_name)
        self.debug = os.getenv("DEBUG", "false").lower() == "true"

        default_user = os.getenv("PGUSER") or os.getenv("USER") or "postgres"
        default_url = (
            f"postgresql+psycopg://{default_user}:"
            f"{os.getenv('PGPASSWORD', '')}@"
            f"{os.getenv('PGHOST', 'localhost')}:"
            f"{os.getenv('PGPORT', '5432')}/"
            f"{os.getenv('PGDATABASE', 'lumora_dev')}"
        )
        raw_url = os.getenv("DATABASE_URL", default_url)
        # Ensure psycopg3 driver if URL uses generic postgresql://
        if raw_url.startswith("postgresql://") and not raw_url.startswith("postgresql+psycopg"):
            raw_url = raw_url.replace("postgresql://", "postgresql+psycopg://", 1)
        self.database_url = raw_url
        self.db_connect_timeout = int(os.getenv("DB_CONNECT_TIMEOUT", str(self.db_connect_timeout)))

        self.internal_job_token = os.getenv("INTERNAL_JOB_TOKEN", "")

        self.llm_provider = os.getenv("LLM_PROVIDER", self.llm_provider)
        self.llm_api_key = os.getenv("LLM_API_KEY")
        self.llm_model = os.getenv("LLM_MODEL", self.llm_model)
        self.llm_model_risk = os.getenv("LLM_MODEL_RISK") or os.getenv("LLM_MODEL") or self.llm_model_risk
        self.llm_timeout = float(os.getenv("LLM_TIMEOUT", str(self.llm_timeout)))
        self.llm_max_retries = int(os.getenv("LLM_MAX_RETRIES", str(self.llm_max_retries)))

        self.quota_basic_daily = int(os.getenv("QUOTA_BASIC_DAILY", str(self.quota_basic_daily)))
        self.quota_premium_daily = int(
            os.getenv("QUOTA_PREMIUM_DAILY", str(self.quota_premium_daily))
        )
        self.quota_timezone = os.getenv("QUOTA_TIMEZONE", self.quota_timezone)

        self.code_prefix = os.getenv("CODE_PREFIX", self.code_prefix)
        self.max_codes_per_request = int(
            os.getenv("MAX_CODES_PER_REQUEST", str(self.max_codes_per_request))
        )

        self.forensics_tamper_high = float(
            os.getenv("FORENSICS_TAMPER_HIGH", str(self.forensics_tamper_high))
        )
        self.forensics_tamper_moderate = float(
            os.getenv("FORENSICS_TAMPER_MODERATE", str(self.forensics_tamper_moderate))
        )
        self.forensics_min_text_length = int(
            os.getenv("FORENSICS_MIN_TEXT_LENGTH", str(self.forensics_min_text_length))
        )
        self.forensics_max_attempts = int(
            os.getenv("FORENSICS_MAX_ATTEMPTS", str(self.forensics_max_attempts))
        )
        self.forensics_backoff_seconds = float(
            os.getenv("FORENSICS_BACKOFF_SECONDS", str(self.forensics_backoff_seconds))
        )
        self.forensics_visibility_timeout = int(
            os.getenv("FORENSICS_VISIBILITY_TIMEOUT", str(self.forensics_visibility_timeout))
        )
        self.forensics_poll_interval = float(
            os.getenv("FORENSICS_POLL_INTERVAL", str(self.forensics_poll_interval))
        )

        self.hotspot_window_days = int(
            os.getenv("HOTSPOT_WINDOW_DAYS", str(self.hotspot_window_days))
        )
        self.hotspot_sample_limit = int(
            os.getenv("HOTSPOT_SAMPLE_LIMIT", str(self.hotspot_sample_limit))
        )
        self.external_sample_limit = int(
            os.getenv("EXTERNAL_SAMPLE_LIMIT", str(self.external_sample_limit))
        )
        self.coarse_geo_precision = int(
            os.getenv("COARSE_GEO_PRECISION", str(self.coarse_geo_precision))
        )


# ── Immutable policies resolved once from Settings ──────────────────


@dataclass(frozen=True)
class QuotaPolicy:
    """Daily code-creation caps keyed by manufacturer plan."""

    limits: Mapping[str, int] = field(
        default_factory=lambda: MappingProxyType({"BASIC": 50, "PREMIUM": 10000})
    )
    default_plan: str = "BASIC"
    timezone: str = "UTC"

    def limit_for(self, plan: str | None) -> int:
        """Return the daily cap for *plan*; unknown plans get the default plan's cap."""
        key = (plan or "").upper()
        if key in self.limits:
            return self.limits[key]
        return self.limits[self.default_plan]


@dataclass(frozen=True)
class ForensicsPolicy:
    """Thresholds and retry policy for certificate forgery scoring."""

    tamper_high: float = 20.0
    tamper_moderate: float = 10.0
    min_text_length: int = 10
    fake_threshold: float = 0.7
    suspicious_threshold: float = 0.25
    max_attempts: int = 3
    backoff_seconds: float = 1.0
    visibility_timeout: int = 300


@lru_cache(maxsize=1)
def get_quota_policy() -> QuotaPolicy:
    """Build the quota policy from settings (cached for the process lifetime)."""
    s = get_settings()
    return QuotaPolicy(
        limits=MappingProxyType(
            {"BASIC": s.quota_basic_daily, "PREMIUM": s.quota_premium_daily}
        ),
        timezone=s.quota_timezone,
    )


@lru_cache(maxsize=1)
def get_forensics_policy() -> ForensicsPolicy:
    """Build the forensics policy from settings (cached for the process lifetime)."""
    s = get_settings()
    return ForensicsPolicy(
        tamper_high=s.forensics_tamper_high,
        tamper_moderate=s.forensics_tamper_moderate,
        min_text_length=s.forensics_min_text_length,
        max_attempts=s.forensics_max_attempts,
        backoff_seconds=s.forensics_backoff_seconds,
        visibility_timeout=s.forensics_visibility_timeout,
    )
