import os
from collections.abc import Mapping

import pydantic
from pydantic import BaseModel, Field, model_validator

from defi_risk.errors import ValidationError

COINGECKO_BASE_URL = "https://api.coingecko.com/api/v3"
COINCAP_BASE_URL = "https://api.coincap.io/v2"


class RiskThresholds(BaseModel):
    var_pct_warning: float = Field(default=0.03, ge=0.0)
    var_pct_critical: float = Field(default=0.05, ge=0.0)
    vol_warning: float = Field(default=0.6, ge=0.0)
    vol_critical: float = Field(default=0.8, ge=0.0)
    hhi_warning: float = Field(default=0.35, ge=0.0)
    hhi_critical: float = Field(default=0.5, ge=0.0)
    drawdown_critical: float = Field(default=0.15, ge=0.0)


class RateLimitConfig(BaseModel):
    capacity: int = Field(default=10, ge=1)
    refill_per_second: float = Field(default=0.33, gt=0.0)


class AppConfig(BaseModel):
    portfolio_path: str = "./portfolio.json"
    history_path: str = "./analysis-history.json"
    monitor_interval_seconds: float = Field(default=60, gt=0)
    price_feed_concurrency: int = Field(default=3, ge=1)
    max_retries: int = Field(default=3, ge=0)
    retry_base_delay: float = Field(default=1.0, ge=0.0)
    history_days: int = Field(default=30, ge=1)

    coingecko_base_url: str = COINGECKO_BASE_URL
    coincap_base_url: str = COINCAP_BASE_URL
    coincap_api_key: str | None = None

    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    thresholds: RiskThresholds = Field(default_factory=RiskThresholds)

    @model_validator(mode="after")
    def _check_threshold_order(self) -> "AppConfig":
        t = self.thresholds
        for warn, crit in (
            ("var_pct_warning", "var_pct_critical"),
            ("vol_warning", "vol_critical"),
            ("hhi_warning", "hhi_critical"),
        ):
            if getattr(t, warn) > getattr(t, crit):
                raise ValueError(f"{warn} must not exceed {crit}")
        return self

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AppConfig":
        """Build the config from environment variables, defaults for unset ones."""
        env = os.environ if environ is None else environ

        def pick(mapping: dict[str, str]) -> dict[str, str]:
            return {
                field: env[var] for var, field in mapping.items() if env.get(var)
            }

        raw: dict = pick(_ENV_FIELDS)
        raw["rate_limit"] = pick(_ENV_RATE_LIMIT)
        raw["thresholds"] = pick(_ENV_THRESHOLDS)
        try:
            return cls.model_validate(raw)
        except pydantic.ValidationError as e:
            raise ValidationError("Invalid configuration", cause=e) from e


_ENV_FIELDS: dict[str, str] = {
    "PORTFOLIO_PATH": "portfolio_path",
    "HISTORY_PATH": "history_path",
    "MONITOR_INTERVAL": "monitor_interval_seconds",
    "PRICE_FEED_CONCURRENCY": "price_feed_concurrency",
    "MAX_RETRIES": "max_retries",
    "RETRY_BASE_DELAY": "retry_base_delay",
    "HISTORY_DAYS": "history_days",
    "COINGECKO_BASE_URL": "coingecko_base_url",
    "COINCAP_BASE_URL": "coincap_base_url",
    "COINCAP_API_KEY": "coincap_api_key",
}

_ENV_RATE_LIMIT: dict[str, str] = {
    "RATE_LIMIT_CAPACITY": "capacity",
    "RATE_LIMIT_REFILL_PER_SECOND": "refill_per_second",
}

_ENV_THRESHOLDS: dict[str, str] = {
    "THRESHOLD_VAR_WARNING": "var_pct_warning",
    "THRESHOLD_VAR_CRITICAL": "var_pct_critical",
    "THRESHOLD_VOL_WARNING": "vol_warning",
    "THRESHOLD_VOL_CRITICAL": "vol_critical",
    "THRESHOLD_HHI_WARNING": "hhi_warning",
    "THRESHOLD_HHI_CRITICAL": "hhi_critical",
    "THRESHOLD_DRAWDOWN_CRITICAL": "drawdown_critical",
}
