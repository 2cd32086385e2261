"""Application settings for the zone monitor service."""
from __future__ import annotations

from functools import lru_cache
import json
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strongly typed runtime configuration sourced from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="MONITOR_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    monitor_url: str = Field(
        default="http://localhost:8080/trades/monitor",
        description="Aggregated trade-monitor endpoint polled on every refresh.",
    )
    refresh_interval_sec: float = Field(
        default=60.0,
        description="Fixed polling cadence in seconds.",
    )
    request_timeout_sec: Optional[float] = Field(
        default=None,
        description="Optional httpx timeout for the upstream call. None disables it.",
    )
    position_scale: float = Field(
        default=100.0,
        description="Multiplier turning log_position fractions into percent before bucketing.",
    )
    count_axis_step: int = Field(default=20, ge=1, description="Tick step for the zone count axis.")

    host: str = Field(default="0.0.0.0", description="Bind address for the HTTP service.")
    port: int = Field(default=8010, description="Bind port for the HTTP service.")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"], description="Allowed CORS origins.")

    log_level: str = Field(default="INFO", description="Application log level.")
    log_to_file: bool = Field(default=False, description="Also write logs to logs/monitor_YYYYMMDD.log.")
    metrics_enabled: bool = Field(default=True, description="Expose Prometheus metrics endpoint.")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _coerce_origins(cls, value):
        if value in (None, "", [], ()):
            return []
        if isinstance(value, str):
            raw = value.strip()
            if not raw:
                return []
            try:
                parsed = json.loads(raw)
                value = parsed if isinstance(parsed, list) else [raw]
            except json.JSONDecodeError:
                value = [part.strip() for part in raw.split(",") if part.strip()]
        if isinstance(value, (set, tuple)):
            value = list(value)
        if not isinstance(value, list):
            raise ValueError("cors_origins must be a list of strings")
        return [str(item).strip() for item in value if str(item).strip()]

    @field_validator("refresh_interval_sec")
    @classmethod
    def _validate_interval(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("refresh_interval_sec must be positive")
        return value

    @field_validator("position_scale")
    @classmethod
    def _validate_scale(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("position_scale must be positive")
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance to avoid repeated environment parsing."""

    return Settings()
