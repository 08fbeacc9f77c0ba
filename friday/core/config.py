from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal, Mapping

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClassifierSettings(BaseModel):
    unknown_confidence: float = Field(0.1, ge=0.0, le=1.0, description="Confidence reported for unmatched utterances.")
    confidence_base: float = Field(
        0.4,
        ge=0.0,
        le=1.0,
        description="Offset added to the matched-span ratio before clamping.",
    )
    min_confidence: float = Field(0.5, ge=0.0, le=1.0)
    max_confidence: float = Field(0.95, ge=0.0, le=1.0)


class PlanningSettings(BaseModel):
    per_step_cost_ms: int = Field(1000, ge=0, description="Fixed per-step cost used for plan duration estimates.")


class RateLimitRule(BaseModel):
    capacity: int = Field(100, ge=1, description="Maximum number of requests permitted during the window.")
    window_seconds: int = Field(300, ge=1, description="Number of seconds the sliding window covers.")


class GuardrailSettings(BaseModel):
    enabled: bool = Field(True)
    restricted_intents: list[str] = Field(
        default_factory=lambda: ["approval.process", "decision.make"],
        description="Intent types that require elevated-role verification.",
    )
    financial_actions: list[str] = Field(default_factory=lambda: ["submit-expense", "process-approval"])
    external_connectors: list[str] = Field(default_factory=lambda: ["servicenow", "workday"])
    rate_limit: RateLimitRule = Field(default_factory=RateLimitRule)  # type: ignore[arg-type]


class ExecutorSettings(BaseModel):
    step_timeout_seconds: float | None = Field(
        30.0,
        gt=0.0,
        description="Upper bound for a single step; None disables the timeout.",
    )


class MemorySettings(BaseModel):
    max_recent_activity: int = Field(50, ge=1)
    max_history: int = Field(50, ge=1)
    lock_stripes: int = Field(
        64,
        ge=1,
        description="Locks shared across callers; one caller always maps to the same lock.",
    )
    default_preferences: dict[str, Any] = Field(
        default_factory=lambda: {"theme": "light", "notifications": True},
    )


class AuditSettings(BaseModel):
    default_query_limit: int = Field(100, ge=1)
    max_query_limit: int = Field(1000, ge=1)


class HttpConnectorSettings(BaseModel):
    base_url: str | None = Field(default=None, description="Base URL of the connector endpoint; unset means not configured.")
    api_key: str | None = Field(default=None, description="Optional API key sent alongside the caller token.")
    api_key_header: str = Field("X-API-Key")
    timeout_seconds: float = Field(15.0, ge=0.1)
    verify_ssl: bool = Field(True)


class ConnectorSettings(BaseModel):
    servicenow: HttpConnectorSettings = Field(default_factory=HttpConnectorSettings)  # type: ignore[arg-type]
    workday: HttpConnectorSettings = Field(default_factory=HttpConnectorSettings)  # type: ignore[arg-type]
    custom_mcp: HttpConnectorSettings = Field(
        default_factory=HttpConnectorSettings,  # type: ignore[arg-type]
        description="When base_url is set, custom tools are dispatched over HTTP instead of the local toolset.",
    )


class ObservabilitySettings(BaseModel):
    prometheus_enabled: bool = Field(True)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    json_logs: bool = Field(True, description="Render logs as JSON lines instead of the console renderer.")


class Settings(BaseSettings):
    environment: Literal["development", "staging", "production", "test"] = "development"
    api_v1_prefix: str = Field("/api")
    classifier: ClassifierSettings = Field(default_factory=ClassifierSettings)  # type: ignore[arg-type]
    planning: PlanningSettings = Field(default_factory=PlanningSettings)  # type: ignore[arg-type]
    guardrails: GuardrailSettings = Field(default_factory=GuardrailSettings)  # type: ignore[arg-type]
    executor: ExecutorSettings = Field(default_factory=ExecutorSettings)  # type: ignore[arg-type]
    memory: MemorySettings = Field(default_factory=MemorySettings)  # type: ignore[arg-type]
    audit: AuditSettings = Field(default_factory=AuditSettings)  # type: ignore[arg-type]
    connectors: ConnectorSettings = Field(default_factory=ConnectorSettings)  # type: ignore[arg-type]
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)  # type: ignore[arg-type]

    frontend_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"],
        description="Origins permitted to access the API via CORS.",
    )

    model_config = SettingsConfigDict(
        env_prefix="FRIDAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def _get_cached_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]


def get_settings(overrides: Mapping[str, Any] | None = None) -> Settings:
    """Return settings, using cached defaults unless overrides are provided."""
    if overrides:
        return Settings(**dict(overrides))
    return _get_cached_settings()
