"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="priority-alerts", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Database ==========
    use_database: bool = Field(
        default=False,
        description="Persist alerts through SQLAlchemy instead of the in-memory store"
    )
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/alerts",
        description="Database connection URL (async driver)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== Alert Rules ==========
    alert_rules_path: Path = Field(
        default=Path("alert_rules.yaml"),
        description="Path to the alert rule YAML file"
    )

    # ========== Urgency Classifier (LLM) ==========
    openai_api_key: Optional[str] = Field(
        default=None,
        description="API key for the OpenAI-compatible classifier endpoint"
    )
    llm_base_url: Optional[str] = Field(
        default=None,
        description="Override base URL for OpenAI-compatible providers"
    )
    llm_model: str = Field(
        default="gpt-4o-mini",
        description="Model used for urgency classification"
    )
    llm_temperature: float = Field(
        default=0.3,
        description="Sampling temperature for classification",
        ge=0.0,
        le=1.0
    )
    llm_max_tokens: int = Field(
        default=500,
        description="Max tokens for the classification answer",
        ge=1,
        le=8000
    )
    mock_llm: bool = Field(
        default=False,
        description="Use mock LLM responses for testing (no API calls)"
    )
    classifier_timeout_seconds: float = Field(
        default=10.0,
        description="Upper bound on a single classifier call",
        gt=0,
        le=120
    )
    classifier_cache_ttl_seconds: int = Field(
        default=3600,
        description="How long classifier answers are reused for identical text",
        ge=0
    )
    classifier_cache_maxsize: int = Field(
        default=1024,
        description="Maximum cached classifier answers",
        ge=1
    )

    # ========== Broadcasting ==========
    broadcaster_url: Optional[str] = Field(
        default=None,
        description="Realtime gateway endpoint that receives published events"
    )
    broadcaster_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for broadcaster HTTP calls",
        ge=0.1,
        le=30
    )
    broadcaster_max_retries: int = Field(
        default=3,
        description="Delivery attempts per event",
        ge=1,
        le=10
    )

    # ========== Batch Processing ==========
    batch_concurrency: int = Field(
        default=8,
        description="Items processed concurrently by process_batch",
        ge=1
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# ========== Constants ==========

class UrgencyLevel(str, Enum):
    """Ordered urgency levels shared by the keyword ladder and the classifier."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Numeric rank used for threshold comparisons (low=1 ... critical=4)."""
        return URGENCY_RANK[self]

    @classmethod
    def parse(cls, value: str) -> "UrgencyLevel":
        """
        Parse a free-text urgency label.

        "urgent" is the keyword ladder's name for the top level and maps
        to CRITICAL.

        Raises:
            ValueError: If the label is not a known urgency
        """
        if isinstance(value, cls):
            return value
        label = str(value).strip().lower()
        if label == "urgent":
            return cls.CRITICAL
        return cls(label)


URGENCY_RANK = {
    UrgencyLevel.LOW: 1,
    UrgencyLevel.MEDIUM: 2,
    UrgencyLevel.HIGH: 3,
    UrgencyLevel.CRITICAL: 4,
}

URGENCY_LEVELS = [
    UrgencyLevel.CRITICAL, UrgencyLevel.HIGH,
    UrgencyLevel.MEDIUM, UrgencyLevel.LOW
]


class AlertType(str, Enum):
    """Kinds of tracked alerts."""
    SOCIAL_MEDIA = "social_media"
    DISASTER = "disaster"
    RESOURCE = "resource"
    SYSTEM = "system"
    WEATHER = "weather"


class AlertEvent:
    """Event names published through the broadcaster."""
    PRIORITY_ALERT = "priority_alert"
    ALERT_ESCALATED = "alert_escalated"
    ALERT_RESOLVED = "alert_resolved"
    ALERT_ACKNOWLEDGED = "alert_acknowledged"
    USER_ALERT_TOPIC = "user:{user_id}:alert"


ESCALATED_TITLE_PREFIX = "ESCALATED: "
ALERT_TITLE_PREFIX = "Priority Alert: "
MESSAGE_EXCERPT_LENGTH = 100
