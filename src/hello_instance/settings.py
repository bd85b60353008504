"""Application-wide configuration helpers."""

from functools import lru_cache
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

DEFAULT_MESSAGE_INTERVAL = 1
DEFAULT_RESPONSE_DELAY_INTERVAL = 0


class LoggingSettings(BaseSettings):
    """Settings needed before the rest of the configuration is known to be valid."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", validation_alias="LOG_LEVEL"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value


class Settings(LoggingSettings):
    """Typed settings bound to the instance's environment variables."""

    project_id: str = Field(
        validation_alias="PROJECT_ID",
        min_length=1,
        description="Google Cloud project hosting the status topic.",
    )
    topic_name: str = Field(
        validation_alias="TOPIC_NAME",
        min_length=1,
        description="Pub/Sub topic receiving status messages.",
    )
    message_interval: int = Field(
        default=DEFAULT_MESSAGE_INTERVAL,
        validation_alias="MESSAGE_INTERVAL",
        description="Seconds between periodic status publishes.",
    )
    response_delay_interval: int = Field(
        default=DEFAULT_RESPONSE_DELAY_INTERVAL,
        validation_alias="RESPONSE_DELAY_INTERVAL",
        description="Seconds of artificial latency added to every request.",
    )
    service_name: str = Field(default="hello-instance", validation_alias="SERVICE_NAME")
    metrics_path: str = Field(default="/metrics", validation_alias="METRICS_PATH")
    host: str = Field(default="0.0.0.0", validation_alias="HOST")
    port: int = Field(default=8080, validation_alias="PORT")

    @field_validator("project_id", "topic_name", mode="before")
    @classmethod
    def _strip_identifier(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("message_interval", mode="before")
    @classmethod
    def _fallback_message_interval(cls, value: Any) -> int:
        return _int_or_default(value, DEFAULT_MESSAGE_INTERVAL, minimum=1)

    @field_validator("response_delay_interval", mode="before")
    @classmethod
    def _fallback_response_delay(cls, value: Any) -> int:
        return _int_or_default(value, DEFAULT_RESPONSE_DELAY_INTERVAL, minimum=0)


def _int_or_default(value: Any, default: int, *, minimum: int) -> int:
    """Parse an integer setting, falling back to ``default`` on anything unusable."""

    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    if parsed < minimum:
        return default
    return parsed


@lru_cache
def get_settings() -> Settings:
    """Cache Settings to avoid re-parsing env on every injection."""

    return Settings()


@lru_cache
def get_logging_settings() -> LoggingSettings:
    return LoggingSettings()
