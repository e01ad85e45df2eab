"""Configuration for the workflow engine.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOG_FORMATS = {"json", "text"}


class EngineSettings(BaseSettings):
    """Settings for the workflow engine and CLI.

    Environment variables:
    - LOG_LEVEL                     (optional)
    - TASKWEAVE_LOG_FORMAT          (optional, json | text)
    - TASKWEAVE_PAUSE_POLL_SECONDS  (optional)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `EngineSettings(_env_file=path_to_env)`.
    """

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    log_format: str = Field(
        default="json",
        validation_alias="TASKWEAVE_LOG_FORMAT",
        description="Log output format: 'json' (structured) or 'text'",
    )

    pause_poll_interval: float = Field(
        default=0.1,
        gt=0,
        validation_alias="TASKWEAVE_PAUSE_POLL_SECONDS",
        description=(
            "Upper bound in seconds on how long a paused run sleeps before "
            "re-checking its state when no resume/cancel wakeup arrives"
        ),
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not level:
            raise ValueError("LOG_LEVEL must not be empty")
        return level

    @field_validator("log_format")
    @classmethod
    def _check_format(cls, value: str) -> str:
        fmt = value.strip().lower()
        if fmt not in _LOG_FORMATS:
            raise ValueError(f"TASKWEAVE_LOG_FORMAT must be one of {sorted(_LOG_FORMATS)}")
        return fmt
