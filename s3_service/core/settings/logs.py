"""Settings for the root logger used by the client and the CLI."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .yaml_sources import create_logging_yaml_source

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LoggingSettings(BaseSettings):
    """Where log records go and how they are rendered.

    Read from LOG_* variables and conf/logging.yaml.
    Example: LOG_LEVEL=DEBUG, LOG_JSON_LOGS=true, LOG_FILE_PATH=logs/s3.jsonl
    """

    service_name: str = Field(
        default="s3-service",
        description="Value of the static `service` field on JSON records",
    )

    level: LogLevel = Field(
        default="INFO",
        description="Lowest level the root logger passes on",
    )

    json_logs: bool = Field(
        default=False,
        description="Write one JSON object per record instead of plain text",
    )

    console_enabled: bool = Field(
        default=True,
        description="Write records to stderr",
    )

    console_level: LogLevel | None = Field(
        default=None,
        description="Level for the stderr handler; falls back to `level`",
    )

    file_path: Path | None = Field(
        default=None,
        description="Rotating log file; unset means no file output",
    )

    file_max_bytes: int = Field(
        default=10_485_760,  # 10 MiB
        ge=1024,
        le=1_073_741_824,
        description="Rotate the log file once it reaches this many bytes",
    )

    file_backup_count: int = Field(
        default=5,
        ge=0,
        le=100,
        description="Rotated files kept next to the active one",
    )

    include_context: bool = Field(
        default=True,
        description="Copy set_log_context() fields onto each record",
    )

    capture_warnings: bool = Field(
        default=True,
        description="Route `warnings.warn` through the py.warnings logger",
    )

    def to_logging_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``configure_logging``."""
        return {
            "service_name": self.service_name,
            "log_level": self.level,
            "json_logs": self.json_logs,
            "console_enabled": self.console_enabled,
            "console_level": self.console_level or self.level,
            "file_path": str(self.file_path) if self.file_path else None,
            "file_max_bytes": self.file_max_bytes,
            "file_backup_count": self.file_backup_count,
            "include_context": self.include_context,
            "capture_warnings": self.capture_warnings,
        }

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: Any,
        env_settings: Any,
        dotenv_settings: Any,
        file_secret_settings: Any,
    ) -> tuple[Any, ...]:
        """Customize settings source precedence: init > yaml > env > dotenv > secrets."""
        return (
            init_settings,
            create_logging_yaml_source(settings_cls),
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )
