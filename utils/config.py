from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.error_codes import ERROR_TABLES, normalize_engine
from core.exceptions import ConfigurationError


class AppConfig(BaseSettings):
    """Application configuration loaded from environment variables or .env files."""

    app_env: str = Field(default="dev", validation_alias="APP_ENV")

    db_engine: str = Field(default="mariadb", validation_alias="DB_ENGINE")
    db_host: str = Field(default="localhost", validation_alias="DB_HOST")
    db_port: int = Field(default=3306, validation_alias="DB_PORT")
    db_user: str = Field(default="root", validation_alias="DB_USER")
    db_password: str = Field(default="", validation_alias="DB_PASSWORD")
    db_name: str = Field(default="", validation_alias="DB_NAME")
    db_charset: str = Field(default="utf8mb4", validation_alias="DB_CHARSET")
    db_connect_timeout: int = Field(default=10, validation_alias="DB_CONNECT_TIMEOUT")

    sql_minify: bool = Field(default=False, validation_alias="SQL_MINIFY")
    validate_arguments: int = Field(default=1, ge=0, le=2, validation_alias="VALIDATE_ARGUMENTS")
    log_sql_truncate: int = Field(default=8192, validation_alias="LOG_SQL_TRUNCATE")

    log_file: str = Field(default="database_client.log", validation_alias="LOG_FILE")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    execute_queries: bool = Field(default=True, validation_alias="EXECUTE_QUERIES")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("db_engine")
    @classmethod
    def _known_engine(cls, value: str) -> str:
        engine = normalize_engine(value)
        if engine not in ERROR_TABLES:
            raise ValueError(f"unsupported engine '{value}'; expected one of: {', '.join(ERROR_TABLES)}")
        return engine

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("sql_minify", "execute_queries", mode="before")
    @classmethod
    def _parse_bool(cls, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "y"}
        return bool(value)

    def query_options(self) -> dict:
        return {"sql_minify": self.sql_minify, "validate_arguments": self.validate_arguments}

    def ensure_valid(self) -> None:
        """Raise ConfigurationError if any critical configuration is missing."""
        missing = []
        if not self.db_host:
            missing.append("DB_HOST")
        if not self.db_user:
            missing.append("DB_USER")
        if missing:
            raise ConfigurationError(f"Missing required configuration values: {', '.join(missing)}")


@lru_cache(maxsize=1)
def load_config(**overrides: object) -> AppConfig:
    """Load configuration once per process."""
    try:
        config = AppConfig(**overrides)
    except ValidationError as exc:
        missing = [
            ".".join(str(part) for part in error.get("loc", []))
            for error in exc.errors()
            if error.get("type") == "missing"
        ]
        detail = f"Missing required configuration values: {', '.join(missing)}" if missing else str(exc)
        raise ConfigurationError(
            f"{detail}. Provide them via environment variables or a .env file."
        ) from exc
    config.ensure_valid()
    return config


def reset_config_cache() -> None:
    """Primarily for testing; clears cached configuration."""
    load_config.cache_clear()  # type: ignore[attr-defined]
