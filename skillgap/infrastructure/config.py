"""
Centralized configuration management for the skill readiness service.

Provides environment-specific configuration with validation, type safety,
and comprehensive settings management using Pydantic.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings


class DatabaseConfig(BaseSettings):
    """
    Database configuration settings.

    Handles both SQLite and MySQL configurations with validation
    and connection URL generation.

    Example:
        >>> db_config = DatabaseConfig(backend="sqlite", sqlite_path="./test.db")
        >>> print(db_config.get_connection_url())
        sqlite:///./test.db
    """

    backend: Literal["sqlite", "mysql"] = Field("sqlite", description="Database backend type")

    # SQLite settings
    sqlite_path: str | None = Field("./skillgap.db", description="SQLite database file path")

    # MySQL settings
    mysql_host: str | None = Field("localhost", description="MySQL host")
    mysql_port: int | None = Field(3306, ge=1, le=65535, description="MySQL port")
    mysql_user: str | None = Field("root", description="MySQL username")
    mysql_password: str | None = Field("", description="MySQL password")
    mysql_database: str | None = Field("skillgap", description="MySQL database name")
    mysql_charset: str = Field("utf8mb4", description="MySQL character set")

    # Connection settings
    pool_pre_ping: bool = Field(True, description="Enable connection pool pre-ping")
    pool_recycle: int = Field(3600, ge=60, description="Connection pool recycle time (seconds)")
    echo: bool = Field(False, description="Enable SQL query logging")

    model_config = {"env_prefix": "DB_", "case_sensitive": False}

    @field_validator("sqlite_path")
    def validate_sqlite_path(cls, v):
        """Validate SQLite path and ensure directory exists."""
        if v and v != ":memory:":
            path = Path(v)
            path.parent.mkdir(parents=True, exist_ok=True)
            if not path.suffix:
                v = str(path.with_suffix(".db"))
        return v

    @model_validator(mode="after")
    def validate_mysql_config(self):
        """Validate MySQL configuration completeness."""
        if self.backend == "mysql":
            missing = []
            if not self.mysql_host:
                missing.append("mysql_host")
            if not self.mysql_user:
                missing.append("mysql_user")
            if not self.mysql_database:
                missing.append("mysql_database")
            if missing:
                raise ValueError(f"MySQL backend requires: {', '.join(missing)}")
        return self

    def get_connection_url(self) -> str:
        """
        Generate database connection URL.

        Raises:
            ValueError: If backend is unsupported or configuration is invalid
        """
        if self.backend == "sqlite":
            return f"sqlite:///{self.sqlite_path}"
        elif self.backend == "mysql":
            password_part = f":{self.mysql_password}" if self.mysql_password else ""
            return (
                f"mysql+pymysql://{self.mysql_user}{password_part}@{self.mysql_host}:"
                f"{self.mysql_port}/{self.mysql_database}?charset={self.mysql_charset}"
            )
        else:
            raise ValueError(f"Unsupported database backend: {self.backend}")

    def get_engine_options(self) -> dict[str, Any]:
        """Get SQLAlchemy engine options."""
        options: dict[str, Any] = {
            "echo": self.echo,
            "future": True,
            "pool_pre_ping": self.pool_pre_ping,
            "pool_recycle": self.pool_recycle,
        }
        if self.backend == "sqlite":
            # Async routes and threadpool dependencies share connections
            options["connect_args"] = {"check_same_thread": False}
        return options


class LoggingConfig(BaseSettings):
    """Logging settings; applied by ``configure_from_settings`` outside test runs."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        "INFO", description="Minimum logging level"
    )
    file_path: str | None = Field("./logs/skillgap.log", description="Log file path")
    max_bytes: int = Field(10 * 1024 * 1024, ge=1024, description="Max log file size in bytes")
    backup_count: int = Field(5, ge=1, description="Number of backup log files")
    structured: bool = Field(True, description="Use structured JSON logging")
    console_enabled: bool = Field(True, description="Enable console output")

    model_config = {"env_prefix": "LOG_", "case_sensitive": False}

    @field_validator("file_path")
    def validate_log_path(cls, v):
        """Ensure log directory exists."""
        if v:
            log_path = Path(v)
            log_path.parent.mkdir(parents=True, exist_ok=True)
        return v


class CollaboratorConfig(BaseSettings):
    """
    Endpoints of the external question generator and code checker.

    Example:
        >>> collab = CollaboratorConfig(generator_url="http://localhost:9000/generate")
        >>> collab.request_headers()["Content-Type"]
        'application/json'
    """

    generator_url: str = Field(
        "http://localhost:54321/functions/v1/generate-assessment",
        description="Question generator endpoint",
    )
    checker_url: str = Field(
        "http://localhost:54321/functions/v1/validate-code",
        description="Code checker endpoint",
    )
    api_key: str | None = Field(None, description="Bearer token sent to both collaborators")
    timeout_seconds: float = Field(30.0, gt=0, description="HTTP timeout per collaborator call")
    default_question_count: int = Field(5, ge=1, le=50, description="Generated questions per set")

    model_config = {"env_prefix": "COLLAB_", "case_sensitive": False}

    def request_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers


class AssessmentConfig(BaseSettings):
    """Assessment session behaviour."""

    tick_interval_seconds: float = Field(
        1.0, gt=0, description="Seconds between countdown ticks"
    )
    max_generated_questions: int = Field(20, ge=1, description="Upper bound for questionCount")

    model_config = {"env_prefix": "ASSESSMENT_", "case_sensitive": False}


class ApplicationConfig(BaseSettings):
    """
    Main application configuration.

    Example:
        >>> config = get_settings()
        >>> print(config.app.environment)
    """

    environment: Literal["development", "testing", "production"] = Field(
        "development", description="Application environment"
    )
    debug: bool = Field(False, description="Enable debug mode")
    version: str = Field("0.1.0", description="Application version")
    title: str = Field("Skill Readiness API", description="API title")

    # Feature flags
    enable_adaptive_assessments: bool = Field(
        True, description="Allow generated (adaptive) assessments"
    )

    model_config = {"env_prefix": "APP_", "case_sensitive": False}

    @model_validator(mode="after")
    def debug_implies_development(self):
        """Ensure debug mode is only enabled outside production."""
        if self.debug and self.environment == "production":
            raise ValueError("Debug mode cannot be enabled in production")
        return self


class Settings:
    """
    Complete application settings container.

    Provides structured access to all configuration sections
    with lazy loading and caching.

    Example:
        >>> settings = get_settings()
        >>> print(settings.database.get_connection_url())
        >>> print(settings.collaborators.generator_url)
    """

    def __init__(self):
        self._app: ApplicationConfig | None = None
        self._database: DatabaseConfig | None = None
        self._logging: LoggingConfig | None = None
        self._collaborators: CollaboratorConfig | None = None
        self._assessment: AssessmentConfig | None = None

    @property
    def app(self) -> ApplicationConfig:
        if self._app is None:
            self._app = ApplicationConfig()
        return self._app

    @property
    def database(self) -> DatabaseConfig:
        if self._database is None:
            self._database = DatabaseConfig()
        return self._database

    @property
    def logging(self) -> LoggingConfig:
        if self._logging is None:
            # Set logging level based on environment
            level = "DEBUG" if self.app.debug else "INFO"
            if self.app.environment == "production":
                level = "WARNING"
            self._logging = LoggingConfig(level=level)
        return self._logging

    @property
    def collaborators(self) -> CollaboratorConfig:
        if self._collaborators is None:
            self._collaborators = CollaboratorConfig()
        return self._collaborators

    @property
    def assessment(self) -> AssessmentConfig:
        if self._assessment is None:
            self._assessment = AssessmentConfig()
        return self._assessment

    def is_development(self) -> bool:
        return self.app.environment == "development"

    def is_production(self) -> bool:
        return self.app.environment == "production"

    def is_testing(self) -> bool:
        return self.app.environment == "testing"

    def get_environment_info(self) -> dict[str, Any]:
        """Get summary of current environment configuration."""
        return {
            "environment": self.app.environment,
            "version": self.app.version,
            "debug": self.app.debug,
            "database_backend": self.database.backend,
            "logging_level": self.logging.level,
            "features": {
                "adaptive_assessments": self.app.enable_adaptive_assessments,
            },
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get application settings instance (cached).

    Example:
        >>> settings = get_settings()
        >>> db_url = settings.database.get_connection_url()
    """
    return Settings()


def override_settings(**kwargs) -> Settings:
    """
    Override specific settings for testing or development.

    Keys are environment variable names without case, e.g.
    ``override_settings(app_environment="testing", db_sqlite_path=":memory:")``.
    """
    for key, value in kwargs.items():
        os.environ[key.upper()] = str(value)

    get_settings.cache_clear()
    return get_settings()


def reset_settings() -> None:
    """Reset settings cache to reload from environment."""
    get_settings.cache_clear()
