from __future__ import annotations

"""Centralized configuration using pydantic-settings.

All configuration is loaded from environment variables and .env files.
This is the single source of truth for the orchestration engine configuration.
"""

import tempfile
from enum import Enum
from typing import Self

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_API_PREFIX = "/api/v1/deployments"


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


class LogLevel(str, Enum):
    """Log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ExecutorMode(str, Enum):
    """Which execution back-end the engine is wired with."""

    LOCAL = "local"
    REMOTE = "remote"


class LocalExecutorSettings(BaseModel):
    """Settings for running the IaC binary in-process."""

    base_directory: str = Field(
        default_factory=tempfile.gettempdir, description="Root for task workspaces"
    )
    workspace_directory: str = Field(
        "iacflow_workspace", description="Workspace folder below the base directory"
    )
    terraform_binary: str = Field("terraform", description="Terraform executable")
    opentofu_binary: str = Field("tofu", description="OpenTofu executable")
    log_level: str | None = Field(None, description="TF_LOG level passed to the child process")
    variables_file_name: str = Field(
        "variables.tfvars.json", description="Name of the materialized variables file"
    )


class RemoteExecutorSettings(BaseModel):
    """Settings for the remote terraform-boot execution service."""

    endpoint: str = Field("http://localhost:9090", description="Remote service base URL")
    token: str | None = Field(None, description="Bearer token for the remote service")
    verify_ssl: bool = Field(True, description="Verify SSL certificates")
    timeout: float = Field(60.0, description="Request timeout in seconds")
    client_base_uri: str | None = Field(
        None, description="Base URL the remote service uses to reach our webhooks"
    )
    deploy_callback_uri: str | None = Field(
        None, description="Path of the deploy webhook, task id is appended"
    )
    destroy_callback_uri: str | None = Field(
        None, description="Path of the destroy webhook, task id is appended"
    )

    def callback_uri(self, operation: str, api_prefix: str = DEFAULT_API_PREFIX) -> str:
        """Webhook path for deploy or destroy, derived from the router prefix unless set."""
        if operation == "deploy":
            configured = self.deploy_callback_uri
        else:
            configured = self.destroy_callback_uri
        return configured or f"{api_prefix.rstrip('/')}/webhook/{operation}/"


class Settings(BaseSettings):
    """Main application settings.

    All settings can be overridden via environment variables.
    For nested settings, use double underscore: DEPLOYMENT__MAX_WORKERS=8
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore",
    )

    # ============================================================
    # Core Application Settings
    # ============================================================

    app_name: str = Field("iacflow", description="Application name")
    app_version: str = Field("1.0.0", description="Application version")
    environment: Environment = Field(Environment.DEVELOPMENT, description="Deployment environment")
    debug: bool = Field(False, description="Debug mode")
    testing: bool = Field(False, description="Testing mode")

    # Server configuration, the port is also used to build webhook callback URLs
    host: str = Field(
        "0.0.0.0", description="Server host"
    )  # nosec B104 - Production deployments use proxy
    port: int = Field(8080, description="Server port")

    # ============================================================
    # Deployment engine
    # ============================================================

    class DeploymentSettings(BaseModel):
        """Engine wiring and concurrency."""

        executor: ExecutorMode = Field(ExecutorMode.LOCAL, description="Active back-end")
        max_workers: int = Field(4, description="Concurrent deploy/destroy operations")
        api_prefix: str = Field(DEFAULT_API_PREFIX, description="Webhook router prefix")
        pending_timeout_seconds: int | None = Field(
            None, description="Age after which pending remote tasks may be expired"
        )
        result_retention_seconds: int | None = Field(
            86400, description="Age after which finished task results are purged"
        )
        housekeeping_interval_seconds: float | None = Field(
            300, description="Interval of the expiry and purge sweep, None disables it"
        )
        local: LocalExecutorSettings = Field(default_factory=LocalExecutorSettings)
        remote: RemoteExecutorSettings = Field(default_factory=RemoteExecutorSettings)

        @field_validator("max_workers")
        @classmethod
        def validate_max_workers(cls, v: int) -> int:
            """Worker pool must have at least one slot."""
            if v < 1:
                raise ValueError("max_workers must be >= 1")
            return v

        @model_validator(mode="after")
        def derive_callback_uris(self) -> Self:
            """Webhook paths follow the router prefix unless configured explicitly."""
            remote = self.remote
            remote.deploy_callback_uri = remote.callback_uri("deploy", self.api_prefix)
            remote.destroy_callback_uri = remote.callback_uri("destroy", self.api_prefix)
            return self

    deployment: DeploymentSettings = DeploymentSettings()  # type: ignore[call-arg]

    # ============================================================
    # Observability
    # ============================================================

    class ObservabilitySettings(BaseModel):
        """Logging configuration."""

        log_level: LogLevel = Field(LogLevel.INFO, description="Log level")
        log_format: str = Field("json", description="Log format (json or text)")
        enable_correlation_ids: bool = Field(True, description="Add thread name to log entries")

    observability: ObservabilitySettings = ObservabilitySettings()  # type: ignore[call-arg]

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment."""
        if isinstance(v, str):
            return Environment(v.lower())
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == Environment.PRODUCTION

    @property
    def is_testing(self) -> bool:
        """Check if running in test mode."""
        return self.testing or self.environment == Environment.TEST


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get global settings instance (singleton)."""
    global _settings
    if _settings is None:
        _settings = Settings()  # type: ignore
    return _settings


def reset_settings() -> None:
    """Reset settings (mainly for testing)."""
    global _settings
    _settings = None


# Convenience export
settings = get_settings()
