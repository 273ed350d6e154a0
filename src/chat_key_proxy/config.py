"""Application configuration using Pydantic settings."""

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Credential encryption
    encryption_key: SecretStr = Field(
        SecretStr(""), alias="ENCRYPTION_KEY",
        description="AES-256 key as 64 hex characters. Required: the server refuses to start without it.",
    )

    # Sessions
    session_max_age: int = Field(
        86400, alias="SESSION_MAX_AGE", ge=1,
        description="Idle lifetime of a session in seconds. Also used as the cookie Max-Age.",
    )
    session_sweep_interval: int = Field(
        3600, alias="SESSION_SWEEP_INTERVAL", ge=1,
        description="Seconds between background sweeps that evict idle sessions.",
    )
    session_cookie_name: str = Field(
        "chat_proxy_session", alias="SESSION_COOKIE_NAME",
        description="Name of the HTTP-only cookie carrying the session identifier.",
    )

    # Upstream chat API
    upstream_model: str = Field(
        "codestral-latest", alias="UPSTREAM_MODEL",
        description="Model name sent with every upstream chat request.",
    )
    upstream_timeout: float = Field(
        60.0, alias="UPSTREAM_TIMEOUT", gt=0,
        description="HTTP request timeout in seconds for upstream chat calls.",
    )

    # Server
    host: str = Field(
        "0.0.0.0", alias="HOST",
        description="Host address to bind the aiohttp server to.",
    )
    port: int = Field(
        3000, alias="PORT",
        description="Port number for the aiohttp server.",
    )
    frontend_url: str = Field(
        "http://localhost:8080", alias="FRONTEND_URL",
        description="Origin allowed to call the API with credentials (CORS).",
    )
    app_env: str = Field(
        "development", alias="APP_ENV",
        description="Deployment mode. 'production' marks the session cookie as Secure.",
    )

    # Logging
    log_level: str = Field(
        "INFO", alias="LOG_LEVEL",
        description="Logging level: DEBUG, INFO, WARNING, ERROR, or CRITICAL.",
    )
    log_file: str = Field(
        "", alias="LOG_FILE",
        description="Path to log file for file-based logging with rotation. Empty = console only.",
    )
    log_file_max_bytes: int = Field(
        10_485_760, alias="LOG_FILE_MAX_BYTES",
        description="Max size in bytes per log file before rotation. Default: 10 MB.",
    )
    log_file_backup_count: int = Field(
        5, alias="LOG_FILE_BACKUP_COUNT",
        description="Number of rotated backup log files to keep.",
    )

    @property
    def is_production(self) -> bool:
        return self.app_env.strip().lower() == "production"


def get_settings() -> Settings:
    """Get application settings from the environment."""
    return Settings()
