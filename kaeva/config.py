"""Kaeva Configuration Module.

This module provides centralized configuration management using Pydantic for
validation of environment variables.
"""

import json
import os
from enum import Enum
from functools import cached_property
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from kaeva.utils.exceptions import ConfigurationError

# Load .env file if it exists
load_dotenv()

GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"


class LogLevel(str, Enum):
    """Valid log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class JobBackend(str, Enum):
    """Where job records are kept."""

    MEMORY = "memory"
    REDIS = "redis"


class ServiceAccount(BaseModel):
    """The subset of a Google service-account key file the token exchange needs."""

    client_email: str = Field(..., min_length=1)
    private_key: str = Field(..., min_length=1)
    token_uri: str = GOOGLE_TOKEN_URI
    project_id: str | None = None

    @field_validator("private_key")
    @classmethod
    def unescape_newlines(cls, v: str) -> str:
        # Keys pasted into a single-line env var arrive with literal "\n".
        return v.replace("\\n", "\n")

    @classmethod
    def from_json(cls, blob: str) -> "ServiceAccount":
        """Parse a service-account JSON blob.

        Raises:
            ConfigurationError: If the blob is not JSON or lacks required fields
        """
        try:
            data = json.loads(blob)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Service account JSON is malformed: {e.msg}", setting="GOOGLE_SERVICE_ACCOUNT_JSON"
            ) from e
        if not isinstance(data, dict):
            raise ConfigurationError(
                "Service account JSON must be an object", setting="GOOGLE_SERVICE_ACCOUNT_JSON"
            )
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(
                "Service account JSON is missing required fields",
                setting="GOOGLE_SERVICE_ACCOUNT_JSON",
                details={"errors": [err["loc"] for err in e.errors()]},
            ) from e


class GoogleConfig(BaseModel):
    """Generative model and credential settings."""

    service_account_json: str | None = Field(None, description="Service account key file contents")
    api_key: str | None = Field(None, description="API key sent with generative model calls")
    model: str = Field("gemini-2.0-flash", description="Generative model name")
    location: str = Field("us-central1", description="Vertex AI region")
    scope: str = Field(
        "https://www.googleapis.com/auth/cloud-platform", description="OAuth scope requested"
    )
    endpoint: str | None = Field(None, description="Override for the generateContent URL")
    temperature: float = Field(0.2, ge=0.0, le=2.0, description="Model temperature")
    request_timeout: float = Field(60.0, gt=0, description="Timeout for model requests in seconds")


class InferenceConfig(BaseModel):
    """Media authenticity and OCR inference service settings."""

    base_url: str = Field(
        "https://vi0509-kaeva-verify.hf.space", description="Inference service base URL"
    )
    timeout: float = Field(55.0, gt=0, description="Timeout for inference requests in seconds")
    default_platform: str = Field("clean", description="Compression profile when none is given")

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class JobStoreConfig(BaseModel):
    """Job record storage settings."""

    backend: JobBackend = Field(JobBackend.MEMORY, description="memory or redis")
    redis_url: str = Field("redis://localhost:6379/0", description="Redis connection URL")
    ttl_seconds: int = Field(3600, gt=0, description="Lifetime of a job record in seconds")


class APIConfig(BaseModel):
    """API configuration settings."""

    host: str = Field("0.0.0.0", description="API host")
    port: int = Field(8000, gt=0, lt=65536, description="API port")
    cors_origins: list[str] = Field(["*"], description="Allowed CORS origins")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_origins(cls, v: str | list[str]) -> list[str]:
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: str = Field("json", description="Log format (json or text)")
    file: str | None = Field(None, description="Log file path")
    rotation_size: int = Field(10485760, gt=0, description="Log rotation size in bytes")
    rotation_count: int = Field(5, ge=0, description="Number of rotated logs to keep")
    daily_rotation: bool = Field(False, description="Enable daily log rotation")


class Settings(BaseSettings):
    """Main configuration class for Kaeva."""

    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field("kaeva-factcheck", description="Service name")
    app_version: str = Field("2.0.0", description="Service version")

    google: GoogleConfig = Field(default_factory=GoogleConfig)
    inference: InferenceConfig = Field(default_factory=InferenceConfig)
    jobs: JobStoreConfig = Field(default_factory=JobStoreConfig)
    api: APIConfig = Field(default_factory=APIConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="before")
    @classmethod
    def build_config(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Pre-process raw values to inject nested configuration from flat env vars.

        Args:
            values: Raw configuration values to process

        Returns:
            dict: Processed configuration with nested values
        """
        result = dict(values)

        def section(name: str) -> dict[str, Any]:
            current = result.get(name)
            if isinstance(current, BaseModel):
                current = current.model_dump()
            current = dict(current or {})
            result[name] = current
            return current

        def setdefault_env(target: dict[str, Any], key: str, env: str) -> None:
            value = os.getenv(env)
            if value is not None:
                target.setdefault(key, value)

        google = section("google")
        setdefault_env(google, "service_account_json", "GOOGLE_SERVICE_ACCOUNT_JSON")
        setdefault_env(google, "api_key", "GEMINI_API_KEY")
        setdefault_env(google, "model", "GEMINI_MODEL")
        setdefault_env(google, "location", "GOOGLE_CLOUD_LOCATION")
        setdefault_env(google, "endpoint", "GEMINI_ENDPOINT")
        setdefault_env(google, "request_timeout", "GEMINI_TIMEOUT")

        inference = section("inference")
        setdefault_env(inference, "base_url", "HF_SPACE_URL")
        setdefault_env(inference, "timeout", "INFERENCE_TIMEOUT")

        jobs = section("jobs")
        setdefault_env(jobs, "backend", "JOB_STORE_BACKEND")
        setdefault_env(jobs, "redis_url", "REDIS_URL")
        setdefault_env(jobs, "ttl_seconds", "JOB_TTL_SECONDS")

        api = section("api")
        setdefault_env(api, "host", "HOST")
        setdefault_env(api, "port", "PORT")
        setdefault_env(api, "cors_origins", "CORS_ORIGINS")

        logging_section = section("logging")
        setdefault_env(logging_section, "level", "LOG_LEVEL")
        setdefault_env(logging_section, "format", "LOG_FORMAT")
        setdefault_env(logging_section, "file", "LOG_FILE")

        return result

    @cached_property
    def service_account(self) -> ServiceAccount | None:
        """The parsed service account, or None when none is configured."""
        if not self.google.service_account_json:
            return None
        return ServiceAccount.from_json(self.google.service_account_json)

    @property
    def credentials_configured(self) -> bool:
        try:
            return self.service_account is not None
        except ConfigurationError:
            return False


settings = Settings()


def get_settings() -> Settings:
    """Get the application settings singleton.

    This function is provided for use with FastAPI Depends.

    Returns:
        Settings: The application settings.
    """
    return settings
