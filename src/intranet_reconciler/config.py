"""
Unified Configuration Module for the Intranet Reconciler.

This module provides a single source of truth for all configuration settings using
pydantic-settings for validation and environment variable loading. Credentials are
resolved once at process start and never live in code.
"""

from functools import lru_cache
from typing import Any

from loguru import logger
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Required credentials are strictly validated on initialization. Missing or empty
    values will raise a ValidationError.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Supabase Project (Required)
    SUPABASE_URL: str = Field(
        ...,
        description="Supabase project URL (e.g. https://<ref>.supabase.co)",
        min_length=1,
    )
    SUPABASE_SERVICE_ROLE_KEY: SecretStr = Field(
        ...,
        description="Service role key sent as apikey and bearer credential",
    )

    # Migration privilege path (Optional - absent on most projects)
    SUPABASE_SQL_RPC: str | None = Field(
        default=None,
        description="Name of a SQL-execution RPC (e.g. exec_sql) if the project exposes one",
    )
    SUPABASE_SQL_RPC_ARG: str = Field(
        default="query",
        description="Argument name the SQL-execution RPC expects the statement under",
        min_length=1,
    )

    # Degraded mode
    ALLOW_SCAFFOLD_WRITES: bool = Field(
        default=True,
        description=(
            "Allow writing a synthetic scaffold row to coerce a missing column "
            "into existence when no SQL-execution RPC is available"
        ),
    )
    SCAFFOLD_KEY_PREFIX: str = Field(
        default="reconciler-scaffold-",
        description="Prefix marking rows created by the reconciler itself",
        min_length=3,
    )

    REQUEST_TIMEOUT: float = Field(
        default=10.0,
        description="Timeout in seconds for each REST call",
        gt=0.0,
        le=120.0,
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Minimum level for the stderr log sink",
    )

    @field_validator("SUPABASE_URL", mode="before")
    @classmethod
    def validate_url(cls, v: Any) -> Any:
        """Require an https URL and drop any trailing slash."""
        if v is None or (isinstance(v, str) and v.strip() == ""):
            raise ValueError("SUPABASE_URL cannot be empty")
        v = str(v).strip().rstrip("/")
        if not v.startswith("https://"):
            raise ValueError("SUPABASE_URL must be an https:// URL")
        return v

    @field_validator("SUPABASE_SERVICE_ROLE_KEY", mode="before")
    @classmethod
    def validate_key_not_empty(cls, v: Any) -> Any:
        """Ensure the credential is not an empty string."""
        if v is None or (isinstance(v, str) and v.strip() == ""):
            raise ValueError("SUPABASE_SERVICE_ROLE_KEY cannot be empty")
        return v.strip() if isinstance(v, str) else v

    @field_validator("SUPABASE_SQL_RPC", mode="before")
    @classmethod
    def blank_rpc_is_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v

    @field_validator("LOG_LEVEL", mode="after")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        """Upper-case the level and reject names loguru does not know."""
        level = v.strip().upper()
        try:
            logger.level(level)
        except ValueError as e:
            raise ValueError(f"LOG_LEVEL '{v}' is not a known log level") from e
        return level

    @property
    def rest_url(self) -> str:
        """Base URL of the PostgREST endpoint."""
        return f"{self.SUPABASE_URL}/rest/v1"

    @property
    def has_sql_rpc(self) -> bool:
        return self.SUPABASE_SQL_RPC is not None


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Validated application settings

    Raises:
        pydantic.ValidationError: If required environment variables are missing
    """
    return Settings()
