from typing import Any, Literal, NamedTuple

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConnectionDescriptor(NamedTuple):
    """Everything the pool needs to open and manage database connections."""

    host: str | None
    port: int | None
    database: str | None
    user: str | None
    password: str | None
    max_size: int
    idle_timeout: float  # seconds
    acquire_timeout: float  # seconds
    connect_timeout: int  # seconds, libpq connect_timeout


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    PROJECT_NAME: str = "cities-api"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    SENTRY_DSN: str | None = None
    LOG_LEVEL: str = "INFO"

    HOST: str = "0.0.0.0"
    PORT: int = 3000

    # Left unset, libpq falls back to its own defaults (PGHOST, PGUSER, ...)
    DB_USER: str | None = None
    DB_HOST: str | None = None
    DB_NAME: str | None = None
    DB_PASSWORD: str | None = None
    DB_PORT: int | None = None

    DB_POOL_MAX_SIZE: int = 50
    DB_POOL_IDLE_TIMEOUT_MS: int = 100
    DB_POOL_ACQUIRE_TIMEOUT_MS: int = 100
    DB_CONNECT_TIMEOUT: int = 2

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def _upper_log_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v

    def connection_descriptor(self) -> ConnectionDescriptor:
        return ConnectionDescriptor(
            host=self.DB_HOST,
            port=self.DB_PORT,
            database=self.DB_NAME,
            user=self.DB_USER,
            password=self.DB_PASSWORD,
            max_size=self.DB_POOL_MAX_SIZE,
            idle_timeout=self.DB_POOL_IDLE_TIMEOUT_MS / 1000,
            acquire_timeout=self.DB_POOL_ACQUIRE_TIMEOUT_MS / 1000,
            connect_timeout=self.DB_CONNECT_TIMEOUT,
        )


settings = Settings()  # type: ignore
