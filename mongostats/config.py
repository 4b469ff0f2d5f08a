"""MongoStats configuration loaded from environment variables."""

from __future__ import annotations

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Collector settings loaded from .env file."""

    # Monitored MongoDB server
    mongo_host: str = Field(default="localhost", alias="MONGO_HOST")
    mongo_port: int = Field(default=27017, alias="MONGO_PORT")
    mongo_database: str = Field(default="admin", alias="MONGO_DATABASE")
    mongo_username: str = Field(default="", alias="MONGO_USERNAME")
    mongo_password: str = Field(default="", alias="MONGO_PASSWORD")
    mongo_timeout_ms: int = Field(default=5000, alias="MONGO_TIMEOUT_MS")

    # Remembered state storage
    database_url: str = Field(
        default="sqlite+aiosqlite:///./mongostats.db",
        alias="DATABASE_URL",
    )
    auto_create_schema: bool = Field(default=True, alias="AUTO_CREATE_SCHEMA")

    # Collection
    collection_interval_seconds: int = Field(
        default=60,
        validation_alias=AliasChoices("COLLECTION_INTERVAL_SECONDS", "COLLECTION_INTERVAL"),
    )
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    app_env: str = Field(default="development", alias="APP_ENV")

    @field_validator("mongo_host", "mongo_database", mode="before")
    @classmethod
    def _blank_uses_default(cls, value, info):
        # Blank options fall back to the documented defaults.
        if value is None or not str(value).strip():
            return cls.model_fields[info.field_name].default
        return str(value).strip()

    @field_validator("mongo_port", mode="before")
    @classmethod
    def _parse_port(cls, value):
        if value is None or not str(value).strip():
            return 27017
        try:
            port = int(str(value).strip())
        except ValueError:
            raise ValueError(f"MONGO_PORT must be an integer, got {value!r}") from None
        if not 0 < port < 65536:
            raise ValueError(f"MONGO_PORT out of range: {port}")
        return port

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() in {"production", "prod"}

    @property
    def target(self) -> str:
        """Identifier scoping remembered state to one monitored server."""
        return f"{self.mongo_host}:{self.mongo_port}"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
