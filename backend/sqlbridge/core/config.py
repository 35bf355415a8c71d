"""
Process settings, read from the environment (and an optional .env file).

CLI flags in sqlbridge.main override these values at startup.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    SERVER_NAME: str = "sqlbridge"

    DATABASE_URL: str | None = None
    MAX_CONNECTIONS: int = Field(default=10, ge=1)
    # 0 = wait for a free connection without limit
    TIMEOUT_SECONDS: int = Field(default=30, ge=0)
    LOG_LEVEL: str = "info"

    CONNECT_TIMEOUT_SECONDS: int = Field(default=10, ge=1)
    POOL_MAX_AGE_SECONDS: float = 600.0
    POOL_PING_IDLE_SECONDS: float = 30.0


settings = Settings()
