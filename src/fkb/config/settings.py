from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import ValidationInfo, field_validator
from pathlib import Path
from typing import Literal
from functools import lru_cache
from ..validators.config_validators import (
    require_at_least,
    require_positive,
    to_lowercase,
    to_uppercase,
)

class Settings(BaseSettings):
    """
    Application settings loaded from environment.
    """

    # Environment
    ENV: Literal["development", "testing", "staging", "production"] = "development"

    # Database configuration
    POSTGRES_DRIVER: str = "psycopg"
    POSTGRES_USERNAME: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "fkb"

    # Full URL escape hatch (e.g. "sqlite+aiosqlite:///./fkb.db")
    DATABASE_URL_OVERRIDE: str | None = None

    # Test database configuration
    TEST_POSTGRES_DB: str | None = None
    TESTING: bool = False

    # Connection pool
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 0
    DB_POOL_TIMEOUT: float = 30.0
    DB_POOL_PRE_PING: bool = True

    # SQLAlchemy
    SQLALCHEMY_ECHO: bool = False

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "json"
    LOG_TO_STDOUT: bool = True
    LOG_DIR: Path = Path("/var/log/fkb")
    LOG_MAX_BYTES: int = 10_000_000  # 10 MB
    LOG_BACKUP_COUNT: int = 5
    ENABLE_SQL_LOGGING: bool = False

    # Queue-backed logging
    LOG_USE_QUEUE: bool = False
    LOG_QUEUE_MAX_SIZE: int = 0
    LOG_QUEUE_BLOCKING: bool = False
    LOG_QUEUE_DROP_WARNING_THRESHOLD: int = 100

    # --- Derived settings ---
    @property
    def DATABASE_URL(self) -> str:
        """
        Return the database URL for the current environment.

        - `DATABASE_URL_OVERRIDE` wins when set (any SQLAlchemy async URL).
        - With `TESTING=True` and `TEST_POSTGRES_DB` set, the test database is used
          so test runs never touch the regular database.
        - Otherwise the regular `POSTGRES_DB` URL is built.
        """
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE

        database = self.POSTGRES_DB
        if self.TESTING and self.TEST_POSTGRES_DB:
            database = self.TEST_POSTGRES_DB

        return (
            f"postgresql+{self.POSTGRES_DRIVER}://"
            f"{self.POSTGRES_USERNAME}:{self.POSTGRES_PASSWORD}@"
            f"{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/"
            f"{database}"
        )

    # --- Validators ---
    @field_validator("LOG_LEVEL", mode="before")
    def normalize_log_level(cls, v: str | None) -> str | None:
        """
        Normalize LOG_LEVEL to uppercase before Literal validation runs,
        so `LOG_LEVEL=debug` in the environment is accepted.
        """
        return to_uppercase(v)

    @field_validator("LOG_FORMAT", mode="before")
    def normalize_log_format(cls, v: str | None) -> str | None:
        """
        Normalize the LOG_FORMAT environment variable value to lowercase.
        """
        return to_lowercase(v)

    @field_validator("DB_POOL_SIZE")
    def validate_pool_size(cls, v: int) -> int:
        return require_at_least(v, 1, "DB_POOL_SIZE")

    @field_validator("DB_MAX_OVERFLOW", "LOG_QUEUE_MAX_SIZE")
    def validate_non_negative(cls, v: int, info: ValidationInfo) -> int:
        return require_at_least(v, 0, info.field_name)

    @field_validator("DB_POOL_TIMEOUT")
    def validate_pool_timeout(cls, v: float) -> float:
        return require_positive(v, "DB_POOL_TIMEOUT")

    model_config = SettingsConfigDict(
        # .env at the project root (three levels up from this file: config -> fkb -> src -> root)
        env_file=str(Path(__file__).resolve().parents[3] / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

# Settings are read once per process.
@lru_cache()
def get_settings() -> Settings:
    return Settings()
