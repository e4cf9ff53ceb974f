"""Configuration management with pydantic-settings and validation."""

import enum
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class StoreType(str, enum.Enum):
    """Backends a process can be started against."""

    JSON = "json"
    SQLITE = "sqlite"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Backend selection
    store_type: StoreType = StoreType.SQLITE

    # Relational store
    database_url: str = "sqlite:///groceries.db"
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: float = 30.0

    # Document store
    groceries_path: Path = Path("groceries.json")
    list_path: Path = Path("list.json")

    log_level: str = "INFO"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }

    @field_validator("database_url", mode="before")
    @classmethod
    def fix_database_url(cls, v):
        """Heroku-style hosts use postgres:// but SQLAlchemy requires postgresql://."""
        if isinstance(v, str) and v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql://", 1)
        return v

    @field_validator("database_url")
    @classmethod
    def check_not_empty(cls, v):
        if v.strip() == "":
            raise ValueError("DATABASE_URL is empty")
        return v

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v):
        return v.upper()


def get_settings(**overrides) -> Settings:
    """Load and validate settings from environment.

    Keyword overrides take precedence over the environment.

    Raises:
        ValidationError: If environment variables are invalid.
    """
    return Settings(**overrides)
