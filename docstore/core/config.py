"""
Application configuration module.

Provides strongly-typed settings using Pydantic BaseSettings. Values are loaded
from environment variables and .env (via python-dotenv automatically loaded by
Pydantic). Use get_settings() to obtain a cached Settings instance.

Storage:
- DOCSTORE_DB_PATH points at the SQLite file backing every collection.
- Journal mode and foreign key enforcement are applied to each new connection
  (see db/engine.py).
"""

from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# PUBLIC_INTERFACE
class Settings(BaseSettings):
    """Centralized application configuration powered by Pydantic BaseSettings."""

    # App
    APP_NAME: str = Field(default="Court Document Store", description="Application name")
    APP_ENV: str = Field(default="development", description="Execution environment")
    LOG_LEVEL: str = Field(default="INFO", description="Root log level (DEBUG, INFO, WARNING, ERROR)")
    PORT: int = Field(default=3001, description="Port for the FastAPI server")
    CORS_ALLOWED_ORIGINS: str = Field(default="*", description="Comma-separated list of allowed CORS origins or '*'")

    # Storage (SQLAlchemy / SQLite)
    DOCSTORE_DB_PATH: str = Field(
        default="database.sqlite",
        description="File-system location of the SQLite database ('' or ':memory:' for an in-memory store)",
    )
    DB_ECHO: bool = Field(default=False, description="If true, SQLAlchemy will echo SQL statements to logs")
    DB_JOURNAL_MODE: str = Field(default="WAL", description="SQLite journal mode applied to every connection")
    DB_FOREIGN_KEYS: bool = Field(default=True, description="Enforce referential integrity (PRAGMA foreign_keys)")
    DB_BUSY_TIMEOUT_MS: int = Field(
        default=5000, ge=0, description="How long a writer waits on a locked database before failing"
    )

    # Maintenance
    BACKUP_DIR: str = Field(default="backups", description="Directory receiving database backups")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    def cors_origins_list(self) -> List[str]:
        """
        Parse CORS_ALLOWED_ORIGINS into a list. '*' returns ['*'] to indicate permissive mode.
        """
        raw = (self.CORS_ALLOWED_ORIGINS or "").strip()
        if raw == "*" or raw == "":
            return ["*"]
        return [o.strip() for o in raw.split(",") if o.strip()]


# PUBLIC_INTERFACE
@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()
