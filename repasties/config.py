"""
Repasties — Application Configuration
======================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and produces one frozen `Settings` value.
Who:   Built once by `create_app()` and passed into the ConnectionManager,
       the highlight strategies and the SnippetStore.
When:  At process start; never re-read inside request handling.

The backing store is addressed by {host, port, database name}. The defaults
(localhost:28015, database "repasties") can be overridden with DB_HOST,
DB_PORT and DB_NAME.
"""

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings
from sqlalchemy.engine import URL


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Instances are immutable: components receive the value by reference at
    construction time and cannot observe later changes to the environment.
    """

    # ── Backing Store ─────────────────────────────────────────────────────
    # What: SQLAlchemy async driver name, e.g. postgresql+asyncpg or
    # sqlite+aiosqlite. For SQLite, db_name is the database file path.
    db_driver: str = Field(default="postgresql+asyncpg")
    db_host: str = Field(default="localhost")
    db_port: int = Field(default=28015, ge=1, le=65535)
    db_name: str = Field(default="repasties", min_length=1)
    db_user: Optional[str] = Field(default=None)
    db_password: Optional[str] = Field(default=None)

    # What: Database used to issue CREATE DATABASE during bootstrap (PostgreSQL)
    db_maintenance_name: str = Field(default="postgres")

    # ── Syntax Highlighting ───────────────────────────────────────────────
    # What: Local executable looked up on PATH once at start-up.
    # When it is missing, the remote service below is used instead.
    highlight_executable: str = Field(default="pygmentize")
    highlight_encoding: str = Field(default="utf-8")
    highlight_style: str = Field(default="colorful")
    highlight_line_numbers: bool = Field(default=True)
    highlight_service_url: str = Field(default="http://pygments.appspot.com/")

    # ── Listing ───────────────────────────────────────────────────────────
    default_list_limit: int = Field(default=10, ge=1)
    max_list_limit: int = Field(default=100, ge=1)

    # ── CORS ──────────────────────────────────────────────────────────────
    # Format: Comma-separated URLs
    cors_origins: str = Field(default="http://localhost:3000")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=8000, ge=1024, le=65535)

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "frozen": True,
    }

    @property
    def is_sqlite(self) -> bool:
        return self.db_driver.startswith("sqlite")

    @property
    def database_url(self) -> URL:
        """
        What:  SQLAlchemy URL of the snippet database.
        How:   SQLite URLs carry only the file path; server backends get
               user, password, host, port and database name.
        """
        if self.is_sqlite:
            return URL.create(self.db_driver, database=self.db_name)
        return URL.create(
            self.db_driver,
            username=self.db_user,
            password=self.db_password,
            host=self.db_host,
            port=self.db_port,
            database=self.db_name,
        )

    @property
    def maintenance_url(self) -> URL:
        """URL of the server's maintenance database, used to create `db_name`."""
        return self.database_url.set(database=self.db_maintenance_name)

    @property
    def store_address(self) -> str:
        """host:port pair reported in connection and bootstrap errors."""
        if self.is_sqlite:
            return self.db_name
        return f"{self.db_host}:{self.db_port}"


def load_settings(**overrides) -> Settings:
    """Builds the process-wide Settings value from the environment plus overrides."""
    return Settings(**overrides)
