"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables, with an optional .env file
as a fallback. The .env file is gitignored; secrets never live in source code.

Pydantic Settings automatically:
  1. Reads from environment variables (highest priority)
  2. Falls back to .env file values
  3. Uses defaults defined here (lowest priority)

Usage:
    from manavault.config import settings
    print(settings.STORAGE_BACKEND)
"""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the ManaVault API.

    Required fields (no defaults) MUST be set in .env or environment:
      - SECRET_KEY: Used to sign session tokens

    The PII encryption key is optional. When ENCRYPTION_KEY is unset the
    cipher falls back to ENCRYPTION_KEY_FILE, generating and persisting a
    fresh key there on first start.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "ManaVault API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # --- Storage ---
    # "sql" uses DATABASE_URL through SQLAlchemy, "json" keeps one file per entity in DATA_DIR
    STORAGE_BACKEND: Literal["sql", "json"] = "sql"
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/manavault.db"
    DATA_DIR: str = "./data"

    # --- Authentication ---
    # REQUIRED: no default, so every deployment sets its own secret
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 24 * 60

    # --- PII Encryption ---
    # Hex (64 chars) is used as raw key material; any other string is SHA-256 hashed
    ENCRYPTION_KEY: str | None = None
    # Keys that previously encrypted stored data; tried when the active key fails
    PREVIOUS_ENCRYPTION_KEYS: list[str] = []
    ENCRYPTION_KEY_FILE: str = "./data/.encryption_key"

    # --- CORS ---
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000"]


# Singleton: import this instance everywhere instead of creating new Settings()
settings = Settings()
