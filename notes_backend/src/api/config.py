"""
Application configuration using Pydantic Settings.
Values are loaded from environment variables / .env file.
"""

import logging
import secrets
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


class Settings(BaseSettings):
    """Runtime configuration for the notes backend."""

    # ── Database ─────────────────────────────────────────
    database_url: str = "sqlite:///./notes.db"

    # ── Security ─────────────────────────────────────────
    secret_key: str = Field(default_factory=lambda: secrets.token_urlsafe(32))  # JWT signing key
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7

    # ── App ──────────────────────────────────────────────
    frontend_origin: str = "http://localhost:3000"
    log_level: str = "INFO"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def secret_key_is_generated(self) -> bool:
        """True when no SECRET_KEY was configured and a per-process one is in use."""
        return "secret_key" not in self.model_fields_set


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance (singleton)."""
    return Settings()


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the service."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
