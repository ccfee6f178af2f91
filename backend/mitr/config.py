"""
Configuration settings using Pydantic Settings.
"""

from pathlib import Path
from pydantic import model_validator
from pydantic_settings import BaseSettings
from functools import lru_cache

BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    CATALOG_PATH: str = "data/schemes.json"
    CATALOG_TTL_SECONDS: int = 3600

    SESSION_TIMEOUT_SECONDS: int = 30 * 60
    SESSION_SWEEP_INTERVAL_SECONDS: int = 5 * 60
    SESSION_HISTORY_LIMIT: int = 20

    DEFAULT_TOKEN_BUDGET: int = 2500
    EXTENDED_TOKEN_BUDGET: int = 3500
    MULTI_SCHEME_TOKEN_BUDGET: int = 4000
    HISTORY_BUDGET_THRESHOLD: int = 10
    MENTIONED_BUDGET_THRESHOLD: int = 3

    DEFAULT_LANGUAGE: str = "en"
    DIGEST_SIZE: int = 5

    DEBUG: bool = False

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore"
    }

    @model_validator(mode="after")
    def resolve_relative_paths(self):
        catalog_path = Path(self.CATALOG_PATH)
        if not catalog_path.is_absolute():
            self.CATALOG_PATH = str((BASE_DIR / catalog_path).resolve())

        return self


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    :return: Cached Settings instance
    :rtype: Settings
    """
    return Settings()


settings = get_settings()
