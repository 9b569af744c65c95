# Settings are read from the environment (prefix COOKPRO_) or a .env file
import logging
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="COOKPRO_", env_file=".env")

    DATA_SOURCE: str = str(BASE_DIR / "data" / "recipes.json")
    FETCH_TIMEOUT: float = 5.0
    DATABASE_URL: str = "sqlite:///./cookpro.db"
    DISPLAY_LIMIT: int = 6
    LOG_LEVEL: str = "INFO"
    SESSION_COOKIE: str = "session"


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
