import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DEFAULT_DATABASE_URL = "sqlite:///matchplay/DATA/matchplay.db"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    database_url: str
    log_level: str
    golf_api_key: str


def _normalize_database_url(value: Optional[str]) -> str:
    if not value:
        return DEFAULT_DATABASE_URL
    normalized = value.strip()
    if normalized.startswith("sqlite://"):
        return normalized
    if Path(normalized).suffix:  # treat as direct path
        return f"sqlite:///{normalized}"
    return normalized


def load_settings() -> Settings:
    database_url = _normalize_database_url(os.getenv("DATABASE_URL"))
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    golf_api_key = os.getenv("GOLF_API_KEY", "")
    return Settings(
        database_url=database_url,
        log_level=log_level,
        golf_api_key=golf_api_key,
    )


def configure_logging(settings: Settings) -> None:
    level = getattr(logging, settings.log_level, None)
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
