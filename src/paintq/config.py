"""Runtime settings, read from the environment (and a local ``.env``)."""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    PROJECT_NAME: str = "PaintQ"
    HOST: str = os.environ.get("PAINTQ_HOST", "0.0.0.0")
    PORT: int = int(os.environ.get("PAINTQ_PORT", "8000"))
    DEBUG: bool = _env_bool("PAINTQ_DEBUG")
    LOG_LEVEL: str = os.environ.get("PAINTQ_LOG_LEVEL", "INFO")
    LOG_FILE: Optional[str] = os.environ.get("PAINTQ_LOG_FILE") or None
    GEMINI_API_KEY: Optional[str] = os.environ.get("GEMINI_API_KEY") or None
    GEMINI_MODEL: str = os.environ.get("GEMINI_MODEL", "gemini-2.5-flash-lite")
    SUPER_ADMIN_SECRET_KEY: Optional[str] = (
        os.environ.get("SUPER_ADMIN_SECRET_KEY") or None
    )
    ROUND_SECONDS: int = int(os.environ.get("PAINTQ_ROUND_SECONDS", "20"))
    TIME_UNIT: float = float(os.environ.get("PAINTQ_TIME_UNIT", "1.0"))
    MAX_GAMES: int = int(os.environ.get("PAINTQ_MAX_GAMES", "5000"))
    SESSION_TTL_SECONDS: int = 60 * 30


settings = Settings()


def configure_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """Set up the ``paintq`` logger: console always, rotating file if asked."""

    logger = logging.getLogger("paintq")
    logger.setLevel((level or settings.LOG_LEVEL).upper())
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    if not any(type(h) is logging.StreamHandler for h in logger.handlers):
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        logger.addHandler(console)

    path = log_file or settings.LOG_FILE
    if path and not any(
        isinstance(h, RotatingFileHandler)
        and h.baseFilename == os.path.abspath(path)
        for h in logger.handlers
    ):
        directory = os.path.dirname(path)
        if directory and not os.path.exists(directory):
            os.makedirs(directory)
        file_handler = RotatingFileHandler(path, maxBytes=5_000_000, backupCount=3)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
