"""Runtime configuration read from environment variables (and ``.env``)."""

from __future__ import annotations

import logging
import os
from typing import Optional

from pydantic import BaseModel

LOG_LEVELS = {
    "silent": None,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}
DEFAULT_LOG_LEVEL = "info"
DEFAULT_MAX_CONCURRENCY = 6
APP_DIR_NAME = "nnn-downloader"


class AppConfig(BaseModel):
    session_path: str
    output_dir: str
    log_level: str = DEFAULT_LOG_LEVEL
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY


def _env_str(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return None
    return value


def _env_int(name: str) -> Optional[int]:
    value = _env_str(name)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def default_config_dir() -> str:
    xdg = _env_str("XDG_CONFIG_HOME")
    if xdg:
        return xdg
    return os.path.join(os.path.expanduser("~"), ".config")


def default_session_path() -> str:
    return os.path.join(default_config_dir(), APP_DIR_NAME, "session.json")


def normalize_log_level(value: Optional[str]) -> str:
    level = (value or "").strip().lower()
    return level if level in LOG_LEVELS else DEFAULT_LOG_LEVEL


def load_config() -> AppConfig:
    session_path = _env_str("NNN_SESSION_PATH")
    output_dir = _env_str("OUTPUT_DIR") or "downloads"
    max_concurrency = _env_int("MAX_CONCURRENCY")
    return AppConfig(
        session_path=os.path.expanduser(session_path) if session_path else default_session_path(),
        output_dir=os.path.abspath(os.path.expanduser(output_dir)),
        log_level=normalize_log_level(_env_str("LOG_LEVEL")),
        max_concurrency=max_concurrency if max_concurrency and max_concurrency > 0 else DEFAULT_MAX_CONCURRENCY,
    )


def configure_logging(level: str = DEFAULT_LOG_LEVEL) -> None:
    resolved = LOG_LEVELS.get(normalize_log_level(level))
    if resolved is None:
        logging.disable(logging.CRITICAL)
        return
    logging.basicConfig(
        level=resolved,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )
