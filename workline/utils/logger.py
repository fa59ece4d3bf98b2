"""
workline/utils/logger.py → per-module production logger with 2 modes:

file (default): write to logs/<module>.log, rotated at midnight, kept for
LOG_RETENTION days, with an optional console mirror.

stdout: console only (leave rotation/aggregation to Docker/systemd).

All options come from LOG_* environment variables (or .env at the project
root). Inside a Quart app context, app.config LOG_* keys take precedence.
"""

# workline/utils/logger.py
from __future__ import annotations

import logging
import os
import sys
import threading
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from quart import current_app, has_app_context


def _detect_project_root() -> Path:
    """
    Locate the project root:
    - PROJECT_ROOT env var
    - first parent holding pyproject.toml or .git
    - fallback: two levels above this file
    """
    env_root = os.getenv("PROJECT_ROOT")
    if env_root:
        return Path(env_root).resolve()

    here = Path(__file__).resolve()
    for p in here.parents:
        if (p / "pyproject.toml").exists() or (p / ".git").exists():
            return p
    return here.parents[2]


class WorklineLogSettings(BaseSettings):
    """
    LOG_ prefixed settings:

      - LOG_MODE=file|stdout
      - LOG_LEVEL=INFO|DEBUG|WARNING|ERROR
      - LOG_FORMAT="%(asctime)s %(levelname)s %(name)s: %(message)s"
      - LOG_DATEFMT="%Y-%m-%d %H:%M:%S"
      - LOG_RETENTION=90
      - LOG_ROOT_DIR="/path/to/project" (optional, autodetected)
      - LOG_CONSOLE=true|false
      - LOG_CONSOLE_LEVEL=INFO|DEBUG|... (optional, defaults to LOG_LEVEL)
    """

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        extra="ignore",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    mode: str = "file"
    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt: str = "%Y-%m-%d %H:%M:%S"
    retention: int = 90
    root_dir: Optional[Path] = None
    console: bool = True
    console_level: Optional[str] = None


_APP_CONFIG_KEYS = (
    "LOG_MODE",
    "LOG_LEVEL",
    "LOG_FORMAT",
    "LOG_DATEFMT",
    "LOG_RETENTION",
    "LOG_ROOT_DIR",
    "LOG_CONSOLE",
    "LOG_CONSOLE_LEVEL",
)


def _resolve_settings() -> WorklineLogSettings:
    """ENV/.env settings, overlaid with app.config when an app context exists."""
    settings = WorklineLogSettings()
    if not has_app_context():
        return settings

    cfg = current_app.config
    overrides = {
        key[4:].lower(): cfg[key]
        for key in _APP_CONFIG_KEYS
        if key in cfg and cfg[key] is not None
    }
    if not overrides:
        return settings
    return settings.model_copy(update=overrides)


def _to_level(level: str) -> int:
    return getattr(logging, str(level).upper(), logging.INFO)


def _console_handler(s: WorklineLogSettings, formatter: logging.Formatter) -> logging.Handler:
    ch = logging.StreamHandler(sys.stdout)
    ch.setLevel(_to_level(s.console_level or s.level))
    ch.setFormatter(formatter)
    return ch


def _file_handler(
    name: str, s: WorklineLogSettings, formatter: logging.Formatter
) -> logging.Handler:
    log_dir = (s.root_dir or _detect_project_root()) / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)

    # one file per module: last segment of the dotted logger name
    last_segment = (name.rsplit(".", 1)[-1] or "app").replace(":", "_")
    fh = TimedRotatingFileHandler(
        filename=str(log_dir / f"{last_segment}.log"),
        when="midnight",
        backupCount=int(s.retention),
        encoding="utf-8",
    )
    fh.setLevel(_to_level(s.level))
    fh.setFormatter(formatter)
    return fh


_init_lock = threading.Lock()
_inited_loggers: set[str] = set()


def get_logger(name: str) -> logging.Logger:
    """
    Return a configured logger for ``name``.

    Idempotent and thread-safe: handlers are attached once per logger name,
    later calls only return the cached logger.
    """
    logger = logging.getLogger(name)

    # Fast path
    if name in _inited_loggers and logger.handlers:
        return logger

    with _init_lock:
        if name in _inited_loggers and logger.handlers:
            return logger

        s = _resolve_settings()
        mode = (s.mode or "file").lower().strip()
        formatter = logging.Formatter(fmt=s.format, datefmt=s.datefmt)

        logger.setLevel(_to_level(s.level))
        logger.propagate = False

        if mode == "stdout":
            logger.addHandler(_console_handler(s, formatter))
        else:
            logger.addHandler(_file_handler(name, s, formatter))
            if s.console:
                logger.addHandler(_console_handler(s, formatter))

        _inited_loggers.add(name)

    return logger
