"""
FILE: lumina/core/config.py
PURPOSE: Location of the data directory and log settings
EXPORTS:
  - ENV_PREFIX
  - get_data_dir() -> Path
  - get_log_level() -> int
DEPENDENCIES:
  - os, logging, pathlib (stdlib)
NOTES:
  - Data lives in ~/.lumina unless LUMINA_HOME is set
  - Values are read on every call so tests can monkeypatch the environment
"""

import logging
import os
from pathlib import Path

ENV_PREFIX = "LUMINA"

DEFAULT_DATA_DIR = Path.home() / ".lumina"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def get_data_dir() -> Path:
    """Directory holding the durable store files and the log file."""
    return _env_path(_k("HOME"), DEFAULT_DATA_DIR)


def get_log_level() -> int:
    """Console log level from LUMINA_LOG_LEVEL (name or number), default WARNING."""
    raw = os.getenv(_k("LOG_LEVEL"), "").strip()
    if not raw:
        return logging.WARNING
    if raw.isdigit():
        return int(raw)
    level = logging.getLevelName(raw.upper())
    return level if isinstance(level, int) else logging.WARNING
