"""
FILE: lumina/logging_setup.py
PURPOSE: Logging configuration for the CLI
EXPORTS:
  - setup_logging(log_dir, console_level, file_level) -> None
DEPENDENCIES:
  - logging (stdlib)
  - rich.logging (console handler)
NOTES:
  - Console output goes to stderr through rich so it never mixes with
    --json / --raw output on stdout
  - The file handler keeps everything for debugging
  - Call once, before the first log record is emitted
"""

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

LOG_FILE_NAME = "lumina.log"


class _ConsoleNoiseFilter(logging.Filter):
    """Show lumina records on the console; other libraries only at ERROR+."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name == "lumina" or record.name.startswith("lumina."):
            return True
        return record.levelno >= logging.ERROR


def setup_logging(
    log_dir,
    console_level: int = logging.WARNING,
    file_level: int = logging.DEBUG,
) -> None:
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    # Remove any pre-existing handlers to avoid duplicates
    for handler in list(root.handlers):
        root.removeHandler(handler)

    console_handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=False,
    )
    console_handler.setLevel(console_level)
    console_handler.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console_handler)

    log_dir = Path(log_dir)
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(log_dir / LOG_FILE_NAME), encoding="utf-8")
    except OSError as e:
        logging.getLogger(__name__).warning("File logging disabled: %s", e)
        return

    file_handler.setLevel(file_level)
    file_handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(file_handler)

    logging.captureWarnings(True)
