"""Log file setup for the console app."""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path
from typing import Optional

from voicebook.config.loader import CONFIG_DIR
from voicebook.config.schema import LoggingConfig

LOG_PATH = CONFIG_DIR / "voicebook.log"


def setup_logging(config: LoggingConfig, path: Optional[Path] = None) -> logging.Logger:
    """Attach a rotating log file to the ``voicebook`` logger tree."""
    log = logging.getLogger("voicebook")
    log.setLevel(getattr(logging, config.level))
    log.propagate = False

    for handler in list(log.handlers):
        log.removeHandler(handler)
        handler.close()

    if not config.file_logging:
        log.addHandler(logging.NullHandler())
        return log

    path = path or LOG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    # Persistent log file, survives across sessions
    file_handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=config.max_file_size_mb * 1024 * 1024,
        backupCount=config.backup_count,
        encoding="utf-8",
    )
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    log.addHandler(file_handler)
    return log
