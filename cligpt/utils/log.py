"""Logging setup for the command line entry point."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from platformdirs import user_log_dir
from rich.logging import RichHandler

from .ansi import err_console

LOG_DIR = Path(user_log_dir("cligpt"))
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def init_logger(verbose: bool = False, log_dir: Optional[Path] = None) -> logging.Logger:
    """Configure the ``cligpt`` logger and return it.

    Records go to a rotating file (max 1MB, 3 backups). With *verbose* the
    level drops to DEBUG and records are echoed on stderr. When the log
    directory is not writable, records go to stderr only.
    """
    logger = logging.getLogger("cligpt")
    # Repeated calls (tests, embedding) must not stack handlers.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    directory = log_dir or LOG_DIR
    log_to_file = True
    try:
        directory.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            directory / "cligpt.log", maxBytes=1_000_000, backupCount=3, encoding="utf-8"
        )
    except OSError:
        log_to_file = False
    else:
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(file_handler)

    if verbose or not log_to_file:
        stderr_handler = RichHandler(console=err_console, show_path=False)
        stderr_handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        logger.addHandler(stderr_handler)

    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False
    return logger
