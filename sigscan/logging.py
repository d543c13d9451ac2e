"""Logging setup for the sigscan CLI, watcher and service."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TextIO

_LOGGER_NAME = "sigscan"


class ConsoleFormatter(logging.Formatter):
    """`[sigscan] message` for progress, `[sigscan] warning: message` for problems.

    In verbose mode the emitting component is shown as well, e.g.
    `[sigscan:scanner] debug: Retained 2 of 3 library contracts`.
    """

    def __init__(self, *, verbose: bool = False) -> None:
        super().__init__()
        self.verbose = verbose

    def format(self, record: logging.LogRecord) -> str:
        prefix = _LOGGER_NAME
        if self.verbose and record.name.startswith(f"{_LOGGER_NAME}."):
            prefix = f"{_LOGGER_NAME}:{record.name[len(_LOGGER_NAME) + 1:]}"

        message = record.getMessage()
        if record.levelno != logging.INFO or self.verbose:
            message = f"{record.levelname.lower()}: {message}"
        line = f"[{prefix}] {message}"
        if record.exc_info and self.verbose:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a component logger such as `sigscan.scanner`."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *,
    verbose: bool = False,
    log_file: Path | None = None,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Install the console handler (stderr unless `stream` is given) and an optional file sink."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Watch mode and tests call this repeatedly in one process.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(stream)
    console.setLevel(level)
    console.setFormatter(ConsoleFormatter(verbose=verbose))
    logger.addHandler(console)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)
        # The file always receives debug detail, whatever the console shows.
        logger.setLevel(logging.DEBUG)

    return logger


def log_exception(logger: logging.Logger, message: str, exc: BaseException) -> None:
    """Report a per-file or per-format failure without aborting the caller.

    The traceback is attached only when debug output is enabled; otherwise a
    single error line is emitted.
    """
    if logger.isEnabledFor(logging.DEBUG):
        logger.error("%s: %s", message, exc, exc_info=exc)
    else:
        logger.error("%s: %s", message, exc)


__all__ = ["ConsoleFormatter", "configure_logging", "get_logger", "log_exception"]
