"""Logging configuration built around structlog JSON logging."""

from __future__ import annotations

import logging
import logging.config
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import structlog

_LOGGING_INITIALISED = False
_LOG_DIR: Path | None = None


def _default_log_dir() -> Path:
    root = os.environ.get("EXPONENT_CRAWLER_HOME")
    return (Path(root).expanduser() if root else Path.cwd()) / "logs"


def configure_logging(verbose: bool = False, log_dir: Path | None = None) -> structlog.BoundLogger:
    """Configure structlog + stdlib handlers and return the application logger."""

    global _LOGGING_INITIALISED, _LOG_DIR

    if not _LOGGING_INITIALISED:
        log_dir = log_dir or _default_log_dir()
        log_dir.mkdir(parents=True, exist_ok=True)
        crawler_log = log_dir / "crawler.log"
        error_log = log_dir / "error.log"
        level = "DEBUG" if verbose else "INFO"
        logging.config.dictConfig(
            {
                "version": 1,
                "disable_existing_loggers": False,
                "formatters": {
                    "json": {
                        "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                        "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
                    }
                },
                "handlers": {
                    "console": {
                        "class": "logging.StreamHandler",
                        "level": level if verbose else "WARNING",
                        "formatter": "json",
                    },
                    "crawler_file": {
                        "class": "logging.FileHandler",
                        "level": level,
                        "filename": str(crawler_log),
                        "formatter": "json",
                        "encoding": "utf-8",
                    },
                    "error_file": {
                        "class": "logging.FileHandler",
                        "level": "ERROR",
                        "filename": str(error_log),
                        "formatter": "json",
                        "encoding": "utf-8",
                    },
                },
                "loggers": {
                    "exponent_crawler": {
                        "handlers": ["console", "crawler_file", "error_file"],
                        "level": level,
                        "propagate": False,
                    },
                },
            }
        )

        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.stdlib.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                # JSON rendering happens in the stdlib handler formatter.
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _LOG_DIR = log_dir
        _LOGGING_INITIALISED = True
    return structlog.get_logger("exponent_crawler")


def run_log_path(run_tag: str) -> Path:
    return (_LOG_DIR or _default_log_dir()) / "runs" / f"{run_tag}.log"


@contextmanager
def run_logger(run_tag: str, verbose: bool = False) -> Iterator[structlog.BoundLogger]:
    """Yield a logger bound to one crawl run, mirrored into ``logs/runs/<tag>.log``.

    The mirror handler lives only as long as the ``with`` block, so later
    runs in the same process never write into an earlier run's file.
    """

    configure_logging(verbose)
    path = run_log_path(run_tag)
    path.parent.mkdir(parents=True, exist_ok=True)

    py_logger = logging.getLogger("exponent_crawler")
    file_handler: logging.FileHandler | None = None
    if not any(
        isinstance(handler, logging.FileHandler) and handler.baseFilename == str(path.resolve())
        for handler in py_logger.handlers
    ):
        file_handler = logging.FileHandler(path, encoding="utf-8")
        if py_logger.handlers:
            file_handler.setFormatter(py_logger.handlers[0].formatter)
        file_handler.setLevel(logging.INFO)
        py_logger.addHandler(file_handler)

    try:
        yield structlog.get_logger("exponent_crawler.run").bind(run=run_tag)
    finally:
        if file_handler is not None:
            py_logger.removeHandler(file_handler)
            file_handler.close()


__all__ = ["configure_logging", "run_log_path", "run_logger"]
