from __future__ import annotations

import os
import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from loguru import logger as _logger

_CONFIGURED = False
DEFAULT_LOG_DIR = Path(__file__).resolve().parent / "logs"
LOG_DIR_ENV = "APP_LOG_DIR"
LOG_LEVEL_ENV = "APP_LOG_LEVEL"
LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


def _log_dir() -> Path:
    env_value = os.getenv(LOG_DIR_ENV)
    return Path(env_value).expanduser().resolve() if env_value else DEFAULT_LOG_DIR


def configure_logger() -> None:
    """Install the stdout and audit log file sinks once per process."""

    global _CONFIGURED
    if _CONFIGURED:
        return

    target_dir = _log_dir()
    target_dir.mkdir(parents=True, exist_ok=True)

    _logger.remove()
    _logger.add(
        sys.stdout,
        level=os.getenv(LOG_LEVEL_ENV, "INFO"),
        format=LOG_FORMAT,
        colorize=sys.stdout.isatty(),
    )
    _logger.add(
        target_dir / "auditor-{time:YYYY-MM-DD}.log",
        rotation="50 MB",
        retention="10 days",
        level="DEBUG",
        format=LOG_FORMAT,
        enqueue=True,
        backtrace=True,
        diagnose=False,
    )

    _CONFIGURED = True


def get_logger():
    """Return the configured logger, configuring it on first access."""

    configure_logger()
    return _logger


def log_with_context(logger_instance, **context: str | int | None) -> Any:
    """Bind non-empty context fields to the logger.

    Usage:
        logger = log_with_context(get_logger(), repository="acme/demo", vendor="Gemini")
        logger.info("Auditing file")
    """
    return logger_instance.bind(**{k: v for k, v in context.items() if v is not None})


@contextmanager
def log_timing(logger_instance, operation: str, **context: str | int | None) -> Iterator[Any]:
    """Log how long the wrapped block took, or how long it ran before failing."""
    ctx_logger = log_with_context(logger_instance, **context)
    ctx_logger.debug(f"Starting {operation}")
    started = time.perf_counter()
    try:
        yield ctx_logger
    except Exception as exc:
        ctx_logger.error(f"Failed {operation} after {time.perf_counter() - started:.3f}s: {exc}")
        raise
    ctx_logger.debug(f"Completed {operation} in {time.perf_counter() - started:.3f}s")


def log_success(logger_instance, message: str, **context: str | int | None) -> None:
    log_with_context(logger_instance, **context).info(f"=== SUCCESS: {message} ===")


def log_failure(logger_instance, message: str, error: Exception | None = None, **context: str | int | None) -> None:
    """Log a failure with context; the error text is appended when given."""
    suffix = f" | Error: {error}" if error else ""
    log_with_context(logger_instance, **context).error(f"=== FAILURE: {message}{suffix} ===")
