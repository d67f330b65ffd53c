"""Timestamped logging and test-outcome helpers."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, NoReturn

import pytest

from kubebuilder_e2e.config import E2EConfig

logger = logging.getLogger("kubebuilder_e2e")

LOG_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


def now_stamp(now: datetime | None = None) -> str:
    """Wall-clock stamp with millisecond precision, e.g. ``Jan  2 15:04:05.000``."""
    now = now or datetime.now()
    return f"{now:%b} {now.day:2d} {now:%H:%M:%S}.{now.microsecond // 1000:03d}"


class StampedLogger(logging.LoggerAdapter):
    """Prefix every message with :func:`now_stamp`."""

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        return f"{now_stamp()}: {msg}", kwargs


def get_logger(base: logging.Logger | logging.LoggerAdapter | None = None) -> logging.LoggerAdapter:
    if isinstance(base, StampedLogger):
        return base
    return StampedLogger(base or logger, {})


def failf(msg: str, *args: Any, log: logging.Logger | logging.LoggerAdapter | None = None) -> NoReturn:
    """Log and fail the running test unconditionally."""
    text = msg % args if args else msg
    get_logger(log).info(text)
    pytest.fail(f"{now_stamp()}: {text}", pytrace=False)


def skipf(msg: str, *args: Any, log: logging.Logger | logging.LoggerAdapter | None = None) -> NoReturn:
    """Log and skip the running test."""
    text = msg % args if args else msg
    get_logger(log).info(text)
    pytest.skip(f"{now_stamp()}: {text}")


def setup_logging(config: E2EConfig, console: bool = True) -> None:
    """Configure root logging from the ``[logging]`` config section."""
    handlers: list[logging.Handler] = []
    if config.logging.file:
        log_path = Path(config.logging.file).expanduser().resolve()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(str(log_path)))
    if console:
        handlers.append(logging.StreamHandler())
    if not handlers:
        handlers.append(logging.NullHandler())

    logging.basicConfig(
        level=getattr(logging, config.logging.level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
