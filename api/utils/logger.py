"""
Logging setup for the curriculum service.

Every record from the api, agents and infra trees carries the HTTP request id
and the topic being generated, so one curriculum run can be followed from the
route through each tier and generation call:

    2026-01-05 10:12:03 INFO     agents.curriculum_agent.graph rid=4f1c topic='Statistics' tier 1 ... accepted
"""

from __future__ import annotations

import copy
import logging
import os
import sys
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterator, Optional

LOGGER_TREES = ("api", "agents", "infra")

REQUEST_ID: ContextVar[str] = ContextVar("request_id", default="-")
TOPIC: ContextVar[str] = ContextVar("topic", default="-")

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s rid=%(request_id)s topic=%(topic)s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ContextFilter(logging.Filter):
    """Stamps request id and topic from the current context onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        record.request_id = REQUEST_ID.get()
        record.topic = TOPIC.get()
        return True


class ColorFormatter(logging.Formatter):
    """ANSI colors for the console handler: level colored, context dimmed."""

    _RESET = "\x1b[0m"
    _DIM = "\x1b[2m"
    _LEVEL_COLORS = {
        logging.DEBUG: "\x1b[36m",
        logging.INFO: "\x1b[32m",
        logging.WARNING: "\x1b[33m",
        logging.ERROR: "\x1b[31m",
        logging.CRITICAL: "\x1b[35m",
    }

    def __init__(self, *args, enable_color: bool = True, **kwargs):
        super().__init__(*args, **kwargs)
        self.enable_color = enable_color

    def format(self, record: logging.LogRecord) -> str:
        if not self.enable_color:
            return super().format(record)
        r = copy.copy(record)
        color = self._LEVEL_COLORS.get(r.levelno, "")
        r.levelname = f"{color}{r.levelname}{self._RESET}"
        r.name = f"{self._DIM}{r.name}{self._RESET}"
        r.request_id = f"{self._DIM}{getattr(r, 'request_id', '-')}{self._RESET}"
        r.topic = f"{self._DIM}{getattr(r, 'topic', '-')}{self._RESET}"
        return super().format(r)


def _should_enable_color(stream) -> bool:
    if os.getenv("NO_COLOR"):
        return False
    try:
        return bool(stream.isatty())
    except (AttributeError, ValueError, OSError):
        return False


def _parse_level(level: str) -> int:
    value = logging.getLevelName((level or "INFO").upper())
    return value if isinstance(value, int) else logging.INFO


def configure_logging(
    *,
    log_dir: str | Path = "logs",
    log_file: str = "curriculum.log",
    level: str = "INFO",
    console: bool = True,
) -> logging.Logger:
    """
    Attach a rotating file handler (and optionally stdout) to the api, agents and
    infra logger trees. Idempotent; returns the "api" logger.
    """
    logger = logging.getLogger("api")
    if getattr(logger, "_configured", False):
        return logger

    numeric_level = _parse_level(level)
    file_path = Path(log_dir) / log_file
    file_path.parent.mkdir(parents=True, exist_ok=True)
    context = ContextFilter()

    fh = RotatingFileHandler(
        filename=str(file_path),
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    fh.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    handlers: list[logging.Handler] = [fh]

    if console:
        ch = logging.StreamHandler(sys.stdout)
        ch.setFormatter(ColorFormatter(LOG_FORMAT, DATE_FORMAT, enable_color=_should_enable_color(sys.stdout)))
        handlers.append(ch)

    for handler in handlers:
        handler.setLevel(numeric_level)
        handler.addFilter(context)

    for name in LOGGER_TREES:
        tree = logging.getLogger(name)
        tree.setLevel(numeric_level)
        tree.propagate = False
        for handler in handlers:
            tree.addHandler(handler)

    logger._configured = True  # type: ignore[attr-defined]
    logger.info("logging configured file=%s level=%s", file_path, logging.getLevelName(numeric_level))
    return logger


def set_request_id(request_id: Optional[str] = None) -> str:
    rid = request_id or uuid.uuid4().hex[:12]
    REQUEST_ID.set(rid)
    return rid


def clear_request_id() -> None:
    REQUEST_ID.set("-")


@contextmanager
def bind_topic(topic: str) -> Iterator[None]:
    """Tag every record emitted inside the block (including spawned tasks) with the topic."""
    token = TOPIC.set(repr(topic))
    try:
        yield
    finally:
        TOPIC.reset(token)


class log_request:
    """
    Times one curriculum operation and logs its outcome:
      with log_request(logger, "generate"):
          ...
    """

    def __init__(self, logger: logging.Logger, name: str):
        self.logger = logger
        self.name = name
        self.start = 0.0

    def __enter__(self):
        self.start = time.perf_counter()
        self.logger.debug("%s started", self.name)
        return self

    def __exit__(self, exc_type, exc, tb):
        duration_ms = int((time.perf_counter() - self.start) * 1000)
        if exc is None:
            self.logger.info("%s ok duration_ms=%s", self.name, duration_ms)
        else:
            self.logger.error("%s failed duration_ms=%s error=%s", self.name, duration_ms, type(exc).__name__)
        return False
