"""Structured, levelled JSON logging."""

from __future__ import annotations

import json
import os
import sys
import threading
from datetime import datetime
from enum import IntEnum
from functools import lru_cache
from pathlib import Path
from typing import Any, TextIO


class Level(IntEnum):
    """Severity of a log record; higher is more severe."""

    DEBUG = -4
    INFO = 0
    WARN = 4
    ERROR = 8


@lru_cache(maxsize=1)
def _project_root() -> Path:
    here = Path(__file__).resolve().parent
    for candidate in (here, *here.parents):
        if (candidate / "pyproject.toml").exists():
            return candidate
    return Path(".").resolve()


def _source_of(frame: Any) -> str:
    if frame is None:
        return ""
    filename = frame.f_code.co_filename
    try:
        rel = os.path.relpath(filename, _project_root())
    except ValueError:
        rel = filename
    return f"{rel}:{frame.f_lineno}"


class Logger:
    """Writes one JSON object per record to a text stream. Thread safe."""

    def __init__(self, stream: TextIO, level: Level | int = Level.INFO) -> None:
        self._stream = stream
        self._level = Level(level)
        self._fields: dict[str, Any] = {}
        self._lock = threading.Lock()

    @property
    def level(self) -> Level:
        return self._level

    def with_fields(self, **kwargs: Any) -> "Logger":
        """Return a new logger that adds the given fields to every record."""
        child = Logger(self._stream, self._level)
        child._fields = {**self._fields, **kwargs}
        child._lock = self._lock
        return child

    def debug(self, msg: str, **kwargs: Any) -> None:
        self._log(Level.DEBUG, msg, kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        self._log(Level.INFO, msg, kwargs)

    def warn(self, msg: str, **kwargs: Any) -> None:
        self._log(Level.WARN, msg, kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        self._log(Level.ERROR, msg, kwargs)

    def _log(self, level: Level, msg: str, fields: dict[str, Any], depth: int = 2) -> None:
        if level < self._level:
            return
        try:
            frame = sys._getframe(depth)
        except ValueError:
            frame = None
        record: dict[str, Any] = {
            "time": datetime.now().astimezone().isoformat(timespec="milliseconds"),
            "level": level.name,
        }
        source = _source_of(frame)
        if source:
            record["source"] = source
        record["msg"] = msg
        record.update(self._fields)
        record.update(fields)
        line = json.dumps(record, default=str)
        try:
            with self._lock:
                self._stream.write(line + "\n")
                self._stream.flush()
        except (OSError, ValueError) as exc:
            sys.stderr.write(f"log: failed to handle log record: {exc}\n")


_default: Logger | None = None
_default_lock = threading.Lock()


def default() -> Logger:
    """Return the process-wide logger, creating it on first use."""
    global _default
    with _default_lock:
        if _default is None:
            _default = Logger(sys.stderr, Level.INFO)
        return _default


def set_default(logger: Logger) -> None:
    """Replace the process-wide logger."""
    global _default
    with _default_lock:
        _default = logger


def debug(msg: str, **kwargs: Any) -> None:
    default()._log(Level.DEBUG, msg, kwargs)


def info(msg: str, **kwargs: Any) -> None:
    default()._log(Level.INFO, msg, kwargs)


def warn(msg: str, **kwargs: Any) -> None:
    default()._log(Level.WARN, msg, kwargs)


def error(msg: str, **kwargs: Any) -> None:
    default()._log(Level.ERROR, msg, kwargs)