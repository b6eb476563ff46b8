"""Logging interface used by the clients, with a silent and a stdlib-backed logger."""

from __future__ import annotations

import abc
import json
import logging
from collections.abc import Iterable, Iterator, Mapping
from typing import Any

__all__ = ["Logger", "NullLogger", "StdlibLogger"]

_BAD_KEY = "!BADKEY"


class Logger(abc.ABC):
    """A leveled logger that carries key/value fields."""

    @abc.abstractmethod
    def debug(self, msg: str, *args: Any) -> None:
        """Log at debug level; ``args`` are alternating keys and values."""

    @abc.abstractmethod
    def info(self, msg: str, *args: Any) -> None:
        """Log at info level; ``args`` are alternating keys and values."""

    @abc.abstractmethod
    def warn(self, msg: str, *args: Any) -> None:
        """Log at warning level; ``args`` are alternating keys and values."""

    @abc.abstractmethod
    def error(self, msg: str, *args: Any) -> None:
        """Log at error level; ``args`` are alternating keys and values."""

    @abc.abstractmethod
    def with_error(self, err: BaseException) -> Logger:
        """Return a logger that adds ``err`` to every message."""

    @abc.abstractmethod
    def with_field(self, key: str, value: Any) -> Logger:
        """Return a logger that adds ``key=value`` to every message."""


class NullLogger(Logger):
    """A logger that discards everything."""

    def debug(self, msg: str, *args: Any) -> None:
        """Discard the message."""

    def info(self, msg: str, *args: Any) -> None:
        """Discard the message."""

    def warn(self, msg: str, *args: Any) -> None:
        """Discard the message."""

    def error(self, msg: str, *args: Any) -> None:
        """Discard the message."""

    def with_error(self, err: BaseException) -> Logger:
        """Return this same logger."""
        return self

    def with_field(self, key: str, value: Any) -> Logger:
        """Return this same logger."""
        return self


def _pairs(args: Iterable[Any]) -> Iterator[tuple[str, Any]]:
    iterator = iter(args)
    for item in iterator:
        if not isinstance(item, str):
            yield _BAD_KEY, item
            continue
        try:
            value = next(iterator)
        except StopIteration:
            yield _BAD_KEY, item
            return
        yield item, value


def _format_value(value: Any) -> str:
    text = str(value)
    if not text or any(ch.isspace() or ch in '="' for ch in text):
        return json.dumps(text, ensure_ascii=False)
    return text


class StdlibLogger(Logger):
    """A Logger that writes ``msg key=value ...`` lines to a :mod:`logging` logger."""

    def __init__(
        self,
        logger: logging.Logger | None = None,
        fields: Mapping[str, Any] | None = None,
    ) -> None:
        self._logger = logger if logger is not None else logging.getLogger("bayeux")
        self._fields: dict[str, Any] = dict(fields or {})

    def _emit(self, level: int, msg: str, args: tuple[Any, ...]) -> None:
        if not self._logger.isEnabledFor(level):
            return
        fields = dict(self._fields)
        fields.update(_pairs(args))
        parts = [msg, *(f"{key}={_format_value(value)}" for key, value in fields.items())]
        self._logger.log(level, " ".join(parts), extra={"bayeux_fields": fields})

    def debug(self, msg: str, *args: Any) -> None:
        """Log at debug level."""
        self._emit(logging.DEBUG, msg, args)

    def info(self, msg: str, *args: Any) -> None:
        """Log at info level."""
        self._emit(logging.INFO, msg, args)

    def warn(self, msg: str, *args: Any) -> None:
        """Log at warning level."""
        self._emit(logging.WARNING, msg, args)

    def error(self, msg: str, *args: Any) -> None:
        """Log at error level."""
        self._emit(logging.ERROR, msg, args)

    def with_error(self, err: BaseException) -> Logger:
        """Return a logger that adds ``error=<err>`` to every message."""
        return self.with_field("error", err)

    def with_field(self, key: str, value: Any) -> Logger:
        """Return a logger that adds ``key=value`` to every message."""
        return StdlibLogger(self._logger, {**self._fields, key: value})