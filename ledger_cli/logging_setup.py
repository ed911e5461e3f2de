"""Logging for the ``ledger_cli`` package.

Library modules call ``get_logger("ledger_cli.<module>")`` and never attach
handlers. The CLI root callback calls :func:`configure_logging` once, with a
level taken from ``--log-level``, from ``-v``/``-vv`` (see
:func:`level_for_verbosity`) or from ``LEDGER_CLI_LOG_LEVEL``.

Every command runs inside :func:`log_context`, which tags records with the
book and transaction ids the command works on::

    2025-08-10 12:00:00 ledger_cli.merge WARNING [book=b1 tx=t1,t2] merge of ...

The context lives in a :class:`contextvars.ContextVar`, so tasks started with
``asyncio.gather`` inherit the tags of the command that spawned them.
"""

from __future__ import annotations

import contextvars
import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import IO

_PKG_LOGGER_NAME = "ledger_cli"
_CONFIGURED = False

LOG_LEVEL_ENV = "LEDGER_CLI_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s%(context)s %(message)s"

_CONTEXT: contextvars.ContextVar[tuple[tuple[str, str], ...]] = contextvars.ContextVar(
    "ledger_cli_log_context", default=()
)


def _parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        # Numeric strings or standard level names (INFO/DEBUG/etc.).
        level = level.strip().upper()
        if level.isdigit():
            return int(level)
        numeric = logging.getLevelNamesMapping().get(level)
        if numeric is not None:
            return numeric
        raise ValueError(f"Unknown log level: {level!r}")
    env_val = os.getenv(LOG_LEVEL_ENV)
    if env_val:
        return _parse_level(env_val)
    return logging.WARNING


def level_for_verbosity(verbose: int) -> int | None:
    """Map a ``-v`` count to a level; ``0`` means "not requested"."""

    if verbose <= 0:
        return None
    return logging.INFO if verbose == 1 else logging.DEBUG


@contextmanager
def log_context(**fields: str | None) -> Iterator[None]:
    """Tag log records emitted inside the block with ``fields``.

    ``None`` and empty values are skipped. Nested blocks extend the outer tags.
    """

    added = tuple((k, str(v)) for k, v in fields.items() if v)
    token = _CONTEXT.set(_CONTEXT.get() + added)
    try:
        yield
    finally:
        _CONTEXT.reset(token)


def current_context() -> dict[str, str]:
    return dict(_CONTEXT.get())


class ContextFilter(logging.Filter):
    """Expose the active :func:`log_context` tags as ``%(context)s``."""

    def filter(self, record: logging.LogRecord) -> bool:
        tags = _CONTEXT.get()
        record.context = (" [" + " ".join(f"{k}={v}" for k, v in tags) + "]") if tags else ""
        return True


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] | None = None,
) -> None:
    """Attach the package's single stderr handler (first call wins).

    Parameters
    ----------
    level:
        ``int`` or level name. ``None`` falls back to ``LEDGER_CLI_LOG_LEVEL``
        and then to ``WARNING`` so command output stays clean.
    fmt:
        Format string; may use ``%(context)s``. Defaults to
        :data:`DEFAULT_FORMAT`.
    stream:
        Handler stream, ``sys.stderr`` resolved at call time by default.
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    resolved = _parse_level(level)
    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setLevel(resolved)
    handler.addFilter(ContextFilter())
    handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))

    logger.setLevel(resolved)
    logger.addHandler(handler)
    logger.propagate = False

    _CONFIGURED = True


def reset_logging() -> None:
    """Drop handlers installed by :func:`configure_logging` (test helper)."""

    global _CONFIGURED
    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        logger.removeHandler(h)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
    _CONFIGURED = False


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)``; silent until configured."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = [
    "ContextFilter",
    "DEFAULT_FORMAT",
    "LOG_LEVEL_ENV",
    "configure_logging",
    "current_context",
    "get_logger",
    "level_for_verbosity",
    "log_context",
    "reset_logging",
]
