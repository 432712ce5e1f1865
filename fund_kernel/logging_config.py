"""
Module: fund_kernel.logging_config
Responsibility: One-line JSON log records for every ledger event, with the
    organization, actor, entry and auto-post run they belong to.
Architecture position: Kernel, leaf module.  Imported by services, modules
    and db.engine; imports nothing from the ledger.

Invariants enforced:
    - Context fields are ContextVars, so concurrent sessions on different
      threads or tasks never see each other's organization or actor.
    - A bound field is restored when its ``bind`` block exits, even on error.
    - configure_logging installs at most one ledger handler.

Audit relevance:
    Every record names its event in ``message`` and carries the bound
    context, so a single organization's activity can be filtered out of a
    shared log stream.  FundLedgerError attributes are copied as ``exc_*``.
"""

__all__ = [
    "CONTEXT_FIELDS",
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from typing import Any, TextIO

LOGGER_NAMESPACE = "fund_kernel"

CONTEXT_FIELDS = ("organization_id", "actor_id", "entry_id", "run_id")

_context_vars: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"fund_log_{name}", default=None) for name in CONTEXT_FIELDS
}


class LogContext:
    """
    Ledger fields attached to every record logged inside a ``bind`` block.

    Usage::

        with LogContext.bind(organization_id=7, actor_id="user-1"):
            logger.info("journal_entry_created", extra={...})

    Values are stored as strings; ``None`` leaves a field as it was.
    """

    @classmethod
    @contextmanager
    def bind(cls, **fields: Any) -> Iterator[None]:
        unknown = set(fields) - set(CONTEXT_FIELDS)
        if unknown:
            raise TypeError(f"Unknown log context fields: {sorted(unknown)}")
        tokens = [
            (_context_vars[name], _context_vars[name].set(str(value)))
            for name, value in fields.items()
            if value is not None
        ]
        try:
            yield
        finally:
            for var, token in reversed(tokens):
                var.reset(token)

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return {
            name: value
            for name, var in _context_vars.items()
            if (value := var.get()) is not None
        }

    @classmethod
    def clear(cls) -> None:
        for var in _context_vars.values():
            var.set(None)


# Attributes every LogRecord has; anything else came in through ``extra``.
_RECORD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(value: Any) -> str:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for name, value in vars(exc).items():
        if not name.startswith("_") and name != "code":
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """Render a record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRIBUTES and key not in payload
        )
        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=_json_default)


def get_logger(name: str) -> logging.Logger:
    """Logger ``fund_kernel.<name>``; all ledger loggers share one namespace."""
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


_HANDLER_NAME = "fund_kernel.structured"


def _ledger_handlers(logger: logging.Logger) -> list[logging.Handler]:
    return [h for h in logger.handlers if h.get_name() == _HANDLER_NAME]


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: TextIO | None = None,
    handler: logging.Handler | None = None,
) -> logging.Handler:
    """
    Route ledger records through a StructuredFormatter handler.

    Only the first call takes effect until reset_logging; later calls
    return the handler already installed.
    """
    logger = logging.getLogger(LOGGER_NAMESPACE)
    existing = _ledger_handlers(logger)
    if existing:
        return existing[0]

    logger.setLevel(level)

    installed = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    installed.set_name(_HANDLER_NAME)
    installed.setFormatter(StructuredFormatter())
    logger.addHandler(installed)
    logger.propagate = False
    return installed


def reset_logging() -> None:
    """Remove the ledger handler and restore default propagation."""
    logger = logging.getLogger(LOGGER_NAMESPACE)
    for handler in _ledger_handlers(logger):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
