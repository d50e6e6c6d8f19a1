"""
Bridges from the standard library and structlog into loguri loggers.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Optional

from structlog.typing import EventDict, WrappedLogger

from .levels import Severity

if TYPE_CHECKING:
    from .core import LogRegistry


def _default_registry() -> "LogRegistry":
    from .core import log

    return log


def severity_for(levelno: int) -> Severity:
    """Map a stdlib logging level onto a syslog severity."""
    if levelno >= logging.CRITICAL:
        return Severity.CRIT
    if levelno >= logging.ERROR:
        return Severity.ERR
    if levelno >= logging.WARNING:
        return Severity.WARNING
    if levelno >= logging.INFO:
        return Severity.INFO
    return Severity.DEBUG


class LoguriHandler(logging.Handler):
    """
    Forward standard library records to a loguri logger.

    The record is rendered with the handler's formatter; an attached exception
    is passed along as an error value.
    """

    def __init__(self, logger_id: str, registry: Optional["LogRegistry"] = None, level: int = logging.NOTSET):
        super().__init__(level)
        self.logger_id = logger_id
        self._registry = registry

    @property
    def registry(self) -> "LogRegistry":
        return self._registry or _default_registry()

    def emit(self, record: logging.LogRecord) -> None:
        try:
            args: list[Any] = [record.getMessage() if self.formatter is None else self.format(record)]
            if record.exc_info and record.exc_info[1] is not None:
                args.append(record.exc_info[1])
            self.registry.get(self.logger_id).log(severity_for(record.levelno), *args)
        except Exception:
            self.handleError(record)


_STRUCTLOG_LEVELS = {
    "critical": Severity.CRIT,
    "exception": Severity.ERR,
    "error": Severity.ERR,
    "warn": Severity.WARNING,
    "warning": Severity.WARNING,
    "info": Severity.INFO,
    "debug": Severity.DEBUG,
}


def route_to(
    logger_id: str, registry: Optional["LogRegistry"] = None
) -> Callable[[WrappedLogger, str, EventDict], str]:
    """Build a final structlog processor writing events to a loguri logger.

    Returns an empty string so the wrapped structlog logger prints nothing::

        structlog.configure(processors=[..., route_to("svc")])
    """

    def render(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> str:
        severity = _STRUCTLOG_LEVELS.get(method_name, Severity.INFO)
        event = dict(event_dict)
        message = event.pop("event", "")
        args: list[Any] = [message]
        if event:
            args.append(event)
        target = registry or _default_registry()
        target.get(logger_id).log(severity, *args)
        return ""

    return render
