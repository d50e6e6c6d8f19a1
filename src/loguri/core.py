"""
Logger façade and registry.

Usage:
    from loguri import log

    log.add({"svc": ["file:///var/log/svc.log#info+", "udp://127.0.0.1:514"]})
    logger = log.get("svc")
    logger.warning("disk almost full", {"free": 12})

    log.level = "warning+"  # process-wide filter, None disables it
    log("root diagnostics go to stderr")
"""

from __future__ import annotations

import os
import sys
import threading
from collections.abc import Mapping
from typing import Any, Optional, Sequence, Union

from .config import BINARY_BASES, LoguriSettings
from .exceptions import ConfigurationError
from .formatters import TabFormatter, TtyFormatter
from .levels import Severity
from .locator import Destination
from .resolver import Resolver
from .rotation import RotationScheduler
from .transports import BaseTransport, FileTransport

ROOT_ID = "main"

Locators = Union[None, str, int, float, Sequence[str]]

_ROOT_DESTINATION = Destination(scheme="tty")


def _isatty(stream: Any) -> bool:
    return bool(getattr(stream, "isatty", lambda: False)())


def _terminate() -> None:
    """Exit with status 1 from any thread."""
    if threading.current_thread() is threading.main_thread():
        sys.exit(1)
    for stream in (sys.stdout, sys.stderr):
        try:
            stream.flush()
        except (OSError, ValueError):
            pass
    # SystemExit would only end this thread
    os._exit(1)


# =============================================================================
# Loggers
# =============================================================================


class NullLogger:
    """Inert logger returned for unknown ids; every method is a no-op."""

    id = ""
    transports: tuple[BaseTransport, ...] = ()

    def __call__(self, *args: Any) -> None:
        pass

    def log(self, severity: Union[Severity, int, str], *args: Any) -> None:
        pass

    def emerg(self, *args: Any) -> None:
        pass

    def alert(self, *args: Any) -> None:
        pass

    def crit(self, *args: Any) -> None:
        pass

    def err(self, *args: Any) -> None:
        pass

    def warning(self, *args: Any) -> None:
        pass

    def notice(self, *args: Any) -> None:
        pass

    def info(self, *args: Any) -> None:
        pass

    def debug(self, *args: Any) -> None:
        pass


NULL_LOGGER = NullLogger()


class Logger:
    """Fans each call out to the transports bound to one logger id."""

    def __init__(self, logger_id: str, transports: Sequence[BaseTransport], registry: "LogRegistry"):
        self.id = logger_id
        self.transports = tuple(transports)
        self._registry = registry

    def __repr__(self) -> str:
        return f"Logger({self.id!r}, transports={len(self.transports)})"

    def __call__(self, *args: Any) -> None:
        """Write a tip line to stderr when it is a terminal."""
        self._registry.tip(self.id, args, tty_only=True)

    def _dispatch(self, severity: Severity, args: Sequence[Any]) -> None:
        bit = severity.bit
        mask = self._registry.settings.level
        if bit and mask is not None and not (bit & mask):
            return
        for transport in self.transports:
            try:
                transport.write(int(severity), bit, args)
            except Exception:
                # Logging must never raise into the caller.
                pass
        if severity is Severity.EMERG:
            _terminate()

    def log(self, severity: Union[Severity, int, str], *args: Any) -> None:
        """Log at a severity given by value or name."""
        if isinstance(severity, str):
            severity = Severity[severity.upper()]
        severity = Severity(severity)
        if severity is Severity.TIP:
            self(*args)
            return
        self._dispatch(severity, args)

    def emerg(self, *args: Any) -> None:
        """Deliver to every transport regardless of masks, then exit with status 1."""
        self._dispatch(Severity.EMERG, args)

    def alert(self, *args: Any) -> None:
        self._dispatch(Severity.ALERT, args)

    def crit(self, *args: Any) -> None:
        self._dispatch(Severity.CRIT, args)

    def err(self, *args: Any) -> None:
        self._dispatch(Severity.ERR, args)

    def warning(self, *args: Any) -> None:
        self._dispatch(Severity.WARNING, args)

    def notice(self, *args: Any) -> None:
        self._dispatch(Severity.NOTICE, args)

    def info(self, *args: Any) -> None:
        self._dispatch(Severity.INFO, args)

    def debug(self, *args: Any) -> None:
        self._dispatch(Severity.DEBUG, args)


# =============================================================================
# Registry
# =============================================================================


def _locator_list(value: Locators) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e21:
        value = int(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return [str(value)]
    if isinstance(value, (list, tuple)):
        return list(value)
    raise ConfigurationError(f"log: invalid uri {value!r}", code="INVALID_LOCATOR")


class LogRegistry:
    """Process-wide set of loggers and their shared destinations.

    Calling the registry writes a ``tip`` line to stderr; it is the root logger
    and receives every internal diagnostic.
    """

    def __init__(self, settings: Optional[LoguriSettings] = None):
        self.settings = settings if settings is not None else LoguriSettings()
        self._loggers: dict[str, Union[Logger, NullLogger]] = {}
        self._lock = threading.Lock()
        self._resolver = Resolver(self.settings, diagnostic=self.report)
        self._scheduler = RotationScheduler(
            self._resolver.transports,
            diagnostic=self.report,
            interval=self.settings.reopen_interval,
        )

    # -- root logger ---------------------------------------------------------

    def _root_line(self, logger_id: str, severity: Severity, args: Sequence[Any], tty: bool) -> str:
        formatter_class = TtyFormatter if tty else TabFormatter
        formatter = formatter_class(_ROOT_DESTINATION, self.settings)
        return formatter.format(logger_id, int(severity), args)

    def tip(self, logger_id: str, args: Sequence[Any], *, tty_only: bool = False) -> None:
        stream = sys.stderr
        tty = _isatty(stream)
        if tty_only and not tty:
            return
        stream.write(self._root_line(logger_id, Severity.TIP, args, tty) + "\n")
        stream.flush()

    def __call__(self, *args: Any) -> None:
        self.tip(ROOT_ID, args)

    def report(self, error: BaseException) -> None:
        """Deliver an internal failure to the root logger."""
        try:
            self(error)
        except Exception:
            pass

    def emerg(self, *args: Any) -> None:
        """Write to stdout and exit with status 1."""
        stream = sys.stdout
        stream.write(self._root_line(ROOT_ID, Severity.EMERG, args, _isatty(sys.stderr)) + "\n")
        stream.flush()
        _terminate()

    # -- registration --------------------------------------------------------

    def add(self, bindings: Optional[Mapping[str, Locators]] = None) -> "LogRegistry":
        """Register loggers from a mapping of id to locator(s).

        Ids already registered are left untouched.

        Raises:
            ConfigurationError: malformed bindings or locators; the offending
                logger is not registered.
        """
        if bindings is None:
            return self
        if not isinstance(bindings, Mapping):
            raise ConfigurationError("log: invalid options", code="INVALID_OPTIONS")
        with self._lock:
            for logger_id, value in bindings.items():
                if logger_id in self._loggers:
                    continue
                locators = _locator_list(value)
                if not locators:
                    self._loggers[logger_id] = NULL_LOGGER
                    continue
                transports = self._resolver.resolve_many(logger_id, locators)
                self._loggers[logger_id] = Logger(logger_id, transports, self)
        self._schedule()
        return self

    def _schedule(self) -> None:
        if self._scheduler.running:
            return
        if not any(isinstance(t, FileTransport) for t in self._resolver.transports()):
            return
        self._scheduler.interval = self.settings.reopen_interval
        self._scheduler.start()
        if self.settings.signal_rotation:
            self._scheduler.install_signal()

    def get(self, logger_id: str) -> Union[Logger, NullLogger]:
        """Logger registered under ``logger_id``, or the inert null logger."""
        return self._loggers.get(logger_id, NULL_LOGGER)

    def __contains__(self, logger_id: str) -> bool:
        return logger_id in self._loggers

    def transports(self) -> list[BaseTransport]:
        return self._resolver.transports()

    def reopen(self, force: bool = False) -> int:
        """Reopen every file handle now; returns the number of failures."""
        return self._scheduler.reopen(force)

    def close(self) -> None:
        self._scheduler.stop()
        self._resolver.close()

    # -- runtime controls ----------------------------------------------------

    @property
    def level(self) -> Optional[int]:
        return self.settings.level

    @level.setter
    def level(self, value: Any) -> None:
        self.settings.level = value

    @property
    def verbose(self) -> bool:
        return self.settings.verbose

    @verbose.setter
    def verbose(self, value: Any) -> None:
        self.settings.verbose = bool(value)

    @property
    def chunked(self) -> int:
        count = self.settings.chunked
        return count if count > 1 else 0

    @chunked.setter
    def chunked(self, value: Any) -> None:
        self.settings.chunked = value

    @property
    def binary(self) -> int:
        return self.settings.binary

    @binary.setter
    def binary(self, value: Any) -> None:
        try:
            base = int(value)
        except (TypeError, ValueError):
            return
        if base in BINARY_BASES:
            self.settings.binary = base


log = LogRegistry()
