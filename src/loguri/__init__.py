"""
loguri: severity-leveled logging to URI-addressed destinations.

Each destination is a locator string:
- file: ``/var/log/app.log#warning+`` (append, reopened for rotation)
- udp: ``udp://127.0.0.1:514?facility=16`` (syslog datagrams, fragmented when large)
- tty: ``.`` or ``tty:`` (colorized standard output)

The fragment filters severities and the path extension picks the format
(``.tab``, ``.tty``, ``.io``, ``.gelf``, ``.syslog``).
"""

from .config import LoguriSettings
from .core import NULL_LOGGER, LogRegistry, Logger, NullLogger, log
from .exceptions import ConfigurationError, LoguriError, OversizeError
from .levels import ALL, NONE, Severity, format_level, parse_level

__all__ = [
    "ALL",
    "NONE",
    "NULL_LOGGER",
    "ConfigurationError",
    "LogRegistry",
    "Logger",
    "LoguriError",
    "LoguriSettings",
    "NullLogger",
    "OversizeError",
    "Severity",
    "format_level",
    "log",
    "parse_level",
]
