"""
Formatters and color utilities.

A formatter turns ``(destination_id, severity, args)`` into one output line
without a trailing newline. Formatters are chosen per destination from
:data:`FORMATS` by the locator's path extension.
"""

from __future__ import annotations

import os
import re
import traceback
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Optional, Protocol, Sequence

import orjson

from .exceptions import ConfigurationError, InvalidFacilityError
from .levels import NAMES

if TYPE_CHECKING:
    from .config import LoguriSettings
    from .locator import Destination


class Formatter(Protocol):
    """Rendering strategy bound to one destination."""

    def format(self, destination_id: str, severity: int, args: Sequence[Any]) -> str: ...


FormatterFactory = Callable[["Destination", "LoguriSettings"], Formatter]

# =============================================================================
# Text helpers
# =============================================================================

_CONTROL = re.compile(r"[\x00-\x19]")
_NON_ASCII = re.compile(r"[^\x20-\x7F]")
_DUMP_CONTROL = re.compile(r"[\x00-\x1F\x7F]")


def line(text: Any) -> str:
    """Flatten control characters so the text stays on one line."""
    return _CONTROL.sub(" ", str(text))


def ascii_safe(text: Any) -> str:
    return _NON_ASCII.sub("_", str(text))


def error_line(error: Optional[BaseException], verbose: bool = False) -> str:
    if error is None:
        return "Error: "
    if verbose:
        return line("".join(traceback.format_exception(type(error), error, error.__traceback__)).rstrip())
    return line(f"{type(error).__name__}: {error}")


def _json_default(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return {"type": "Buffer", "data": list(bytes(value))}
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    if isinstance(value, BaseException):
        return error_line(value)
    return str(value)


def to_json(value: Any, *, indent: bool = False) -> str:
    """Serialize a value to JSON, ``[Circular]`` when it cannot be."""
    option = orjson.OPT_NON_STR_KEYS | orjson.OPT_SERIALIZE_NUMPY
    if indent:
        option |= orjson.OPT_INDENT_2
    try:
        return orjson.dumps(value, default=_json_default, option=option).decode()
    except (orjson.JSONEncodeError, TypeError, RecursionError):
        return "[Circular]"


def template(query: Optional[str], default: str) -> str:
    """Line prefix template; ``&`` in the query separates columns."""
    if query is None:
        return default
    return line(query).replace("&", "\t")


# =============================================================================
# ANSI Color Codes
# =============================================================================

SEVERITY_COLORS: tuple[str, ...] = (
    "\x1b[1;97;40m",  # emerg
    "\x1b[1;97;48;5;196m",  # alert
    "\x1b[1;97;48;5;202m",  # crit
    "\x1b[1;91;48;5;220m",  # err
    "\x1b[97;48;5;34m",  # warning
    "\x1b[97;48;5;27m",  # notice
    "\x1b[97;48;5;20m",  # info
    "\x1b[97;48;5;90m",  # debug
    "\x1b[30;107m",  # tip
)

COLORS = {
    "reset": "\x1b[0m",
    "in": "\x1b[94m",  # Light blue
    "out": "\x1b[35m",  # Magenta
    "time": "\x1b[2m",  # Dim
    "date": "\x1b[94m",  # Light blue
    "id": "\x1b[4m",  # Underlined
    "null": "\x1b[1m",  # Bold
    "true": "\x1b[1;34m",  # Blue
    "false": "\x1b[1;31m",  # Red
    "number": "\x1b[92m",  # Light green
    "string": "\x1b[32m",  # Green
    "circular": "\x1b[96m",  # Light cyan
    "buffer": "\x1b[95m",  # Light magenta
    "error": "\x1b[93m",  # Light yellow
    "function": "\x1b[36m",  # Cyan
    "regexp": "\x1b[33m",  # Yellow
}

_RESET = COLORS["reset"]


def _escaped(text: str) -> str:
    return orjson.dumps(text).decode()[1:-1]


def _colorize(value: Any, verbose: bool, seen: Optional[list[int]]) -> str:
    if value is None:
        return COLORS["null"] + "None"
    if value is True:
        return COLORS["true"] + "True"
    if value is False:
        return COLORS["false"] + "False"
    if isinstance(value, (int, float)):
        return COLORS["number"] + str(value)
    if isinstance(value, str):
        text = _escaped(value)
        if seen is not None:
            text = f"'{text}'"
        return COLORS["string"] + text
    if isinstance(value, BaseException):
        return COLORS["error"] + f"[{error_line(value, verbose)}]"
    if isinstance(value, (bytes, bytearray, memoryview)):
        data = bytes(value)
        shown = " ".join(f"{b:02x}" for b in data[:8])
        if len(data) > 8:
            shown += f" … {len(data) - 8}"
        return COLORS["buffer"] + f"<Buffer {shown}>"
    if isinstance(value, re.Pattern):
        return COLORS["regexp"] + _escaped(f"/{value.pattern}/")
    if isinstance(value, (datetime, date)):
        return COLORS["date"] + str(value)
    if isinstance(value, (list, tuple, dict)):
        seen = seen if seen is not None else []
        if id(value) in seen:
            return COLORS["circular"] + "[Circular]"
        seen.append(id(value))
        try:
            if isinstance(value, dict):
                items = ", ".join(f"{k}: {colorize(v, verbose, seen)}" for k, v in value.items())
                return "{ " + items + " }"
            items = ", ".join(colorize(v, verbose, seen) for v in value)
            return "[ " + items + " ]"
        finally:
            seen.pop()
    if callable(value):
        name = getattr(value, "__name__", "")
        return COLORS["function"] + "[Function" + line(f": {name}" if name else "") + "]"
    return str(value)


def colorize(value: Any, verbose: bool = False, seen: Optional[list[int]] = None) -> str:
    """Render a value with ANSI colors chosen by its type."""
    return _colorize(value, verbose, seen) + _RESET


def timestamp(colored: bool = False) -> str:
    """Local wall clock as ``YYYY-MM-DD HH:MM:SS.mmm``."""
    now = datetime.now()
    day = now.strftime("%Y-%m-%d")
    clock = now.strftime("%H:%M:%S")
    millis = f".{now.microsecond // 1000:03d}"
    if not colored:
        return f"{day} {clock}{millis}"
    return f"{COLORS['time']}{day}{_RESET} {clock}{COLORS['time']}{millis}{_RESET}"


def _fill(prefix: str, stamp: str, name: str, destination_id: str) -> str:
    prefix = re.sub(r"\btime\b", lambda _: stamp, prefix, count=1)
    prefix = re.sub(r"\bname\b", lambda _: name, prefix, count=1)
    return re.sub(r"\bid\b", lambda _: destination_id, prefix, count=1)


# =============================================================================
# Buffer dump
# =============================================================================

# base -> (default columns, digits per byte, format spec)
_DUMP_BASES = {
    16: (65, 2, "x"),
    2: (41, 8, "b"),
    10: (41, 3, "d"),
    8: (41, 3, "o"),
}
_DUMP_ALIASES = {"hex": 16, "bin": 2, "dec": 10, "oct": 8}


def bin_dump(buf: Any, base: Any = 16, cols: int = 0, indent: str = "") -> str:
    """Render bytes as rows of numbers with an ASCII gutter.

    Args:
        buf: bytes-like value or string (encoded as UTF-8)
        base: 2, 8, 10 or 16 (also "bin", "oct", "dec", "hex")
        cols: total row width, per-base default when 0
        indent: spaces prepended to every row
    """
    if isinstance(buf, str):
        if buf == "":
            return buf
        buf = buf.encode("utf-8")
    elif isinstance(buf, (bytes, bytearray, memoryview)):
        buf = bytes(buf)
    else:
        raise TypeError("bin_dump: first argument must be bytes or string")

    if base is None:
        base = 16
    if isinstance(base, str):
        base = _DUMP_ALIASES.get(base, int(base) if base.isdigit() else base)
    if base not in _DUMP_BASES:
        raise ValueError(f"bin_dump: invalid base {base!r}")
    default_cols, width, spec = _DUMP_BASES[base]

    pad = indent if indent and indent.strip(" ") == "" else ""
    cols = (cols or default_cols) - len(pad)
    per_row = max((cols - 1) // (width + 2), 1)

    rows = [buf[i : i + per_row] for i in range(0, len(buf), per_row)] or [b""]
    out = []
    for row in rows:
        cells = "".join(format(b, spec).zfill(width) + " " for b in row)
        cells += " " * (width + 1) * (per_row - len(row))
        text = _DUMP_CONTROL.sub("·", "".join(chr(b & 0x7F) for b in row))
        out.append(f"{pad}{cells} {text}")
    return "\n".join(out)


# =============================================================================
# Formatters
# =============================================================================


class TabFormatter:
    """Plain tab-delimited line: ``time [name] {id}`` then the arguments."""

    DEFAULT_TEMPLATE = "time\t[name]\t{id}"

    def __init__(self, destination: "Destination", settings: "LoguriSettings"):
        self._prefix = template(destination.query, self.DEFAULT_TEMPLATE)
        self._settings = settings

    def _render(self, value: Any) -> str:
        if isinstance(value, str):
            return line(value)
        if isinstance(value, BaseException):
            return error_line(value, self._settings.verbose)
        return to_json(value)

    def format(self, destination_id: str, severity: int, args: Sequence[Any]) -> str:
        msg = _fill(self._prefix, timestamp(), NAMES[severity], destination_id)
        for arg in args:
            msg += "\t" + self._render(arg)
        return msg


class TtyFormatter:
    """Colorized variant of the tab format for terminals."""

    DEFAULT_TEMPLATE = "time\tname\tid"

    def __init__(self, destination: "Destination", settings: "LoguriSettings"):
        self._prefix = template(destination.query, self.DEFAULT_TEMPLATE)
        self._settings = settings

    def _head(self, destination_id: str, severity: int) -> str:
        name = SEVERITY_COLORS[severity] + NAMES[severity] + _RESET
        return _fill(self._prefix, timestamp(colored=True), name, COLORS["id"] + destination_id + _RESET)

    def format(self, destination_id: str, severity: int, args: Sequence[Any]) -> str:
        msg = self._head(destination_id, severity)
        for arg in args:
            if msg:
                msg += "\t"
            msg += colorize(arg, self._settings.verbose)
        return msg


class IoFormatter(TtyFormatter):
    """Traffic dump: ``(incoming, payload, label)`` rendered over two lines."""

    def format(self, destination_id: str, severity: int, args: Sequence[Any]) -> str:
        msg = self._head(destination_id, severity)
        if len(args) > 2 and args[2] is not None:
            msg += "\t" + colorize(args[2], self._settings.verbose)
        payload = args[1] if len(args) > 1 else None
        if len(args) < 2:
            kind, value = "none", ""
        elif isinstance(payload, str):
            kind, value = "string", payload
        elif isinstance(payload, BaseException):
            kind, value = "error", error_line(payload, verbose=True)
        elif isinstance(payload, (bytes, bytearray, memoryview)):
            kind, value = "buffer", bin_dump(payload, self._settings.binary)
        else:
            kind, value = type(payload).__name__, to_json(payload, indent=True)
        direction = COLORS["in"] if args and args[0] else COLORS["out"]
        return f"{msg}\t{kind}\n{direction}{value}{_RESET}"


def _joined(args: Sequence[Any], verbose: bool) -> str:
    parts = []
    for arg in args:
        if isinstance(arg, BaseException):
            parts.append(f"[{error_line(arg, verbose)}]")
        else:
            parts.append(to_json(arg))
    return "\t".join(parts)


class GelfFormatter:
    """GELF 1.1 JSON record, one per line."""

    def __init__(self, destination: "Destination", settings: "LoguriSettings"):
        self._host = line(destination.userinfo or "")
        self._settings = settings

    def format(self, destination_id: str, severity: int, args: Sequence[Any]) -> str:
        record = {
            "version": "1.1",
            "host": self._host,
            "short_message": destination_id,
            "full_message": _joined(args, self._settings.verbose),
            "timestamp": datetime.now(timezone.utc).timestamp(),
            "level": int(severity),
        }
        return orjson.dumps(record).decode()


BOM = "\ufeff"
NIL = "-"


class SyslogFormatter:
    """RFC 5424 style record for datagram destinations.

    Query fields: ``hostname``, ``appname`` and ``facility`` (0..23, default 1).
    """

    def __init__(self, destination: "Destination", settings: "LoguriSettings"):
        hostname = appname = NIL
        facility: Any = 1
        for field in (destination.query or "").split("&"):
            pair = field.split("=")
            if len(pair) != 2:
                continue
            key, value = pair[0].lower(), pair[1]
            if key == "hostname":
                hostname = ascii_safe(value)
            elif key == "appname":
                appname = ascii_safe(value)
            elif key == "facility":
                facility = value
            else:
                raise ConfigurationError(
                    f"invalid syslog field {pair[0]!r}, valid: hostname, appname, facility",
                    code="INVALID_SYSLOG_FIELD",
                    details={"field": pair[0]},
                )
        self._facility = self._check_facility(facility)
        self._head = f" {hostname} {appname} {os.getpid()} "
        self._settings = settings

    @staticmethod
    def _check_facility(facility: Any) -> int:
        if isinstance(facility, str) and facility.strip() == "":
            return 0
        try:
            number = float(facility)
        except (TypeError, ValueError) as exc:
            raise InvalidFacilityError(facility) from exc
        if not number.is_integer() or not 0 <= number <= 23:
            raise InvalidFacilityError(facility)
        return int(number)

    def format(self, destination_id: str, severity: int, args: Sequence[Any]) -> str:
        stamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
        priority = self._facility * 8 + int(severity)
        return (
            f"<{priority}>1 {stamp}{self._head}{ascii_safe(destination_id or NIL)} - {BOM}"
            + _joined(args, self._settings.verbose)
        )


FORMATS: dict[str, FormatterFactory] = {
    "tab": TabFormatter,
    "tty": TtyFormatter,
    "io": IoFormatter,
    "gelf": GelfFormatter,
    "syslog": SyslogFormatter,
}


def select_formatter(destination: "Destination", settings: "LoguriSettings") -> Optional[Formatter]:
    """Formatter named by the path extension, None when it names none."""
    factory = FORMATS.get(destination.extension or "")
    if factory is None:
        return None
    return factory(destination, settings)
