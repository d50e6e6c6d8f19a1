"""
Severity table and level mask compilation.

Severities follow syslog numbering. Every severity except ``emerg`` owns one bit
of a 7-bit mask; ``emerg`` is unmaskable and always delivered.
"""

from __future__ import annotations

import math
from enum import IntEnum
from typing import Any

from .exceptions import InvalidLevelError


class Severity(IntEnum):
    EMERG = 0  # system is unusable
    ALERT = 1  # action must be taken immediately
    CRIT = 2  # critical conditions
    ERR = 3  # error conditions
    WARNING = 4  # warning conditions
    NOTICE = 5  # normal but significant condition
    INFO = 6  # informational
    DEBUG = 7  # debug-level messages
    TIP = 8  # root logger output, not filterable

    @property
    def bit(self) -> int:
        """Filter bit of this severity; 0 for the unmaskable ones."""
        if self is Severity.EMERG or self is Severity.TIP:
            return 0
        return 1 << (self.value - 1)

    @property
    def label(self) -> str:
        return NAMES[self.value]


NAMES: tuple[str, ...] = (
    "emerg",
    "alert",
    "crit",
    "err",
    "warning",
    "notice",
    "info",
    "debug",
    "tip",
)

# Names a level expression may refer to, highest priority first.
LEVEL_NAMES: tuple[str, ...] = NAMES[: Severity.DEBUG + 1]

NONE = 0
EMERG = 0
ALERT = Severity.ALERT.bit
CRIT = Severity.CRIT.bit
ERR = Severity.ERR.bit
WARNING = Severity.WARNING.bit
NOTICE = Severity.NOTICE.bit
INFO = Severity.INFO.bit
DEBUG = Severity.DEBUG.bit
ALL = (1 << 7) - 1


def _as_number(value: str) -> float | None:
    text = value.strip()
    if text == "":
        return 0.0
    # digit separators are not part of the level grammar
    if "_" in text:
        return None
    try:
        number = float(text)
    except ValueError:
        try:
            number = float(int(text, 0))
        except ValueError:
            return None
    return number if math.isfinite(number) else None


def _parse_expression(expression: str) -> int:
    tokens = expression.split("+")
    mask = 0
    i = 0
    while i < len(tokens):
        token = tokens[i].lower()
        i += 1
        if token == "":
            continue
        if token == "all":
            return ALL
        for j in range(len(LEVEL_NAMES) - 1, -1, -1):
            if LEVEL_NAMES[j].startswith(token):
                break
        else:
            raise InvalidLevelError(expression)
        if j == 0:
            continue
        mask |= 1 << (j - 1)
        # "name+" also enables every higher priority severity
        if i < len(tokens) and tokens[i] == "":
            for k in range(j - 1, 0, -1):
                mask |= 1 << (k - 1)
            i += 1
    return mask


def parse_level(value: Any) -> int:
    """Compile a level expression into a severity mask.

    Accepted values:
        ``"-"`` disables every maskable severity, ``""``/``"+"``/``True`` enable
        all of them, numbers are masked with ``ALL``, and strings such as
        ``"warning+"`` or ``"err+debug"`` combine severity name prefixes.

    Raises:
        InvalidLevelError: unknown severity name or unsupported value type.
    """
    if isinstance(value, str) and value == "-":
        return NONE
    if value is True or (isinstance(value, str) and value in ("", "+")):
        return ALL
    if value is False:
        return NONE
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise InvalidLevelError(value)
        return ALL & int(value)
    if isinstance(value, str):
        number = _as_number(value)
        if number is not None:
            return ALL & int(number)
        return _parse_expression(value)
    raise InvalidLevelError(value)


def format_level(mask: int) -> str:
    """Render a mask as a ``+``-joined name list that parses back to it."""
    mask &= ALL
    if mask == NONE:
        return "-"
    names = [LEVEL_NAMES[j] for j in range(1, len(LEVEL_NAMES)) if mask & (1 << (j - 1))]
    return "+".join(names)
