"""
Unified exception hierarchy for loguri.

Configuration problems are raised synchronously while destinations are being
registered. Delivery problems never reach the caller of a log method; they are
reported as diagnostics on the root logger instead.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class LoguriError(Exception):
    """Root of all loguri exceptions."""

    def __init__(
        self,
        message: str,
        *,
        code: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}


# ================================
# Configuration errors
# Raised at registration time, never from a log call
# ================================


class ConfigurationError(LoguriError):
    """A destination or control value cannot be used."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "CONFIGURATION_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code=code, details=details)


class InvalidLocatorError(ConfigurationError):
    """The locator string does not follow the locator grammar."""

    def __init__(self, message: str, *, locator: Optional[str] = None) -> None:
        super().__init__(
            message,
            code="INVALID_LOCATOR",
            details={"locator": locator} if locator is not None else None,
        )


class InvalidPortError(ConfigurationError):
    """The authority port is not an integer in 0..65535."""

    def __init__(self, port: Any) -> None:
        super().__init__(f"invalid port {port!r}", code="INVALID_PORT", details={"port": port})


class UnsupportedSchemeError(ConfigurationError):
    """The explicit locator scheme has no transport."""

    def __init__(self, scheme: str) -> None:
        super().__init__(
            f"unsupported protocol {scheme!r}",
            code="UNSUPPORTED_SCHEME",
            details={"scheme": scheme},
        )


class InvalidLevelError(ConfigurationError):
    """A level expression could not be compiled into a mask."""

    def __init__(self, value: Any) -> None:
        super().__init__(f"invalid level {value!r}", code="INVALID_LEVEL", details={"value": value})


class InvalidFacilityError(ConfigurationError):
    """The syslog facility is not an integer in 0..23."""

    def __init__(self, facility: Any) -> None:
        super().__init__(
            f"invalid facility {facility!r}",
            code="INVALID_FACILITY",
            details={"facility": facility},
        )


# ================================
# Delivery errors
# Never raised to callers, only rendered as diagnostics
# ================================


class OversizeError(LoguriError):
    """A rendered message needs more datagram fragments than allowed."""

    def __init__(self, size: int, chunks: int, limit: int) -> None:
        super().__init__(
            f"udp skip big message {size}",
            code="OVERSIZE",
            details={"size": size, "chunks": chunks, "limit": limit},
        )
