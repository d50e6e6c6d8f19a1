"""
Transport abstractions and concrete implementations.

A transport owns one live I/O resource for one destination, applies the
destination mask and writes rendered lines. Writes are submit-only: failures are
reported as diagnostics and never raised to the caller.
"""

from __future__ import annotations

import ipaddress
import os
import socket
import sys
import threading
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, Optional, Sequence, TextIO

from .exceptions import ConfigurationError, OversizeError
from .formatters import Formatter, SyslogFormatter, TabFormatter, TtyFormatter
from .fragmentation import fragment

if TYPE_CHECKING:
    from .config import LoguriSettings
    from .locator import Destination

Diagnostic = Callable[[BaseException], None]

FILE_FLAGS = os.O_WRONLY | os.O_APPEND | os.O_CREAT
FILE_MODE = 0o640


def discard(error: BaseException) -> None:
    pass


# =============================================================================
# Transport Abstraction (Strategy Pattern)
# =============================================================================


class BaseTransport(ABC):
    """Abstract base class for transports."""

    def __init__(
        self,
        destination_id: str,
        destination: "Destination",
        settings: "LoguriSettings",
        formatter: Optional[Formatter] = None,
        diagnostic: Diagnostic = discard,
    ):
        self.destination_id = destination_id
        self.destination = destination
        self.mask = destination.mask
        self._settings = settings
        self._formatter = formatter or self.default_formatter(destination, settings)
        self._diagnostic = diagnostic

    @staticmethod
    @abstractmethod
    def default_formatter(destination: "Destination", settings: "LoguriSettings") -> Formatter:
        """Formatter used when the locator names none."""
        ...

    def accepts(self, bit: int) -> bool:
        return bit == 0 or bool(self.mask & bit)

    def render(self, severity: int, args: Sequence[Any]) -> str:
        return self._formatter.format(self.destination_id, severity, args)

    def open(self, force: bool = False) -> None:
        """(Re)acquire the I/O resource; no-op for transports without one."""

    @abstractmethod
    def write(self, severity: int, bit: int, args: Sequence[Any]) -> None:
        """Render and submit one log call."""
        ...

    def close(self) -> None:
        """Release the I/O resource."""


class FileTransport(BaseTransport):
    """Append-only file destination with a lazily reopened descriptor."""

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        if not self.destination.path:
            raise ConfigurationError("file path required", code="INVALID_LOCATOR")
        self.path = self.destination.path
        self._fd: Optional[int] = None
        self._lock = threading.Lock()
        try:
            self.open()
        except OSError as exc:
            self._diagnostic(exc)

    @staticmethod
    def default_formatter(destination: "Destination", settings: "LoguriSettings") -> Formatter:
        return TabFormatter(destination, settings)

    @property
    def is_open(self) -> bool:
        return self._fd is not None

    def open(self, force: bool = False) -> None:
        with self._lock:
            if force and self._fd is not None:
                fd, self._fd = self._fd, None
                os.close(fd)
            if self._fd is None:
                self._fd = os.open(self.path, FILE_FLAGS, FILE_MODE)

    def write(self, severity: int, bit: int, args: Sequence[Any]) -> None:
        if self._fd is None or not self.accepts(bit):
            return
        data = (self.render(severity, args) + "\n").encode("utf-8")
        with self._lock:
            if self._fd is None:
                return
            try:
                os.write(self._fd, data)
            except OSError as exc:
                self._diagnostic(exc)

    def close(self) -> None:
        with self._lock:
            if self._fd is not None:
                fd, self._fd = self._fd, None
                os.close(fd)


class DatagramTransport(BaseTransport):
    """UDP destination; oversized messages are fragmented."""

    def __init__(self, *args: Any, sock: Optional[socket.socket] = None, **kwargs: Any):
        super().__init__(*args, **kwargs)
        destination = self.destination
        if not destination.port:
            raise ConfigurationError("udp port required", code="INVALID_PORT")
        try:
            address = ipaddress.ip_address(destination.host or "")
        except ValueError as exc:
            raise ConfigurationError(
                "udp host must be ip4 or ip6",
                code="INVALID_HOST",
                details={"host": destination.host},
            ) from exc
        self.family = socket.AF_INET6 if address.version == 6 else socket.AF_INET
        self.address = (str(address), destination.port)
        if sock is None:
            sock = socket.socket(self.family, socket.SOCK_DGRAM)
            sock.setblocking(False)
        self._sock = sock

    @staticmethod
    def default_formatter(destination: "Destination", settings: "LoguriSettings") -> Formatter:
        return SyslogFormatter(destination, settings)

    def write(self, severity: int, bit: int, args: Sequence[Any]) -> None:
        if not self.accepts(bit):
            return
        payload = self.render(severity, args).encode("utf-8")
        try:
            chunks = fragment(
                payload,
                max_chunks=self._settings.chunked,
                packet_size=self._settings.packet_size,
            )
        except OversizeError as exc:
            self._diagnostic(exc)
            return
        for chunk in chunks:
            try:
                self._sock.sendto(chunk, self.address)
            except OSError:
                # best effort, the datagram is lost
                pass

    def close(self) -> None:
        self._sock.close()


class ConsoleTransport(BaseTransport):
    """Terminal destination writing straight to standard output."""

    def __init__(self, *args: Any, stream: Optional[TextIO] = None, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._stream = stream

    @staticmethod
    def default_formatter(destination: "Destination", settings: "LoguriSettings") -> Formatter:
        return TtyFormatter(destination, settings)

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    def write(self, severity: int, bit: int, args: Sequence[Any]) -> None:
        if not self.accepts(bit):
            return
        stream = self.stream
        stream.write(self.render(severity, args) + "\n")
        stream.flush()


TRANSPORTS: dict[str, type[BaseTransport]] = {
    "file": FileTransport,
    "udp": DatagramTransport,
    "tty": ConsoleTransport,
}
