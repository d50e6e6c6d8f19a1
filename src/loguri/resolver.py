"""
Locator resolution.

Each distinct locator is bound to exactly one transport for the lifetime of
the resolver, so loggers naming the same destination share its I/O resource.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Iterable

from .exceptions import ConfigurationError, InvalidLocatorError
from .formatters import select_formatter
from .locator import decode_uri, parse_decoded
from .transports import TRANSPORTS, BaseTransport, Diagnostic, discard

if TYPE_CHECKING:
    from .config import LoguriSettings


class Resolver:
    """Memoized locator to transport bindings."""

    def __init__(self, settings: "LoguriSettings", diagnostic: Diagnostic = discard):
        self._settings = settings
        self._diagnostic = diagnostic
        self._cache: dict[str, BaseTransport] = {}
        self._lock = threading.RLock()

    def __contains__(self, locator: str) -> bool:
        return decode_uri(locator) in self._cache

    def __len__(self) -> int:
        return len(self._cache)

    def transports(self) -> list[BaseTransport]:
        with self._lock:
            return list(self._cache.values())

    def _build(self, destination_id: str, locator: str) -> BaseTransport:
        destination = parse_decoded(locator)
        factory = TRANSPORTS.get(destination.scheme)
        if factory is None:
            raise ConfigurationError(f"unsupported protocol {destination.scheme!r}", code="UNSUPPORTED_SCHEME")
        return factory(
            destination_id,
            destination,
            self._settings,
            formatter=select_formatter(destination, self._settings),
            diagnostic=self._diagnostic,
        )

    def _rollback(self, pending: dict[str, BaseTransport]) -> None:
        for transport in pending.values():
            try:
                transport.close()
            except OSError as exc:
                self._diagnostic(exc)

    def resolve(self, destination_id: str, locator: str) -> BaseTransport:
        """Return the transport bound to ``locator``, creating it on first use."""
        return self.resolve_many(destination_id, [locator])[0]

    def resolve_many(self, destination_id: str, locators: Iterable[str]) -> list[BaseTransport]:
        """Resolve several locators at once.

        Either every locator resolves and new bindings are committed, or a
        :class:`ConfigurationError` naming the offending locator is raised and
        nothing is bound.
        """
        with self._lock:
            pending: dict[str, BaseTransport] = {}
            resolved: list[BaseTransport] = []
            for locator in locators:
                try:
                    if not isinstance(locator, str):
                        raise InvalidLocatorError(f"invalid uri {locator!r}")
                    key = decode_uri(locator)
                    transport = self._cache.get(key) or pending.get(key)
                    if transport is None:
                        transport = pending[key] = self._build(destination_id, key)
                except Exception as exc:
                    self._rollback(pending)
                    if isinstance(exc, ConfigurationError):
                        code, details = exc.code, exc.details
                    elif isinstance(exc, OSError):
                        code, details = "TRANSPORT_ERROR", {"errno": exc.errno}
                    else:
                        raise
                    raise ConfigurationError(
                        f"log: {exc} {locator!r}",
                        code=code,
                        details={**details, "locator": locator},
                    ) from exc
                resolved.append(transport)
            self._cache.update(pending)
            return resolved

    def close(self) -> None:
        with self._lock:
            for transport in self._cache.values():
                try:
                    transport.close()
                except OSError as exc:
                    self._diagnostic(exc)
