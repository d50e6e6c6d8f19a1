"""
Locator resolution and transport sharing tests.
"""

from __future__ import annotations

import socket

import pytest

from loguri.exceptions import ConfigurationError
from loguri.formatters import GelfFormatter, SyslogFormatter, TabFormatter, TtyFormatter
from loguri.resolver import Resolver
from loguri.transports import ConsoleTransport, DatagramTransport, FileTransport


@pytest.fixture
def resolver(settings, diagnostics):
    res = Resolver(settings, diagnostic=diagnostics.append)
    yield res
    res.close()


class TestMemoization:
    def test_same_locator_same_transport(self, resolver, tmp_path) -> None:
        locator = f"file://{tmp_path}/shared.log#info+"
        first = resolver.resolve("a", locator)
        second = resolver.resolve("b", locator)
        assert first is second
        assert len(resolver) == 1

    def test_keyed_by_decoded_locator(self, resolver, tmp_path) -> None:
        plain = resolver.resolve("a", f"{tmp_path}/a b.log")
        encoded = resolver.resolve("b", f"{tmp_path}/a%20b.log")
        assert plain is encoded

    def test_first_resolver_id_is_kept(self, resolver, tmp_path) -> None:
        locator = f"{tmp_path}/x.log"
        resolver.resolve("first", locator)
        assert resolver.resolve("second", locator).destination_id == "first"

    def test_contains(self, resolver, tmp_path) -> None:
        locator = f"{tmp_path}/x.log"
        assert locator not in resolver
        resolver.resolve("a", locator)
        assert locator in resolver

    def test_duplicate_within_one_batch(self, resolver, tmp_path) -> None:
        locator = f"{tmp_path}/x.log"
        transports = resolver.resolve_many("a", [locator, locator])
        assert transports[0] is transports[1]
        assert len(resolver) == 1


class TestTransportSelection:
    def test_schemes(self, resolver, tmp_path) -> None:
        assert isinstance(resolver.resolve("a", f"{tmp_path}/x.log"), FileTransport)
        assert isinstance(resolver.resolve("a", "udp://127.0.0.1:5140"), DatagramTransport)
        assert isinstance(resolver.resolve("a", "tty:"), ConsoleTransport)

    def test_default_formatters(self, resolver, tmp_path) -> None:
        assert isinstance(resolver.resolve("a", f"{tmp_path}/x.log")._formatter, TabFormatter)
        assert isinstance(resolver.resolve("a", "udp://127.0.0.1:5140")._formatter, SyslogFormatter)
        assert isinstance(resolver.resolve("a", ".")._formatter, TtyFormatter)

    def test_extension_selects_formatter(self, resolver, tmp_path) -> None:
        transport = resolver.resolve("a", f"{tmp_path}/x.gelf")
        assert isinstance(transport, FileTransport)
        assert isinstance(transport._formatter, GelfFormatter)

    def test_mask_from_fragment(self, resolver) -> None:
        assert resolver.resolve("a", "tty:#err").mask == 4


class TestFailures:
    @pytest.mark.parametrize(
        "locator",
        [
            "http://example.com/x",
            "udp://127.0.0.1:70000",
            "udp://127.0.0.1:514?facility=99",
            "udp://localhost:514",
            "udp://127.0.0.1",
            "/tmp/x.log#nonsense",
        ],
    )
    def test_configuration_errors(self, resolver, locator) -> None:
        with pytest.raises(ConfigurationError) as info:
            resolver.resolve("a", locator)
        assert locator in str(info.value)
        assert info.value.details["locator"] == locator
        assert len(resolver) == 0

    def test_batch_is_all_or_nothing(self, resolver, tmp_path) -> None:
        good = f"{tmp_path}/good.log"
        with pytest.raises(ConfigurationError):
            resolver.resolve_many("a", [good, "http://nope"])
        assert len(resolver) == 0
        assert good not in resolver

    def test_non_string_locator(self, resolver) -> None:
        with pytest.raises(ConfigurationError):
            resolver.resolve_many("a", [["nested"]])

    def test_socket_failure_rolls_back_batch(self, resolver, tmp_path, monkeypatch) -> None:
        closed = []
        close = FileTransport.close

        def tracking_close(transport) -> None:
            closed.append(transport.path)
            close(transport)

        def no_sockets(*args, **kwargs):
            raise OSError(97, "Address family not supported by protocol")

        monkeypatch.setattr(FileTransport, "close", tracking_close)
        monkeypatch.setattr(socket, "socket", no_sockets)
        good = f"{tmp_path}/good.log"
        with pytest.raises(ConfigurationError) as info:
            resolver.resolve_many("a", [good, "udp://[::1]:514"])
        assert info.value.code == "TRANSPORT_ERROR"
        assert info.value.details["locator"] == "udp://[::1]:514"
        assert closed == [good]
        assert len(resolver) == 0
