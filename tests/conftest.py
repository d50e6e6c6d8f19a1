import os
import subprocess
import sys
import textwrap
import typing as t

import pytest

from loguri.config import LoguriSettings
from loguri.core import LogRegistry


class FakeSocket:
    """Records datagrams instead of sending them."""

    def __init__(self) -> None:
        self.sent: list[tuple[bytes, tuple]] = []
        self.closed = False

    def sendto(self, data: bytes, address: tuple) -> int:
        self.sent.append((data, address))
        return len(data)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def settings(monkeypatch) -> LoguriSettings:
    """
    Fresh settings isolated from the developer environment.
    """
    for name in ("LEVEL", "VERBOSE", "CHUNKED", "BINARY", "REOPEN_INTERVAL", "PACKET_SIZE", "SIGNAL_ROTATION"):
        monkeypatch.delenv(f"LOGURI_{name}", raising=False)
    return LoguriSettings(_env_file=None, signal_rotation=False)


@pytest.fixture
def registry(settings) -> t.Iterator[LogRegistry]:
    """
    Registry with its own transport cache, closed after the test.
    """
    reg = LogRegistry(settings)
    yield reg
    reg.close()


@pytest.fixture
def fake_socket() -> FakeSocket:
    return FakeSocket()


@pytest.fixture
def diagnostics() -> list[BaseException]:
    return []


@pytest.fixture
def run_script(tmp_path) -> t.Callable[..., subprocess.CompletedProcess]:
    """
    Run Python source in a fresh interpreter that can import loguri.
    """
    env = {**os.environ, "PYTHONPATH": os.pathsep.join(p for p in sys.path if p)}

    def run(source: str, *args: str, timeout: float = 10) -> subprocess.CompletedProcess:
        return subprocess.run(
            [sys.executable, "-c", textwrap.dedent(source), *args],
            capture_output=True,
            text=True,
            timeout=timeout,
            env=env,
            cwd=tmp_path,
        )

    return run
