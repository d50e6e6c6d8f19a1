"""
Rotation scheduler tests.
"""

from __future__ import annotations

import os
import signal
import threading
import time

import pytest

from loguri.levels import Severity
from loguri.locator import parse_locator
from loguri.rotation import ROTATION_SIGNAL, RotationScheduler
from loguri.transports import FileTransport


class FakeTransport:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[bool] = []
        self.opened = threading.Event()

    def open(self, force: bool = False) -> None:
        self.calls.append(force)
        self.opened.set()
        if self.fail:
            raise OSError("cannot reopen")


class TestReopen:
    def test_failures_are_isolated(self, diagnostics) -> None:
        broken, healthy = FakeTransport(fail=True), FakeTransport()
        scheduler = RotationScheduler(lambda: [broken, healthy], diagnostics.append)
        assert scheduler.reopen(force=True) == 1
        assert healthy.calls == [True]
        assert len(diagnostics) == 1
        assert str(diagnostics[0]) == "cannot reopen"

    def test_periodic_pass_does_not_force(self, diagnostics) -> None:
        transport = FakeTransport()
        scheduler = RotationScheduler(lambda: [transport], diagnostics.append)
        scheduler.reopen()
        assert transport.calls == [False]


class TestTimer:
    def test_timer_reopens_and_rearms(self, diagnostics) -> None:
        transport = FakeTransport()
        scheduler = RotationScheduler(lambda: [transport], diagnostics.append, interval=0.01)
        scheduler.start()
        try:
            assert transport.opened.wait(2)
            deadline = time.monotonic() + 2
            while len(transport.calls) < 2 and time.monotonic() < deadline:
                time.sleep(0.01)
            assert len(transport.calls) >= 2
            assert scheduler._timer is not None and scheduler._timer.daemon
        finally:
            scheduler.stop()
        assert not scheduler.running

    def test_start_is_idempotent(self) -> None:
        scheduler = RotationScheduler(lambda: [], interval=60)
        scheduler.start()
        timer = scheduler._timer
        scheduler.start()
        assert scheduler._timer is timer
        scheduler.stop()


@pytest.mark.skipif(ROTATION_SIGNAL is None, reason="platform has no SIGUSR2")
class TestSignal:
    def test_signal_forces_reopen(self, diagnostics) -> None:
        transport = FakeTransport()
        scheduler = RotationScheduler(lambda: [transport], diagnostics.append)
        previous = signal.getsignal(ROTATION_SIGNAL)
        try:
            assert scheduler.install_signal()
            os.kill(os.getpid(), ROTATION_SIGNAL)
            deadline = time.monotonic() + 2
            while not transport.calls and time.monotonic() < deadline:
                time.sleep(0.01)
            assert transport.calls == [True]
        finally:
            signal.signal(ROTATION_SIGNAL, previous)

    def test_not_installed_off_main_thread(self) -> None:
        scheduler = RotationScheduler(lambda: [])
        result = []
        worker = threading.Thread(target=lambda: result.append(scheduler.install_signal()))
        worker.start()
        worker.join()
        assert result == [False]


class TestSignalDuringWrite:
    def test_handler_returns_while_write_lock_is_held(self, settings, diagnostics, tmp_path) -> None:
        path = tmp_path / "a.log"
        transport = FileTransport("svc", parse_locator(f"{path}?id"), settings, diagnostic=diagnostics.append)
        scheduler = RotationScheduler(lambda: [transport], diagnostics.append)
        with transport._lock:
            scheduler._on_signal(0, None)
            worker = scheduler._signal_thread
            assert worker is not None and worker.is_alive()
        worker.join(2)
        assert not worker.is_alive()
        transport.write(Severity.INFO, Severity.INFO.bit, ["after"])
        transport.close()
        assert path.read_text() == "svc\tafter\n"
        assert diagnostics == []

    @pytest.mark.skipif(ROTATION_SIGNAL is None, reason="platform has no SIGUSR2")
    def test_signal_inside_write_does_not_hang(self, run_script, tmp_path) -> None:
        path = tmp_path / "app.log"
        result = run_script(
            """
            import os
            import signal
            import sys

            from loguri.config import LoguriSettings
            from loguri.core import LogRegistry

            registry = LogRegistry(LoguriSettings(_env_file=None, signal_rotation=True))
            registry.add({"svc": sys.argv[1]})
            write = os.write

            def write_then_rotate(fd, data):
                written = write(fd, data)
                os.kill(os.getpid(), signal.SIGUSR2)
                return written

            os.write = write_then_rotate
            registry.get("svc").info("line")
            os.write = write
            registry._scheduler._signal_thread.join(5)
            registry.get("svc").info("after")
            print("DONE")
            """,
            str(path),
        )
        assert "DONE" in result.stdout
        assert path.read_text().count("\n") == 2
