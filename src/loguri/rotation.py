"""
Periodic and signal driven reopening of file handles.

Log rotation tools move the current file away and either wait for the writer to
pick up a new one or send ``SIGUSR2``. The timer pass reopens handles that are
closed; the signal forces every handle to be closed and reopened.
"""

from __future__ import annotations

import signal
import threading
from typing import Callable, Iterable, Optional

from .transports import BaseTransport, Diagnostic, discard

REOPEN_INTERVAL = 60.0
ROTATION_SIGNAL = getattr(signal, "SIGUSR2", None)


class RotationScheduler:
    """Reopens every bound transport on a timer and on ``SIGUSR2``.

    Args:
        transports: callable returning the transports to visit
        diagnostic: receives one error per failing transport
        interval: seconds between timer passes
    """

    def __init__(
        self,
        transports: Callable[[], Iterable[BaseTransport]],
        diagnostic: Diagnostic = discard,
        interval: float = REOPEN_INTERVAL,
    ):
        self._transports = transports
        self._diagnostic = diagnostic
        self.interval = interval
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()
        self._signal_installed = False
        self._signal_thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._timer is not None

    def reopen(self, force: bool = False) -> int:
        """Visit every transport, returns the number of failures."""
        failures = 0
        for transport in list(self._transports()):
            try:
                transport.open(force)
            except Exception as exc:
                failures += 1
                self._diagnostic(exc)
        return failures

    def _arm(self) -> None:
        timer = threading.Timer(self.interval, self._tick)
        # must not keep the interpreter alive
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _tick(self) -> None:
        self.reopen(False)
        with self._lock:
            if self._timer is not None:
                self._arm()

    def start(self) -> None:
        with self._lock:
            if self._timer is None:
                self._arm()

    def stop(self) -> None:
        with self._lock:
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()

    def _on_signal(self, signum: int, frame: object) -> None:
        # runs on the main thread, possibly inside a locked write
        worker = threading.Thread(target=self.reopen, args=(True,), name="loguri-reopen", daemon=True)
        self._signal_thread = worker
        worker.start()

    def install_signal(self) -> bool:
        """Bind ``SIGUSR2`` to a forced reopen.

        Returns False where the platform lacks the signal or when called off the
        main thread.
        """
        if self._signal_installed:
            return True
        if ROTATION_SIGNAL is None or threading.current_thread() is not threading.main_thread():
            return False
        signal.signal(ROTATION_SIGNAL, self._on_signal)
        self._signal_installed = True
        return True
