from __future__ import annotations

from threading import Event, Lock


class CancellationToken:
    """Shared cancellation signal handed to every blocking wait of a run."""

    def __init__(self) -> None:
        self._event = Event()
        self._lock = Lock()
        self._reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str | None = None) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._reason = reason or "Run cancelled."
            self._event.set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or the timeout elapses. Returns ``cancelled``."""
        return self._event.wait(timeout)
