"""Thread base class shared by the dispatcher, telemetry reader and poller."""

from __future__ import annotations

import threading


class StoppableThread(threading.Thread):
    """Daemon thread that watches a stop event.

    Several threads may share one event so a single ``set()`` stops all of
    them. Loops should block through :meth:`wait` (or a call with its own
    short timeout) so the event is seen promptly.
    """

    def __init__(self, name: str, stop_event: threading.Event | None = None) -> None:
        super().__init__(name=name, daemon=True)
        self._stop_event = stop_event or threading.Event()

    def stop(self) -> None:
        self._stop_event.set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def wait(self, seconds: float) -> bool:
        """Sleep for ``seconds`` unless stopped first.

        Returns:
            True if the stop event was set during (or before) the wait.
        """
        return self._stop_event.wait(seconds)
