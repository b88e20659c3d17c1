"""Shared drive state.

One ``DriveState`` is owned by the drive handle and shared by the
dispatcher, telemetry reader and query callers. Every field is guarded by
the same lock.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import asdict, dataclass
from typing import Callable, NamedTuple

from ..protocol.commands import frequency_to_rpm

logger = logging.getLogger(__name__)

FREQUENCY_TOLERANCE = 0.10


class ProcessedStatus(NamedTuple):
    """Result of :meth:`DriveState.processed`."""

    processed: bool
    frequency_ok: bool
    queue_drained: bool


@dataclass(frozen=True)
class DriveSnapshot:
    """Consistent copy of every state field."""

    output_frequency_raw: int
    output_rpm: int
    set_frequency_raw: int
    pending_command_count: int
    last_valid_response_age: float | None
    online: bool
    frequency_ok: bool
    queue_drained: bool
    frames_sent: int
    frames_received: int
    frames_rejected: int
    last_error: str | None

    @property
    def processed(self) -> bool:
        return self.frequency_ok and self.queue_drained

    def to_dict(self) -> dict:
        result = asdict(self)
        result["processed"] = self.processed
        return result


class DriveState:
    """Commanded and observed drive values plus link liveness."""

    def __init__(
        self,
        hertz_per_rpm: float,
        online_window: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._hertz_per_rpm = hertz_per_rpm
        self._online_window = online_window
        self._clock = clock
        self._lock = threading.Lock()

        self._output_frequency_raw = 0
        self._output_rpm = 0
        self._set_frequency_raw = 0
        self._last_valid_response_at: float | None = None
        self._pending = 0
        self._frames_sent = 0
        self._frames_received = 0
        self._frames_rejected = 0
        self._last_error: str | None = None

    @property
    def clock(self) -> Callable[[], float]:
        return self._clock

    # ---------- telemetry side ----------

    def update_output_frequency(self, frequency_raw: int, now: float | None = None) -> None:
        """Record a verified frequency reply."""
        rpm = frequency_to_rpm(frequency_raw, self._hertz_per_rpm)
        with self._lock:
            self._output_frequency_raw = frequency_raw
            self._output_rpm = rpm
            self._last_valid_response_at = self._clock() if now is None else now
            self._frames_received += 1

    def record_rejected(self, count: int = 1) -> None:
        with self._lock:
            self._frames_rejected += count

    def mark_offline(self, error: str) -> None:
        """Drop liveness after a transport failure."""
        with self._lock:
            self._last_valid_response_at = None
            self._last_error = error

    # ---------- dispatch side ----------

    def set_commanded_frequency(self, frequency_raw: int) -> None:
        with self._lock:
            self._set_frequency_raw = frequency_raw

    def record_sent(self) -> None:
        with self._lock:
            self._frames_sent += 1

    def increment_pending(self) -> None:
        with self._lock:
            self._pending += 1

    def decrement_pending(self) -> None:
        with self._lock:
            if self._pending == 0:
                logger.warning("Pending command count already zero")
                return
            self._pending -= 1

    # ---------- queries ----------

    @property
    def output_frequency(self) -> int:
        with self._lock:
            return self._output_frequency_raw

    @property
    def output_rpm(self) -> int:
        with self._lock:
            return self._output_rpm

    @property
    def set_frequency(self) -> int:
        with self._lock:
            return self._set_frequency_raw

    @property
    def pending_command_count(self) -> int:
        with self._lock:
            return self._pending

    @property
    def last_error(self) -> str | None:
        with self._lock:
            return self._last_error

    def online(self) -> bool:
        """True if a valid reply arrived within the online window."""
        now = self._clock()
        with self._lock:
            return self._is_online(now)

    def processed(self) -> ProcessedStatus:
        """Whether the queue is empty and the output matches the setpoint.

        The output frequency counts as matching when it is within 10% of the
        last commanded frequency, bounds included.
        """
        with self._lock:
            frequency_ok = self._frequency_ok()
            queue_drained = self._pending == 0
        return ProcessedStatus(frequency_ok and queue_drained, frequency_ok, queue_drained)

    def snapshot(self) -> DriveSnapshot:
        now = self._clock()
        with self._lock:
            age = (
                None
                if self._last_valid_response_at is None
                else now - self._last_valid_response_at
            )
            return DriveSnapshot(
                output_frequency_raw=self._output_frequency_raw,
                output_rpm=self._output_rpm,
                set_frequency_raw=self._set_frequency_raw,
                pending_command_count=self._pending,
                last_valid_response_age=age,
                online=self._is_online(now),
                frequency_ok=self._frequency_ok(),
                queue_drained=self._pending == 0,
                frames_sent=self._frames_sent,
                frames_received=self._frames_received,
                frames_rejected=self._frames_rejected,
                last_error=self._last_error,
            )

    # Callers hold the lock.

    def _is_online(self, now: float) -> bool:
        if self._last_valid_response_at is None:
            return False
        return now - self._last_valid_response_at < self._online_window

    def _frequency_ok(self) -> bool:
        target = self._set_frequency_raw
        value = self._output_frequency_raw
        return target * (1 - FREQUENCY_TOLERANCE) <= value <= target * (1 + FREQUENCY_TOLERANCE)
