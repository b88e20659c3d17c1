"""Outgoing command queue.

All traffic to the drive goes through one bounded FIFO queue drained by a
single thread, so at most one frame is being written at a time and frames
leave in submission order. After every frame the thread waits a quiet
period; the drive needs it to settle before it accepts the next command.
"""

from __future__ import annotations

import logging
import queue
import threading
import time

from ..config import QUEUE_CAPACITY, QUIET_PERIOD
from ..exceptions import CommandParseError, QueueFullError, TransportError
from ..models.state import DriveState
from ..protocol.commands import (
    SetSpeed,
    build_command,
    parse_command_strict,
    rpm_to_frequency,
    split_tokens,
)
from ..utils.threads import StoppableThread

logger = logging.getLogger(__name__)

QUEUE_POLL_INTERVAL = 0.1
DRAIN_POLL_INTERVAL = 0.01


class Dispatcher(StoppableThread):
    """Converts queued tokens to frames and writes them to the transport."""

    def __init__(
        self,
        transport,
        state: DriveState,
        hertz_per_rpm: float,
        stop_event: threading.Event | None = None,
        capacity: int = QUEUE_CAPACITY,
        quiet_period: float = QUIET_PERIOD,
    ) -> None:
        super().__init__(name="VfdDispatcher", stop_event=stop_event)
        self._transport = transport
        self._state = state
        self._hertz_per_rpm = hertz_per_rpm
        self._quiet_period = quiet_period
        self._queue: queue.Queue[str] = queue.Queue(maxsize=capacity)
        self._busy = threading.Event()

    @property
    def queued(self) -> int:
        return self._queue.qsize()

    def queued_tokens(self) -> list[str]:
        """Tokens waiting to be sent, oldest first."""
        with self._queue.mutex:
            return list(self._queue.queue)

    def submit(self, text: str) -> bool:
        """Queue every token in ``text``.

        Tokens are queued one at a time; when the queue is full the
        remaining tokens are dropped but those already queued stay.

        Returns:
            False if any token was dropped.
        """
        return not self._enqueue(text)

    def submit_strict(self, text: str) -> None:
        """Like :meth:`submit` but raise if a token was dropped.

        Raises:
            QueueFullError: Lists the dropped tokens.
        """
        dropped = self._enqueue(text)
        if dropped:
            raise QueueFullError(dropped)

    def _enqueue(self, text: str) -> list[str]:
        dropped = []
        for token in split_tokens(text):
            self._state.increment_pending()
            try:
                self._queue.put_nowait(token)
            except queue.Full:
                self._state.decrement_pending()
                dropped.append(token)
        if dropped:
            logger.warning("Command queue full, dropped %s", " ".join(dropped))
        return dropped

    def drain(self, timeout: float | None = None) -> bool:
        """Wait until every queued token has been sent.

        Returns:
            True if the queue drained before ``timeout`` seconds passed.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while self._state.pending_command_count or self._busy.is_set():
            if deadline is not None and time.monotonic() >= deadline:
                return False
            time.sleep(DRAIN_POLL_INTERVAL)
        return True

    def run(self) -> None:
        logger.debug("Dispatcher started")
        while not self.stopped:
            try:
                token = self._queue.get(timeout=QUEUE_POLL_INTERVAL)
            except queue.Empty:
                continue
            self._busy.set()
            try:
                self._state.decrement_pending()
                if not self._dispatch(token):
                    break
            finally:
                self._busy.clear()
        logger.debug("Dispatcher stopped")

    def _dispatch(self, token: str) -> bool:
        """Send one token. Returns False if the thread should exit."""
        try:
            command = parse_command_strict(token)
        except CommandParseError as e:
            logger.debug("Ignoring: %s", e)
            return True
        try:
            frame = build_command(command, self._hertz_per_rpm)
        except ValueError as e:
            logger.warning("Skipping %r: %s", token, e)
            return True
        if isinstance(command, SetSpeed):
            self._state.set_commanded_frequency(
                rpm_to_frequency(command.target_rpm, self._hertz_per_rpm)
            )

        try:
            self._transport.write(frame)
        except (TransportError, OSError) as e:
            logger.exception("Write failed, stopping dispatcher")
            self._state.mark_offline(str(e))
            return False
        self._state.record_sent()
        logger.debug("Sent %s: %s", command, frame.hex(" "))

        self.wait(self._quiet_period)
        return True
