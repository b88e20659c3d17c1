"""High-level handle for one drive.

Example::

    with VfdDrive(DriveConfig(serial=SerialConfig(port="/dev/ttyUSB0"))) as drive:
        drive.command("M3 S3000")
        drive.wait_idle(timeout=2.0)
        print(drive.output_rpm(), drive.online())
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from .config import DriveConfig
from .core.dispatcher import Dispatcher
from .core.poller import Poller
from .core.telemetry import TelemetryReader
from .models.state import DriveSnapshot, DriveState, ProcessedStatus
from .transport.serial_connection import SerialConnection

logger = logging.getLogger(__name__)


class VfdDrive:
    """Owns the transport, the shared state and the three worker threads.

    ``open`` starts one dispatcher, one telemetry reader and one poller;
    calling it again while open does nothing. ``close`` stops and joins all
    three before the transport is released, after which ``open`` may be
    called again.
    """

    def __init__(
        self,
        config: DriveConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or DriveConfig()
        self._clock = clock
        self._lock = threading.RLock()
        self._state = self._new_state()
        self._transport = None
        self._stop_event: threading.Event | None = None
        self._dispatcher: Dispatcher | None = None
        self._reader: TelemetryReader | None = None
        self._poller: Poller | None = None

    def _new_state(self) -> DriveState:
        return DriveState(
            hertz_per_rpm=self.config.hertz_per_rpm,
            online_window=self.config.online_window,
            clock=self._clock,
        )

    @property
    def is_open(self) -> bool:
        return self._transport is not None

    @property
    def state(self) -> DriveState:
        return self._state

    # ---------- lifecycle ----------

    def open(self, transport=None) -> None:
        """Connect and start the worker threads.

        Args:
            transport: Optional ready-to-use transport with ``read``,
                ``write`` and ``close``. By default a ``SerialConnection``
                is opened from ``config.serial``.

        Raises:
            TransportOpenError: If the serial port cannot be opened.
        """
        with self._lock:
            if self.is_open:
                return
            cfg = self.config
            if transport is None:
                transport = SerialConnection(cfg.serial)
                transport.open()

            self._state = self._new_state()
            self._stop_event = threading.Event()
            self._dispatcher = Dispatcher(
                transport,
                self._state,
                hertz_per_rpm=cfg.hertz_per_rpm,
                stop_event=self._stop_event,
                capacity=cfg.queue_capacity,
                quiet_period=cfg.quiet_period,
            )
            self._reader = TelemetryReader(
                transport,
                self._state,
                stop_event=self._stop_event,
                silence_gap=cfg.silence_gap,
                resync=cfg.resync,
            )
            self._poller = Poller(
                self._dispatcher, cfg.poll_interval, stop_event=self._stop_event
            )
            self._transport = transport
            self._dispatcher.start()
            self._reader.start()
            self._poller.start()
            logger.info(
                "Drive opened (poll %.0f ms, %.5f Hz/rpm)",
                cfg.poll_interval * 1000,
                cfg.hertz_per_rpm,
            )

    def close(self) -> None:
        """Stop the worker threads, then release the transport.

        If a worker is still blocked in I/O after ``join_timeout`` the
        transport is left open and the drive stays open; call ``close``
        again to retry.
        """
        with self._lock:
            if not self.is_open:
                return
            self._stop_event.set()
            stuck = []
            for thread in (self._poller, self._dispatcher, self._reader):
                thread.join(timeout=self.config.join_timeout)
                if thread.is_alive():
                    stuck.append(thread.name)
            if stuck:
                logger.warning("%s did not stop within %.1f s, transport left open",
                               ", ".join(stuck), self.config.join_timeout)
                return
            try:
                self._transport.close()
            finally:
                self._transport = None
                self._dispatcher = None
                self._reader = None
                self._poller = None
                logger.info("Drive closed")

    def __enter__(self) -> VfdDrive:
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False

    # ---------- commands ----------

    def command(self, text: str) -> bool:
        """Queue G-code style command text, e.g. ``"M3 S400"``.

        Returns:
            False if the drive is not open or any token did not fit in the
            queue.
        """
        dispatcher = self._dispatcher
        if dispatcher is None:
            logger.warning("Drive not open, ignoring command %r", text)
            return False
        return dispatcher.submit(text)

    def command_strict(self, text: str) -> None:
        """Like :meth:`command` but raise instead of returning False.

        Raises:
            RuntimeError: If the drive is not open.
            QueueFullError: If tokens were dropped; ``dropped`` lists them.
        """
        dispatcher = self._dispatcher
        if dispatcher is None:
            raise RuntimeError("Drive not open")
        dispatcher.submit_strict(text)

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until every queued command has been sent."""
        dispatcher = self._dispatcher
        if dispatcher is None:
            return True
        return dispatcher.drain(timeout)

    # ---------- queries ----------

    def output_frequency(self) -> int:
        """Last output frequency reported by the drive, in drive units.

        Check :meth:`online` to know whether it is current.
        """
        return self._state.output_frequency

    def output_rpm(self) -> int:
        """``output_frequency`` converted to RPM."""
        return self._state.output_rpm

    def online(self) -> bool:
        """True if the drive answered within the last two poll intervals."""
        return self._state.online()

    def processed(self) -> ProcessedStatus:
        """``(processed, frequency_ok, queue_drained)``; see ``DriveState.processed``."""
        return self._state.processed()

    def status(self) -> DriveSnapshot:
        return self._state.snapshot()
