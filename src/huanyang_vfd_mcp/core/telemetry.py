"""Receive loop for drive replies."""

from __future__ import annotations

import logging
import threading

from ..config import SILENCE_GAP
from ..exceptions import TransportError
from ..models.state import DriveState
from ..protocol.parser import FrameAssembler
from ..utils.threads import StoppableThread

logger = logging.getLogger(__name__)


class TelemetryReader(StoppableThread):
    """Reads the transport and feeds verified replies into ``DriveState``.

    This is the only reader of the transport. Reads must return within the
    transport's read timeout so the stop event is checked regularly; empty
    reads are not treated as arrivals.
    """

    def __init__(
        self,
        transport,
        state: DriveState,
        stop_event: threading.Event | None = None,
        silence_gap: float = SILENCE_GAP,
        resync: bool = False,
    ) -> None:
        super().__init__(name="VfdTelemetryReader", stop_event=stop_event)
        self._transport = transport
        self._state = state
        self._assembler = FrameAssembler(silence_gap=silence_gap, resync=resync)

    def run(self) -> None:
        logger.debug("Telemetry reader started")
        while not self.stopped:
            try:
                data = self._transport.read()
            except (TransportError, OSError) as e:
                logger.exception("Read failed, stopping telemetry reader")
                self._state.mark_offline(str(e))
                break
            if data:
                self.handle(data, self._state.clock())
        logger.debug("Telemetry reader stopped")

    def handle(self, data: bytes, now: float) -> None:
        """Process one read's worth of bytes received at ``now``."""
        rejected_before = self._assembler.rejected
        response = self._assembler.feed(data, now)
        rejected = self._assembler.rejected - rejected_before
        if rejected:
            self._state.record_rejected(rejected)
        if response is not None:
            self._state.update_output_frequency(response.frequency_raw, now)
            logger.debug("Output frequency %d", response.frequency_raw)
