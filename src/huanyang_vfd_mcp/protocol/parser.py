"""Reassembly and decoding of drive-originated frames.

The drive sends no length prefix or delimiter. A frame is whatever arrives
between two periods of line silence, so bytes are accumulated until a gap
longer than the silence threshold is seen. The only reply decoded is the
8-byte output frequency reply::

    01 04 03 01 <f hi> <f lo> <crc lo> <crc hi>
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..exceptions import FrameValidationError
from .commands import DRIVE_ADDRESS, OUTPUT_FREQUENCY_REGISTER, FunctionCode
from .framing import parse_frame, verify_strict

logger = logging.getLogger(__name__)

FREQUENCY_RESPONSE_HEADER = bytes(
    [DRIVE_ADDRESS, FunctionCode.CONTROL_READ, 0x03, OUTPUT_FREQUENCY_REGISTER]
)
FREQUENCY_RESPONSE_SIZE = 8
DEFAULT_SILENCE_GAP = 0.050
MAX_BUFFER_SIZE = 256


@dataclass(frozen=True)
class FrequencyResponse:
    """Parsed output frequency reply."""

    frequency_raw: int


def parse_frequency_response(data: bytes) -> FrequencyResponse | None:
    """Decode an 8-byte output frequency reply.

    Returns:
        The response, or ``None`` if the length, header or checksum is wrong.
    """
    if len(data) != FREQUENCY_RESPONSE_SIZE:
        return None
    frame = parse_frame(data)
    if frame is None:
        return None
    if frame.address != DRIVE_ADDRESS or frame.function != FunctionCode.CONTROL_READ:
        return None
    if frame.payload[2:4] != FREQUENCY_RESPONSE_HEADER[2:4]:
        return None
    return FrequencyResponse(frequency_raw=int.from_bytes(frame.payload[4:6], "big"))


class FrameAssembler:
    """Accumulates received bytes into candidate frames.

    ``feed`` is called with every non-empty read and the time it completed.
    A gap longer than ``silence_gap`` since the previous read clears the
    buffer. When exactly 8 bytes are buffered they are checked as a
    frequency reply.

    With ``resync=False`` a rejected candidate stays buffered until the next
    silence gap, so further bytes in the same burst are never decoded. With
    ``resync=True`` the buffer is shifted to the next byte that could start a
    reply and checked again.
    """

    def __init__(self, silence_gap: float = DEFAULT_SILENCE_GAP, resync: bool = False) -> None:
        self.silence_gap = silence_gap
        self.resync = resync
        self._buf = bytearray()
        self._last_read: float | None = None
        self.rejected = 0

    @property
    def buffered(self) -> bytes:
        return bytes(self._buf)

    def feed(self, data: bytes, now: float) -> FrequencyResponse | None:
        """Add ``data`` read at time ``now``.

        Returns:
            A decoded reply if one completed with this read, else ``None``.
        """
        if self._last_read is not None and now - self._last_read > self.silence_gap:
            if self._buf:
                logger.debug("Silence gap, discarding %s", self._buf.hex(" "))
            self._buf.clear()
        self._last_read = now
        self._buf.extend(data)

        if self.resync:
            return self._scan()

        if len(self._buf) > MAX_BUFFER_SIZE:
            del self._buf[: len(self._buf) - MAX_BUFFER_SIZE]
        if len(self._buf) != FREQUENCY_RESPONSE_SIZE:
            return None
        response = parse_frequency_response(self._buf)
        if response is None:
            self._reject(self._buf)
        return response

    def _scan(self) -> FrequencyResponse | None:
        while len(self._buf) >= FREQUENCY_RESPONSE_SIZE:
            candidate = bytes(self._buf[:FREQUENCY_RESPONSE_SIZE])
            response = parse_frequency_response(candidate)
            if response is not None:
                del self._buf[:FREQUENCY_RESPONSE_SIZE]
                return response
            self._reject(candidate)
            start = self._buf.find(FREQUENCY_RESPONSE_HEADER[:1], 1)
            if start < 0:
                self._buf.clear()
            else:
                del self._buf[:start]
        return None

    def _reject(self, candidate: bytes) -> None:
        self.rejected += 1
        try:
            verify_strict(candidate)
            reason = "unexpected header"
        except FrameValidationError as e:
            reason = str(e)
        logger.debug("Rejected candidate frame %s (%s)", bytes(candidate).hex(" "), reason)
