"""Frame signing and verification.

Frame layout::

    +------------------+----------+
    |     Payload      |  CRC-16  |
    | variable length  |  2 bytes |
    +------------------+----------+

- Payload: address, function code and function data, sent as-is
- CRC-16: MODBUS CRC over the payload, little-endian (low byte first)

There are no delimiters or length fields. On the receive side frames are
separated by line silence (see :mod:`.parser`).
"""

from __future__ import annotations

from dataclasses import dataclass

from ..exceptions import FrameValidationError
from ..utils.crc import crc16

CRC_SIZE = 2


@dataclass(frozen=True)
class Frame:
    """A verified frame with its checksum stripped."""

    payload: bytes

    @property
    def address(self) -> int:
        return self.payload[0]

    @property
    def function(self) -> int:
        return self.payload[1]

    def __repr__(self) -> str:
        return f"Frame(payload={self.payload.hex(' ') if self.payload else '(empty)'})"


def sign(payload: bytes) -> bytes:
    """Append the CRC-16 of ``payload``.

    Args:
        payload: Frame bytes without checksum.

    Returns:
        ``payload`` followed by its 2-byte checksum, ready to write.
    """
    return bytes(payload) + crc16(payload).to_bytes(CRC_SIZE, "little")


def verify(frame: bytes) -> bool:
    """Check the trailing checksum of ``frame``.

    The payload (everything except the last two bytes) is re-signed and the
    result compared to the received frame. Never raises.
    """
    if len(frame) < CRC_SIZE:
        return False
    return sign(frame[:-CRC_SIZE]) == bytes(frame)


def verify_strict(frame: bytes) -> None:
    """Like :func:`verify` but raise on mismatch.

    Raises:
        FrameValidationError: If the frame is too short or the checksum fails.
    """
    if len(frame) < CRC_SIZE:
        raise FrameValidationError(f"Frame too short ({len(frame)} bytes)")
    expected = crc16(frame[:-CRC_SIZE])
    actual = int.from_bytes(frame[-CRC_SIZE:], "little")
    if expected != actual:
        raise FrameValidationError(
            f"CRC mismatch: expected 0x{expected:04X}, got 0x{actual:04X}"
        )


def parse_frame(data: bytes) -> Frame | None:
    """Verify ``data`` and strip its checksum.

    Returns:
        A ``Frame``, or ``None`` if the frame is too short or the checksum
        fails.
    """
    if not verify(data):
        return None
    return Frame(payload=bytes(data[:-CRC_SIZE]))
