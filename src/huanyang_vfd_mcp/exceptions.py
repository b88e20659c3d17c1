"""Exception types raised by the drive engine."""

from __future__ import annotations


class VfdError(Exception):
    """Base class for all drive engine errors."""


class TransportError(VfdError):
    """Problem with the serial link."""


class TransportOpenError(TransportError):
    """The serial device could not be opened."""


class TransportIoError(TransportError):
    """A read or write on an open link failed."""


class ProtocolError(VfdError):
    """Malformed or unexpected frame."""


class FrameValidationError(ProtocolError):
    """Header or checksum mismatch on a received frame."""


class CommandParseError(VfdError):
    """Token is not part of the command vocabulary."""

    def __init__(self, token: str) -> None:
        super().__init__(f"Unrecognized command token {token!r}")
        self.token = token


class QueueFullError(VfdError):
    """Command queue had no room for one or more tokens."""

    def __init__(self, dropped: list[str]) -> None:
        super().__init__(f"Command queue full, dropped: {' '.join(dropped)}")
        self.dropped = dropped


__all__ = [
    "VfdError",
    "TransportError",
    "TransportOpenError",
    "TransportIoError",
    "ProtocolError",
    "FrameValidationError",
    "CommandParseError",
    "QueueFullError",
]
