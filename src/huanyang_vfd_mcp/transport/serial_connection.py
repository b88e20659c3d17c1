"""RS-485 serial connection to the drive.

The drive talks 8 data bits, no parity, 1 stop bit. Its documentation gives
9600 baud but installations vary, so the rate is always taken from
``SerialConfig``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import serial

from ..exceptions import TransportIoError, TransportOpenError

logger = logging.getLogger(__name__)

DEFAULT_PORT = "/dev/ttyUSB0"
DEFAULT_BAUDRATE = 9600
DEFAULT_READ_TIMEOUT = 0.05
DEFAULT_WRITE_TIMEOUT = 1.0
READ_SIZE = 16


@dataclass
class SerialConfig:
    """Serial line settings."""

    port: str = DEFAULT_PORT
    baudrate: int = DEFAULT_BAUDRATE
    bytesize: int = serial.EIGHTBITS
    parity: str = serial.PARITY_NONE
    stopbits: float = serial.STOPBITS_ONE
    timeout: float = DEFAULT_READ_TIMEOUT
    write_timeout: float = DEFAULT_WRITE_TIMEOUT


class SerialConnection:
    """Manages the serial port used to reach the drive.

    Usage::

        conn = SerialConnection(SerialConfig(port="/dev/ttyUSB0"))
        conn.open()
        conn.write(frame_bytes)
        data = conn.read()
        conn.close()

    ``read`` returns whatever arrived within the read timeout, possibly
    nothing; it never waits for a complete frame.
    """

    def __init__(self, config: SerialConfig | None = None) -> None:
        self._config = config or SerialConfig()
        self._port: serial.Serial | None = None

    @property
    def config(self) -> SerialConfig:
        return self._config

    @property
    def connected(self) -> bool:
        return self._port is not None and self._port.is_open

    def open(self) -> None:
        """Open the serial port.

        Raises:
            TransportOpenError: If the port cannot be opened.
        """
        if self.connected:
            return
        cfg = self._config
        try:
            self._port = serial.Serial(
                port=cfg.port,
                baudrate=cfg.baudrate,
                bytesize=cfg.bytesize,
                parity=cfg.parity,
                stopbits=cfg.stopbits,
                timeout=cfg.timeout,
                write_timeout=cfg.write_timeout,
            )
            self._port.reset_input_buffer()
        except (serial.SerialException, OSError, ValueError) as e:
            self.close()
            raise TransportOpenError(
                f"Could not open {cfg.port} at {cfg.baudrate} baud: {e}"
            ) from e
        logger.info("Opened %s at %d baud", cfg.port, cfg.baudrate)

    def close(self) -> None:
        """Close the serial port."""
        if self._port is None:
            return
        try:
            self._port.close()
        except serial.SerialException as e:
            logger.warning("Error closing %s: %s", self._config.port, e)
        finally:
            self._port = None
            logger.info("Closed %s", self._config.port)

    def write(self, data: bytes) -> int:
        """Write a frame.

        Returns:
            Number of bytes written.

        Raises:
            TransportIoError: If not connected or the write fails.
        """
        port = self._require_port()
        try:
            written = port.write(data)
            port.flush()
        except serial.SerialException as e:
            raise TransportIoError(f"Write to {self._config.port} failed: {e}") from e
        return written

    def read(self, size: int = READ_SIZE) -> bytes:
        """Read up to ``size`` bytes.

        Blocks until at least one byte arrives or the read timeout passes.

        Returns:
            The bytes read, ``b""`` on timeout.

        Raises:
            TransportIoError: If not connected or the read fails.
        """
        port = self._require_port()
        try:
            first = port.read(1)
            if not first:
                return b""
            waiting = min(port.in_waiting, size - 1)
            return first + port.read(waiting) if waiting > 0 else first
        except serial.SerialException as e:
            raise TransportIoError(f"Read from {self._config.port} failed: {e}") from e

    def _require_port(self) -> serial.Serial:
        if self._port is None:
            raise TransportIoError("Serial port is not open")
        return self._port
